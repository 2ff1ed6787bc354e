"""Order domain model — pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mk_common.enums import ORDER_DISPUTABLE_STATUSES, ORDER_TERMINAL_STATUSES


@dataclass
class Order:
    id: str
    buyer_id: str
    seller_id: str
    product_id: str
    quantity: int
    unit_price: int      # cents, snapshot of the listing price at checkout
    total_amount: int    # cents, quantity * unit_price, frozen at creation
    status: str = "pending"
    payment_reference: str | None = None     # checkout intent id
    gateway_payment_id: str | None = None    # gateway payment that settled the order
    created_at: datetime | None = None
    paid_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ORDER_TERMINAL_STATUSES

    @property
    def is_disputable(self) -> bool:
        return self.status in ORDER_DISPUTABLE_STATUSES

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.buyer_id, self.seller_id)
