"""Dispute domain models — pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime

from src.mk_common.enums import DISPUTE_ACTIVE_STATUSES


@dataclass
class Dispute:
    id: str
    order_id: str
    opener_id: str               # always the order's buyer
    seller_id: str
    reason: str
    description: str
    order_status_before: str     # paid | completed, restored on withdrawal
    status: str = "open"
    admin_id: str | None = None
    resolution_details: str | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None
    resolved_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status in DISPUTE_ACTIVE_STATUSES

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.opener_id, self.seller_id)


@dataclass
class DisputeMessage:
    id: str
    dispute_id: str
    sender_id: str
    sender_role: str
    message: str
    created_at: datetime | None = None
