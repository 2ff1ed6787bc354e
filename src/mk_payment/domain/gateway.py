"""Payment Gateway contract.

The core asks for a payment intent and is later notified that a payment
changed. The notification itself is untrusted: the payment is re-read from
the gateway and only that record drives the order. Everything
gateway-specific stays behind PaymentGatewayProtocol.
"""

from dataclasses import dataclass
from typing import Protocol

from src.mk_order.domain.models import Order


@dataclass(frozen=True)
class PaymentIntent:
    reference: str            # gateway-side id (checkout preference id)
    checkout_url: str | None = None


@dataclass(frozen=True)
class GatewayPayment:
    payment_id: str
    external_reference: str | None   # our order id, as sent in the intent
    status: str                      # normalized to lower case
    amount: int                      # cents
    currency: str


class PaymentGatewayProtocol(Protocol):
    async def create_intent(
        self, order: Order, amount: int, payer_email: str | None
    ) -> PaymentIntent: ...

    async def get_payment(self, payment_id: str) -> GatewayPayment: ...


# Gateway payment statuses
APPROVED_STATUSES = frozenset({"approved"})
FAILED_STATUSES = frozenset({"rejected", "cancelled"})
# Money already sent to us was taken back by the buyer or the card issuer
REVERSED_STATUSES = frozenset({"refunded", "charged_back"})
