"""Pydantic schemas for the mk_payment API."""

from pydantic import BaseModel

from src.mk_order.application.schemas import OrderResponse


class PaymentWebhook(BaseModel):
    # Only the id is read from the body; everything else comes from the gateway
    payment_id: str


class PaymentNotificationResponse(BaseModel):
    payment_id: str
    gateway_status: str
    action: str        # confirmed | already_settled | cancelled | disputed | flagged | ignored
    order: OrderResponse | None = None
    dispute_id: str | None = None
