"""Pydantic schemas for the mk_order API."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.mk_common.cents import cents_to_display
from src.mk_order.domain.models import Order


class CreateOrderRequest(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1, description="Units to buy")

    @field_validator("product_id")
    @classmethod
    def no_whitespace(cls, v: str) -> str:
        if not v or v != v.strip() or " " in v:
            raise ValueError("product_id must not contain whitespace")
        return v


class CheckoutRequest(BaseModel):
    payer_email: EmailStr | None = None


class OrderResponse(BaseModel):
    id: str
    buyer_id: str
    seller_id: str
    product_id: str
    quantity: int
    unit_price_cents: int
    total_amount_cents: int
    total_amount_display: str
    status: str
    payment_reference: str | None = None
    gateway_payment_id: str | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            buyer_id=order.buyer_id,
            seller_id=order.seller_id,
            product_id=order.product_id,
            quantity=order.quantity,
            unit_price_cents=order.unit_price,
            total_amount_cents=order.total_amount,
            total_amount_display=cents_to_display(order.total_amount),
            status=order.status,
            payment_reference=order.payment_reference,
            gateway_payment_id=order.gateway_payment_id,
            created_at=order.created_at,
            paid_at=order.paid_at,
            completed_at=order.completed_at,
        )


class OrderActionResponse(BaseModel):
    order: OrderResponse
    applied: bool = True            # False when the call was an idempotent no-op
    warnings: list[str] = Field(default_factory=list)


class CheckoutResponse(BaseModel):
    order_id: str
    payment_reference: str
    checkout_url: str | None = None


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool


class ReleaseClearedResponse(BaseModel):
    released_order_ids: list[str]
    released_count: int
    cutoff: datetime
