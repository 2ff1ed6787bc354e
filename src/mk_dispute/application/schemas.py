"""Pydantic schemas for the mk_dispute API."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.mk_common.enums import DisputeReason, DisputeResolution
from src.mk_dispute.domain.models import Dispute, DisputeMessage
from src.mk_order.application.schemas import OrderResponse


class OpenDisputeRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    reason: DisputeReason
    description: str = Field(..., min_length=1, max_length=2000)

    @field_validator("reason")
    @classmethod
    def buyer_reason(cls, v: DisputeReason) -> DisputeReason:
        if v is DisputeReason.PAYMENT_REVERSED:
            raise ValueError("payment_reversed is reserved for gateway reversals")
        return v


class ResolveDisputeRequest(BaseModel):
    resolution: DisputeResolution
    details: str | None = Field(None, max_length=2000)


class DisputeMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class DisputeResponse(BaseModel):
    id: str
    order_id: str
    opener_id: str
    seller_id: str
    reason: str
    description: str
    status: str
    order_status_before: str
    admin_id: str | None = None
    resolution_details: str | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None
    resolved_at: datetime | None = None

    @classmethod
    def from_domain(cls, dispute: Dispute) -> "DisputeResponse":
        return cls(
            id=dispute.id,
            order_id=dispute.order_id,
            opener_id=dispute.opener_id,
            seller_id=dispute.seller_id,
            reason=dispute.reason,
            description=dispute.description,
            status=dispute.status,
            order_status_before=dispute.order_status_before,
            admin_id=dispute.admin_id,
            resolution_details=dispute.resolution_details,
            created_at=dispute.created_at,
            reviewed_at=dispute.reviewed_at,
            resolved_at=dispute.resolved_at,
        )


class DisputeActionResponse(BaseModel):
    dispute: DisputeResponse
    order: OrderResponse


class DisputeListResponse(BaseModel):
    items: list[DisputeResponse]
    next_cursor: str | None
    has_more: bool


class DisputeMessageResponse(BaseModel):
    id: str
    dispute_id: str
    sender_id: str
    sender_role: str
    message: str
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, msg: DisputeMessage) -> "DisputeMessageResponse":
        return cls(
            id=msg.id,
            dispute_id=msg.dispute_id,
            sender_id=msg.sender_id,
            sender_role=msg.sender_role,
            message=msg.message,
            created_at=msg.created_at,
        )
