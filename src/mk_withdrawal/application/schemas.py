"""Pydantic schemas for the mk_withdrawal API."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.mk_common.cents import cents_to_display
from src.mk_common.enums import PixKeyType
from src.mk_withdrawal.domain.models import FinancialDetails, Withdrawal


class FinancialDetailsRequest(BaseModel):
    pix_key: str = Field(..., min_length=1, max_length=140)
    pix_key_type: PixKeyType
    legal_name: str = Field(..., min_length=2, max_length=200)
    tax_id: str = Field(..., description="CPF (11 digits) or CNPJ (14 digits)")

    @field_validator("tax_id")
    @classmethod
    def digits_only(cls, v: str) -> str:
        digits = "".join(ch for ch in v if ch.isdigit())
        if len(digits) not in (11, 14):
            raise ValueError("tax_id must be a CPF (11 digits) or CNPJ (14 digits)")
        return digits

    @field_validator("pix_key", "legal_name")
    @classmethod
    def strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class FinancialDetailsResponse(BaseModel):
    user_id: str
    pix_key: str
    pix_key_type: str
    legal_name: str
    tax_id: str
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, details: FinancialDetails) -> "FinancialDetailsResponse":
        return cls(
            user_id=details.user_id,
            pix_key=details.pix_key,
            pix_key_type=details.pix_key_type,
            legal_name=details.legal_name,
            tax_id=details.tax_id,
            updated_at=details.updated_at,
        )


class WithdrawalRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Amount in cents")


class RejectWithdrawalRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=500)


class WithdrawalResponse(BaseModel):
    id: str
    user_id: str
    amount_cents: int
    amount_display: str
    pix_key: str
    legal_name: str
    status: str
    admin_note: str | None = None
    reviewed_by: str | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None

    @classmethod
    def from_domain(cls, w: Withdrawal) -> "WithdrawalResponse":
        return cls(
            id=w.id,
            user_id=w.user_id,
            amount_cents=w.amount,
            amount_display=cents_to_display(w.amount),
            pix_key=w.pix_key,
            legal_name=w.legal_name,
            status=w.status,
            admin_note=w.admin_note,
            reviewed_by=w.reviewed_by,
            created_at=w.created_at,
            paid_at=w.paid_at,
        )


class WithdrawalListResponse(BaseModel):
    items: list[WithdrawalResponse]
    next_cursor: str | None
    has_more: bool
