"""Withdrawal domain models — pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class FinancialDetails:
    user_id: str
    pix_key: str
    pix_key_type: str
    legal_name: str
    tax_id: str                  # CPF or CNPJ, digits only
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Withdrawal:
    id: str
    user_id: str
    amount: int                  # cents
    pix_key: str                 # payout target snapshot at request time
    legal_name: str
    tax_id: str
    status: str = "pending"
    admin_note: str | None = None
    reviewed_by: str | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def request(cls, withdrawal_id: str, amount: int, details: FinancialDetails) -> "Withdrawal":
        return cls(
            id=withdrawal_id,
            user_id=details.user_id,
            amount=amount,
            pix_key=details.pix_key,
            legal_name=details.legal_name,
            tax_id=details.tax_id,
        )
