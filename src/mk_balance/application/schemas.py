"""Pydantic schemas for mk_balance API."""

from pydantic import BaseModel

from src.mk_balance.domain.calculator import Balance
from src.mk_common.cents import cents_to_display


class BalanceResponse(BaseModel):
    seller_id: str
    total_cents: int
    total_display: str
    available_cents: int
    available_display: str
    pending_cents: int
    pending_display: str
    reserved_cents: int
    withdrawn_cents: int

    @classmethod
    def from_balance(cls, balance: Balance) -> "BalanceResponse":
        return cls(
            seller_id=balance.seller_id,
            total_cents=balance.total,
            total_display=cents_to_display(balance.total),
            available_cents=balance.available,
            available_display=cents_to_display(balance.available),
            pending_cents=balance.pending,
            pending_display=cents_to_display(balance.pending),
            reserved_cents=balance.reserved,
            withdrawn_cents=balance.withdrawn,
        )


class ReconciliationReport(BaseModel):
    ok: bool
    sellers_checked: int
    violations: list[str]
    sellers_in_debt: list[str]
