"""Seller balance — a pure function of stored Order and Withdrawal facts.

Never persisted: recomputing from the ledger on every read means there is no
counter to drift or double-spend.

    total     = Σ orders{completed, resolved_release}
    pending   = Σ orders{paid}                     (escrow, not withdrawable)
    reserved  = Σ withdrawals{pending}
    withdrawn = Σ withdrawals{paid}
    available = total - reserved - withdrawn

Orders in {pending, cancelled, disputed, resolved_refund} count nowhere;
rejected withdrawals count nowhere.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from src.mk_common.enums import OrderStatus, WithdrawalStatus

CLEARED_ORDER_STATUSES = frozenset(
    {OrderStatus.COMPLETED.value, OrderStatus.RESOLVED_RELEASE.value}
)
ESCROW_ORDER_STATUSES = frozenset({OrderStatus.PAID.value})


@dataclass(frozen=True)
class Balance:
    seller_id: str
    total: int       # cents
    available: int   # cents
    pending: int     # cents
    reserved: int    # cents
    withdrawn: int   # cents

    @property
    def reconciles(self) -> bool:
        return self.available + self.reserved + self.withdrawn == self.total


def _sum_of(sums: Mapping[str, int], statuses: frozenset[str]) -> int:
    return sum(int(amount) for status, amount in sums.items() if status in statuses)


def compute_balance(
    seller_id: str,
    order_sums: Mapping[str, int],
    withdrawal_sums: Mapping[str, int],
) -> Balance:
    """Derive a Balance from per-status sums of the seller's orders and withdrawals."""
    total = _sum_of(order_sums, CLEARED_ORDER_STATUSES)
    pending = _sum_of(order_sums, ESCROW_ORDER_STATUSES)
    reserved = int(withdrawal_sums.get(WithdrawalStatus.PENDING.value, 0))
    withdrawn = int(withdrawal_sums.get(WithdrawalStatus.PAID.value, 0))
    return Balance(
        seller_id=seller_id,
        total=total,
        available=total - reserved - withdrawn,
        pending=pending,
        reserved=reserved,
        withdrawn=withdrawn,
    )
