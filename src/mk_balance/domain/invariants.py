"""Balance invariants (reconciliation)."""

import logging

from src.mk_balance.domain.calculator import Balance

logger = logging.getLogger(__name__)


def balance_violations(balance: Balance) -> list[str]:
    """Return human-readable violations for one seller; empty when healthy.

    INV-B1: available + reserved + withdrawn == total
    INV-B2: total, pending, reserved and withdrawn are never negative
    """
    violations: list[str] = []
    sid = balance.seller_id
    if not balance.reconciles:
        violations.append(
            f"INV-B1 violated for {sid}: available({balance.available}) + "
            f"reserved({balance.reserved}) + withdrawn({balance.withdrawn}) "
            f"!= total({balance.total})"
        )
    for name in ("total", "pending", "reserved", "withdrawn"):
        value = getattr(balance, name)
        if value < 0:
            violations.append(f"INV-B2 violated for {sid}: {name}={value}")
    for msg in violations:
        logger.error(msg)
    return violations


def is_in_debt(balance: Balance) -> bool:
    """available < 0: an already paid-out order was later disputed.

    Not a ledger corruption; new withdrawals are refused until cleared
    earnings cover the shortfall.
    """
    if balance.available < 0:
        logger.warning("Seller %s owes %d cents", balance.seller_id, -balance.available)
        return True
    return False
