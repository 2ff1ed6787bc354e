# tests/unit/test_admin_service.py
"""AdminService delegation and ledger checks."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from src.mk_admin.application.service import AdminService
from src.mk_balance.application.schemas import ReconciliationReport
from src.mk_common.enums import DisputeResolution
from src.mk_order.application.schemas import ReleaseClearedResponse


def _admin(**services) -> AdminService:
    return AdminService(
        orders=services.get("orders", MagicMock()),
        disputes=services.get("disputes", MagicMock()),
        withdrawals=services.get("withdrawals", MagicMock()),
        balances=services.get("balances", MagicMock()),
    )


async def test_resolve_delegates_to_dispute_service(db) -> None:
    disputes = MagicMock()
    disputes.resolve = AsyncMock(return_value="resolved")
    admin = _admin(disputes=disputes)

    result = await admin.resolve_dispute(db, "D-1", "admin-1", DisputeResolution.RELEASE, "ok")

    assert result == "resolved"
    disputes.resolve.assert_awaited_once_with(
        db, "D-1", "admin-1", DisputeResolution.RELEASE, "ok"
    )


async def test_reject_withdrawal_passes_note(db) -> None:
    withdrawals = MagicMock()
    withdrawals.reject_withdrawal = AsyncMock(return_value="rejected")
    admin = _admin(withdrawals=withdrawals)

    await admin.reject_withdrawal(db, "W-1", "admin-1", "wrong pix key")

    withdrawals.reject_withdrawal.assert_awaited_once_with(db, "W-1", "admin-1", "wrong pix key")


async def test_release_cleared_forwards_clock(db) -> None:
    orders = MagicMock()
    orders.release_cleared_orders = AsyncMock(
        return_value=ReleaseClearedResponse(
            released_order_ids=["a", "b", "c"],
            released_count=3,
            cutoff=datetime(2026, 4, 29, tzinfo=UTC),
        )
    )
    now = datetime(2026, 5, 1, tzinfo=UTC)

    result = await _admin(orders=orders).release_cleared_orders(db, "admin-1", now)

    assert result.released_count == 3
    orders.release_cleared_orders.assert_awaited_once_with(db, now)


async def test_reconciliation_report_is_returned_even_when_failing(db, caplog) -> None:
    report = ReconciliationReport(
        ok=False, sellers_checked=2, violations=["seller s1: identity broken"], sellers_in_debt=[]
    )
    balances = MagicMock()
    balances.verify_reconciliation = AsyncMock(return_value=report)

    result = await _admin(balances=balances).verify_reconciliation(db)

    assert result is report
    assert "Reconciliation failed" in caplog.text
