# tests/unit/test_withdrawal_service.py
"""Unit tests for WithdrawalService using mock repositories."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mk_balance.domain.calculator import compute_balance
from src.mk_common.enums import PixKeyType
from src.mk_common.errors import (
    BelowMinimumWithdrawalError,
    InsufficientBalanceError,
    InvalidTransitionError,
    MissingFinancialDetailsError,
    WithdrawalNotFoundError,
)
from src.mk_withdrawal.application.schemas import FinancialDetailsRequest
from src.mk_withdrawal.application.service import WithdrawalService
from src.mk_withdrawal.domain.models import FinancialDetails, Withdrawal


def _details(**kwargs) -> FinancialDetails:
    defaults = dict(
        user_id="seller-1", pix_key="+5511999990000", pix_key_type="phone",
        legal_name="Seller One", tax_id="12345678901",
    )
    defaults.update(kwargs)
    return FinancialDetails(**defaults)


def _withdrawal(**kwargs) -> Withdrawal:
    defaults = dict(
        id="WD-1", user_id="seller-1", amount=5000, pix_key="+5511999990000",
        legal_name="Seller One", tax_id="12345678901", status="pending",
    )
    defaults.update(kwargs)
    return Withdrawal(**defaults)


@pytest.fixture
def repo():
    return MagicMock()


@pytest.fixture
def balances():
    b = MagicMock()
    b.compute = AsyncMock(return_value=compute_balance("seller-1", {"completed": 10000}, {}))
    return b


@pytest.fixture
def notifier():
    n = MagicMock()
    n.publish = AsyncMock()
    return n


@pytest.fixture
def svc(repo, balances, notifier):
    return WithdrawalService(
        repo=repo, balances=balances, notifier=notifier, min_withdrawal_cents=100
    )


class TestRequestWithdrawal:
    async def test_snapshots_payout_details(self, svc, db, repo):
        repo.lock_details = AsyncMock(return_value=_details())
        repo.save = AsyncMock()

        resp = await svc.request_withdrawal(db, "seller-1", 10000)

        assert resp.status == "pending"
        assert resp.amount_cents == 10000
        assert resp.amount_display == "R$100.00"
        saved: Withdrawal = repo.save.await_args.args[1]
        assert saved.pix_key == "+5511999990000"
        assert saved.tax_id == "12345678901"
        db.commit.assert_awaited_once()

    async def test_above_available(self, svc, db, repo):
        repo.lock_details = AsyncMock(return_value=_details())
        repo.save = AsyncMock()
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await svc.request_withdrawal(db, "seller-1", 10001)
        assert "10001" in exc_info.value.message
        repo.save.assert_not_awaited()
        db.rollback.assert_awaited_once()

    @pytest.mark.parametrize("amount", [0, -5, 99])
    async def test_below_minimum(self, svc, db, repo, amount):
        repo.lock_details = AsyncMock()
        with pytest.raises(BelowMinimumWithdrawalError):
            await svc.request_withdrawal(db, "seller-1", amount)
        repo.lock_details.assert_not_awaited()

    async def test_requires_financial_details(self, svc, db, repo, balances):
        repo.lock_details = AsyncMock(return_value=None)
        with pytest.raises(MissingFinancialDetailsError):
            await svc.request_withdrawal(db, "seller-1", 1000)
        balances.compute.assert_not_awaited()

    async def test_details_locked_before_balance_read(self, svc, db, repo, balances):
        calls: list[str] = []

        async def lock(*args):
            calls.append("lock")
            return _details()

        async def compute(*args):
            calls.append("balance")
            return compute_balance("seller-1", {"completed": 10000}, {})

        repo.lock_details = AsyncMock(side_effect=lock)
        repo.save = AsyncMock()
        balances.compute = AsyncMock(side_effect=compute)

        await svc.request_withdrawal(db, "seller-1", 500)

        assert calls == ["lock", "balance"]

    async def test_seller_locks_are_released_after_use(self, svc, db, repo):
        repo.lock_details = AsyncMock(side_effect=[_details(user_id=f"s{i}") for i in range(3)])
        repo.save = AsyncMock()

        for i in range(3):
            await svc.request_withdrawal(db, f"s{i}", 1000)

        assert svc._seller_locks == {}
        assert not svc._lock_users

    async def test_lock_is_dropped_when_request_fails(self, svc, db, repo):
        repo.lock_details = AsyncMock(return_value=None)

        with pytest.raises(MissingFinancialDetailsError):
            await svc.request_withdrawal(db, "seller-1", 1000)

        assert svc._seller_locks == {}

    async def test_waiting_request_shares_the_held_lock(self, svc, db, repo):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_lock(db_, user_id):
            started.set()
            await release.wait()
            return _details()

        repo.lock_details = AsyncMock(side_effect=slow_lock)
        repo.save = AsyncMock()

        first = asyncio.create_task(svc.request_withdrawal(db, "seller-1", 1000))
        await started.wait()
        second = asyncio.create_task(svc.request_withdrawal(db, "seller-1", 1000))
        await asyncio.sleep(0)
        assert svc._lock_users["seller-1"] == 2

        release.set()
        await asyncio.gather(first, second)
        assert svc._seller_locks == {}


class TestSettle:
    async def test_approve_pending(self, svc, db, repo, notifier):
        repo.transition_status = AsyncMock(
            return_value=_withdrawal(status="paid", reviewed_by="admin-1")
        )

        resp = await svc.approve_withdrawal(db, "WD-1", "admin-1")

        assert resp.status == "paid"
        args = repo.transition_status.await_args
        assert args.args[2] == frozenset({"pending"})
        assert args.args[3] == "paid"
        assert args.args[4] == "admin-1"
        notifier.publish.assert_awaited_once()

    async def test_reject_stores_note(self, svc, db, repo):
        repo.transition_status = AsyncMock(
            return_value=_withdrawal(status="rejected", admin_note="CPF mismatch")
        )
        resp = await svc.reject_withdrawal(db, "WD-1", "admin-1", "CPF mismatch")
        assert resp.status == "rejected"
        assert repo.transition_status.await_args.kwargs["admin_note"] == "CPF mismatch"

    async def test_not_pending_is_invalid_transition(self, svc, db, repo, notifier):
        repo.transition_status = AsyncMock(return_value=None)
        repo.get_by_id = AsyncMock(return_value=_withdrawal(status="paid"))
        with pytest.raises(InvalidTransitionError):
            await svc.approve_withdrawal(db, "WD-1", "admin-1")
        notifier.publish.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_missing_is_not_found(self, svc, db, repo):
        repo.transition_status = AsyncMock(return_value=None)
        repo.get_by_id = AsyncMock(return_value=None)
        with pytest.raises(WithdrawalNotFoundError):
            await svc.reject_withdrawal(db, "WD-X", "admin-1", "no")


class TestFinancialDetails:
    async def test_save_normalizes_tax_id(self, svc, db, repo):
        repo.upsert_details = AsyncMock(side_effect=lambda db, d: d)
        body = FinancialDetailsRequest(
            pix_key=" seller@example.com ",
            pix_key_type=PixKeyType.EMAIL,
            legal_name="Seller One",
            tax_id="123.456.789-01",
        )

        resp = await svc.save_financial_details(db, "seller-1", body)

        assert resp.tax_id == "12345678901"
        assert resp.pix_key == "seller@example.com"
        assert resp.pix_key_type == "email"
        db.commit.assert_awaited_once()

    def test_rejects_malformed_tax_id(self) -> None:
        with pytest.raises(ValueError):
            FinancialDetailsRequest(
                pix_key="k", pix_key_type=PixKeyType.RANDOM, legal_name="Ana", tax_id="123"
            )

    async def test_get_missing(self, svc, db, repo):
        repo.get_details = AsyncMock(return_value=None)
        with pytest.raises(MissingFinancialDetailsError):
            await svc.get_financial_details(db, "seller-1")
