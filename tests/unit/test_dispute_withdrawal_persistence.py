# tests/unit/test_dispute_withdrawal_persistence.py
"""Unit tests for DisputeRepository and WithdrawalRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mk_dispute.domain.models import Dispute, DisputeMessage
from src.mk_dispute.infrastructure.persistence import DisputeRepository
from src.mk_withdrawal.domain.models import FinancialDetails, Withdrawal
from src.mk_withdrawal.infrastructure.persistence import WithdrawalRepository


def _dispute_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "D-1")
    row.order_id = "ORD-1"
    row.opener_id = "buyer-1"
    row.seller_id = "seller-1"
    row.reason = "not_delivered"
    row.description = "never arrived"
    row.status = kwargs.get("status", "open")
    row.order_status_before = "paid"
    row.admin_id = kwargs.get("admin_id")
    row.resolution_details = kwargs.get("resolution_details")
    row.created_at = datetime.now(UTC)
    row.reviewed_at = None
    row.resolved_at = kwargs.get("resolved_at")
    row.updated_at = datetime.now(UTC)
    return row


def _withdrawal_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "W-1")
    row.user_id = "seller-1"
    row.amount = kwargs.get("amount", 5000)
    row.pix_key = "seller@example.com"
    row.legal_name = "Seller Ltda"
    row.tax_id = "12345678901"
    row.status = kwargs.get("status", "pending")
    row.admin_note = kwargs.get("admin_note")
    row.reviewed_by = kwargs.get("reviewed_by")
    row.created_at = datetime.now(UTC)
    row.paid_at = kwargs.get("paid_at")
    row.updated_at = datetime.now(UTC)
    return row


def _details_row():
    row = MagicMock()
    row.user_id = "seller-1"
    row.pix_key = "seller@example.com"
    row.pix_key_type = "email"
    row.legal_name = "Seller Ltda"
    row.tax_id = "12345678901"
    row.created_at = datetime.now(UTC)
    row.updated_at = datetime.now(UTC)
    return row


def _result(one=None, many=None):
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = many or []
    return result


@pytest.fixture
def db():
    return MagicMock()


class TestDisputeRepository:
    async def test_save_passes_snapshot_of_order_status(self, db):
        db.execute = AsyncMock(return_value=_result(one=_dispute_row()))
        dispute = Dispute(
            id="D-1", order_id="ORD-1", opener_id="buyer-1", seller_id="seller-1",
            reason="not_delivered", description="never arrived", order_status_before="paid",
        )

        await DisputeRepository().save(db, dispute)

        params = db.execute.call_args.args[1]
        assert params["order_status_before"] == "paid"
        assert params["status"] == "open"
        assert dispute.created_at is not None

    async def test_get_missing_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        assert await DisputeRepository().get_by_id(db, "nope") is None

    async def test_transition_sends_expected_as_csv(self, db):
        row = _dispute_row(status="resolved_refund", admin_id="admin-1")
        db.execute = AsyncMock(return_value=_result(one=row))

        dispute = await DisputeRepository().transition_status(
            db, "D-1", {"open", "in_review"}, "resolved_refund",
            admin_id="admin-1", resolution_details="refund issued",
        )

        params = db.execute.call_args.args[1]
        assert params["expected_csv"] == "in_review,open"
        assert params["resolution_details"] == "refund issued"
        assert dispute is not None and dispute.status == "resolved_refund"

    async def test_transition_lost_race_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        assert await DisputeRepository().transition_status(
            db, "D-1", {"open"}, "cancelled"
        ) is None

    async def test_list_for_user_maps_rows(self, db):
        db.execute = AsyncMock(
            return_value=_result(many=[_dispute_row(id="D-2"), _dispute_row(id="D-1")])
        )
        disputes = await DisputeRepository().list_for_user(db, "seller-1", None, None, 20)
        assert [d.id for d in disputes] == ["D-2", "D-1"]
        assert db.execute.call_args.args[1]["user_id"] == "seller-1"

    async def test_save_message_backfills_created_at(self, db):
        row = MagicMock(created_at=datetime.now(UTC))
        db.execute = AsyncMock(return_value=_result(one=row))
        message = DisputeMessage(
            id="M-1", dispute_id="D-1", sender_id="buyer-1", sender_role="buyer", message="hi"
        )
        await DisputeRepository().save_message(db, message)
        assert message.created_at == row.created_at


class TestWithdrawalRepository:
    async def test_upsert_details_returns_stored_row(self, db):
        db.execute = AsyncMock(return_value=_result(one=_details_row()))
        details = FinancialDetails(
            user_id="seller-1", pix_key="seller@example.com", pix_key_type="email",
            legal_name="Seller Ltda", tax_id="12345678901",
        )
        stored = await WithdrawalRepository().upsert_details(db, details)
        assert stored.created_at is not None
        assert db.execute.call_args.args[1]["tax_id"] == "12345678901"

    async def test_lock_details_missing_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        assert await WithdrawalRepository().lock_details(db, "seller-1") is None

    async def test_save_copies_payout_target(self, db):
        db.execute = AsyncMock(return_value=_result(one=_withdrawal_row()))
        withdrawal = Withdrawal(
            id="W-1", user_id="seller-1", amount=5000, pix_key="seller@example.com",
            legal_name="Seller Ltda", tax_id="12345678901",
        )
        await WithdrawalRepository().save(db, withdrawal)
        params = db.execute.call_args.args[1]
        assert params["amount"] == 5000
        assert params["pix_key"] == "seller@example.com"
        assert withdrawal.updated_at is not None

    async def test_transition_records_reviewer(self, db):
        row = _withdrawal_row(status="paid", reviewed_by="admin-1", paid_at=datetime.now(UTC))
        db.execute = AsyncMock(return_value=_result(one=row))

        withdrawal = await WithdrawalRepository().transition_status(
            db, "W-1", {"pending"}, "paid", reviewed_by="admin-1"
        )

        params = db.execute.call_args.args[1]
        assert params["expected_csv"] == "pending"
        assert params["reviewed_by"] == "admin-1"
        assert withdrawal is not None and withdrawal.paid_at is not None

    async def test_list_all_maps_rows(self, db):
        db.execute = AsyncMock(return_value=_result(many=[_withdrawal_row()]))
        rows = await WithdrawalRepository().list_all(db, "pending", None, 50)
        assert rows[0].reviewed_by is None
        assert db.execute.call_args.args[1]["status"] == "pending"
