# tests/unit/test_order_persistence.py
"""Unit tests for OrderRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mk_order.domain.models import Order
from src.mk_order.infrastructure.persistence import OrderRepository


def _make_order_row(**kwargs):
    """Build a mock DB row with all required fields."""
    row = MagicMock()
    row.id = kwargs.get("id", "ORD-1")
    row.buyer_id = kwargs.get("buyer_id", "buyer-1")
    row.seller_id = kwargs.get("seller_id", "seller-1")
    row.product_id = "prod-1"
    row.quantity = 2
    row.unit_price = 5000
    row.total_amount = 10000
    row.status = kwargs.get("status", "pending")
    row.payment_reference = kwargs.get("payment_reference")
    row.gateway_payment_id = kwargs.get("gateway_payment_id")
    row.created_at = datetime.now(UTC)
    row.paid_at = kwargs.get("paid_at")
    row.completed_at = None
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


class TestSave:
    async def test_insert_backfills_timestamps(self, db):
        row = _make_order_row()
        db.execute = AsyncMock(return_value=_result(one=row))
        order = Order(
            id="ORD-1", buyer_id="buyer-1", seller_id="seller-1", product_id="prod-1",
            quantity=2, unit_price=5000, total_amount=10000,
        )

        await OrderRepository().save(db, order)

        params = db.execute.call_args.args[1]
        assert params["total_amount"] == 10000
        assert params["status"] == "pending"
        assert order.created_at == row.created_at


class TestGet:
    async def test_get_by_id_maps_row(self, db):
        db.execute = AsyncMock(return_value=_result(one=_make_order_row(status="paid")))
        order = await OrderRepository().get_by_id(db, "ORD-1")
        assert order is not None
        assert order.status == "paid"
        assert order.total_amount == 10000

    async def test_get_for_update_locks_row(self, db):
        db.execute = AsyncMock(return_value=_result(one=_make_order_row()))
        await OrderRepository().get_for_update(db, "ORD-1")
        sql = str(db.execute.call_args.args[0])
        assert "FOR UPDATE" in sql

    async def test_missing_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        assert await OrderRepository().get_by_id(db, "ORD-X") is None


class TestTransitionStatus:
    async def test_expected_statuses_are_joined_for_cas(self, db):
        db.execute = AsyncMock(return_value=_result(one=_make_order_row(status="disputed")))

        order = await OrderRepository().transition_status(
            db, "ORD-1", frozenset({"paid", "completed"}), "disputed"
        )

        params = db.execute.call_args.args[1]
        assert params["expected_csv"] == "completed,paid"
        assert params["new_status"] == "disputed"
        assert params["gateway_payment_id"] is None
        assert order is not None and order.status == "disputed"

    async def test_lost_race_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        order = await OrderRepository().transition_status(
            db, "ORD-1", frozenset({"pending"}), "paid", gateway_payment_id="pay-1"
        )
        assert order is None


class TestCompleteCleared:
    async def test_returns_released_orders(self, db):
        rows = [_make_order_row(id="ORD-1", status="completed"),
                _make_order_row(id="ORD-2", status="completed")]
        db.execute = AsyncMock(return_value=_result(many=rows))
        cutoff = datetime(2026, 1, 1, tzinfo=UTC)

        released = await OrderRepository().complete_cleared(db, cutoff, 500)

        assert [o.id for o in released] == ["ORD-1", "ORD-2"]
        assert db.execute.call_args.args[1] == {"cutoff": cutoff, "limit": 500}
        assert "SKIP LOCKED" in str(db.execute.call_args.args[0])


class TestListings:
    async def test_list_by_seller_passes_filters(self, db):
        db.execute = AsyncMock(return_value=_result(many=[_make_order_row()]))
        orders = await OrderRepository().list_by_seller(db, "seller-1", "paid", "ORD-9", 21)
        assert len(orders) == 1
        assert db.execute.call_args.args[1] == {
            "user_id": "seller-1", "status": "paid", "cursor_id": "ORD-9", "limit": 21,
        }
