# tests/unit/test_order_state_machine.py
"""Order transition table: every edge not listed is rejected."""
import pytest

from src.mk_common.errors import InvalidTransitionError
from src.mk_order.domain.models import Order
from src.mk_order.domain.state_machine import OrderAction, allowed_sources, next_status

ALL_STATUSES = [
    "pending", "paid", "completed", "cancelled", "disputed", "resolved_refund", "resolved_release",
]

VALID = {
    ("pending", OrderAction.PAY): "paid",
    ("pending", OrderAction.CANCEL): "cancelled",
    ("paid", OrderAction.COMPLETE): "completed",
    ("paid", OrderAction.DISPUTE): "disputed",
    ("completed", OrderAction.DISPUTE): "disputed",
    ("disputed", OrderAction.RESOLVE_REFUND): "resolved_refund",
    ("disputed", OrderAction.RESOLVE_RELEASE): "resolved_release",
}


def _order(status: str) -> Order:
    return Order(
        id="ORD-1", buyer_id="b", seller_id="s", product_id="p",
        quantity=1, unit_price=100, total_amount=100, status=status,
    )


@pytest.mark.parametrize(("status", "action"), list(VALID))
def test_valid_transitions(status: str, action: OrderAction) -> None:
    assert next_status(_order(status), action) == VALID[(status, action)]


@pytest.mark.parametrize("status", ALL_STATUSES)
@pytest.mark.parametrize(
    "action", [a for a in OrderAction if a is not OrderAction.RESTORE]
)
def test_everything_else_is_rejected(status: str, action: OrderAction) -> None:
    if (status, action) in VALID:
        pytest.skip("valid edge")
    with pytest.raises(InvalidTransitionError) as exc_info:
        next_status(_order(status), action)
    assert exc_info.value.code == 4010
    assert exc_info.value.http_status == 409


class TestRestore:
    @pytest.mark.parametrize("target", ["paid", "completed"])
    def test_disputed_restores_previous_status(self, target: str) -> None:
        assert next_status(_order("disputed"), OrderAction.RESTORE, restore_to=target) == target

    @pytest.mark.parametrize("target", [None, "pending", "cancelled", "resolved_release"])
    def test_restore_target_must_be_disputable(self, target) -> None:
        with pytest.raises(InvalidTransitionError):
            next_status(_order("disputed"), OrderAction.RESTORE, restore_to=target)

    def test_restore_requires_disputed(self) -> None:
        with pytest.raises(InvalidTransitionError):
            next_status(_order("paid"), OrderAction.RESTORE, restore_to="completed")


@pytest.mark.parametrize("terminal", ["cancelled", "resolved_refund", "resolved_release"])
def test_terminal_orders_are_immutable(terminal: str) -> None:
    order = _order(terminal)
    assert order.is_terminal
    for action in OrderAction:
        with pytest.raises(InvalidTransitionError):
            next_status(order, action, restore_to="paid")


def test_allowed_sources_feed_compare_and_swap() -> None:
    assert allowed_sources(OrderAction.DISPUTE) == frozenset({"paid", "completed"})
    assert allowed_sources(OrderAction.PAY) == frozenset({"pending"})
