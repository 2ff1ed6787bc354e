"""Order status transitions.

Every status change goes through `next_status`, which raises
InvalidTransitionError for anything not in the table below. Persistence then
applies the change with a compare-and-swap on the current status.

    pending   --pay-------------> paid
    pending   --cancel----------> cancelled
    paid      --complete--------> completed
    paid      --dispute---------> disputed
    completed --dispute---------> disputed
    disputed  --resolve_refund--> resolved_refund
    disputed  --resolve_release-> resolved_release
    disputed  --restore---------> paid | completed (whatever it was before)
"""

from enum import Enum

from src.mk_common.enums import OrderStatus
from src.mk_common.errors import InvalidTransitionError
from src.mk_order.domain.models import Order


class OrderAction(str, Enum):
    PAY = "pay"
    CANCEL = "cancel"
    COMPLETE = "complete"
    DISPUTE = "dispute"
    RESOLVE_REFUND = "resolve_refund"
    RESOLVE_RELEASE = "resolve_release"
    RESTORE = "restore"


_PENDING = OrderStatus.PENDING.value
_PAID = OrderStatus.PAID.value
_COMPLETED = OrderStatus.COMPLETED.value
_DISPUTED = OrderStatus.DISPUTED.value

# action -> (allowed source statuses, target status or None when dynamic)
TRANSITIONS: dict[OrderAction, tuple[frozenset[str], str | None]] = {
    OrderAction.PAY: (frozenset({_PENDING}), _PAID),
    OrderAction.CANCEL: (frozenset({_PENDING}), OrderStatus.CANCELLED.value),
    OrderAction.COMPLETE: (frozenset({_PAID}), _COMPLETED),
    OrderAction.DISPUTE: (frozenset({_PAID, _COMPLETED}), _DISPUTED),
    OrderAction.RESOLVE_REFUND: (frozenset({_DISPUTED}), OrderStatus.RESOLVED_REFUND.value),
    OrderAction.RESOLVE_RELEASE: (frozenset({_DISPUTED}), OrderStatus.RESOLVED_RELEASE.value),
    OrderAction.RESTORE: (frozenset({_DISPUTED}), None),
}


def allowed_sources(action: OrderAction) -> frozenset[str]:
    return TRANSITIONS[action][0]


def next_status(order: Order, action: OrderAction, restore_to: str | None = None) -> str:
    """Return the status `order` moves to under `action`, or raise."""
    sources, target = TRANSITIONS[action]
    if order.status not in sources:
        raise InvalidTransitionError("Order", order.id, order.status, action.value)
    if target is None:
        if restore_to not in (_PAID, _COMPLETED):
            raise InvalidTransitionError(
                "Order", order.id, order.status, f"restore to {restore_to}"
            )
        return restore_to
    return target
