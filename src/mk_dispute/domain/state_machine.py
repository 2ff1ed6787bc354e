"""Dispute status transitions.

    open      --review----------> in_review
    open      --withdraw--------> cancelled
    open      --resolve_refund--> resolved_refund
    open      --resolve_release-> resolved_release
    in_review --resolve_refund--> resolved_refund
    in_review --resolve_release-> resolved_release

Acting on a closed dispute raises AlreadyResolvedError; acting on an active
one from the wrong status raises InvalidTransitionError.
"""

from enum import Enum

from src.mk_common.enums import DisputeResolution, DisputeStatus
from src.mk_common.errors import AlreadyResolvedError, InvalidTransitionError
from src.mk_dispute.domain.models import Dispute


class DisputeAction(str, Enum):
    REVIEW = "review"
    WITHDRAW = "withdraw"
    RESOLVE_REFUND = "resolve_refund"
    RESOLVE_RELEASE = "resolve_release"

    @classmethod
    def for_resolution(cls, resolution: DisputeResolution) -> "DisputeAction":
        if resolution is DisputeResolution.REFUND:
            return cls.RESOLVE_REFUND
        return cls.RESOLVE_RELEASE


_OPEN = DisputeStatus.OPEN.value
_IN_REVIEW = DisputeStatus.IN_REVIEW.value

TRANSITIONS: dict[DisputeAction, tuple[frozenset[str], str]] = {
    DisputeAction.REVIEW: (frozenset({_OPEN}), _IN_REVIEW),
    DisputeAction.WITHDRAW: (frozenset({_OPEN}), DisputeStatus.CANCELLED.value),
    DisputeAction.RESOLVE_REFUND: (
        frozenset({_OPEN, _IN_REVIEW}),
        DisputeStatus.RESOLVED_REFUND.value,
    ),
    DisputeAction.RESOLVE_RELEASE: (
        frozenset({_OPEN, _IN_REVIEW}),
        DisputeStatus.RESOLVED_RELEASE.value,
    ),
}


def allowed_sources(action: DisputeAction) -> frozenset[str]:
    return TRANSITIONS[action][0]


def next_status(dispute: Dispute, action: DisputeAction) -> str:
    sources, target = TRANSITIONS[action]
    if not dispute.is_active:
        raise AlreadyResolvedError(dispute.id, dispute.status)
    if dispute.status not in sources:
        raise InvalidTransitionError("Dispute", dispute.id, dispute.status, action.value)
    return target
