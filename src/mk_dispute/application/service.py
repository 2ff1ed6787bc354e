"""DisputeService — mediation of contested orders.

Lock order is always order row, then dispute row, so open/resolve/withdraw
never deadlock against each other. The order side of every dispute action is
applied in the same transaction as the dispute side: a reader never sees a
resolved dispute whose order is still 'disputed', or the reverse.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import DisputeResolution, NotificationType, SenderRole
from src.mk_common.errors import (
    AlreadyResolvedError,
    DisputeNotFoundError,
    DuplicateDisputeError,
    InternalError,
    NotEligibleError,
    OrderNotFoundError,
)
from src.mk_common.id_generator import generate_id
from src.mk_dispute.application.schemas import (
    DisputeActionResponse,
    DisputeListResponse,
    DisputeMessageResponse,
    DisputeResponse,
)
from src.mk_dispute.domain.models import Dispute, DisputeMessage
from src.mk_dispute.domain.repository import DisputeRepositoryProtocol
from src.mk_dispute.domain.state_machine import DisputeAction, allowed_sources, next_status
from src.mk_dispute.infrastructure.persistence import DisputeRepository
from src.mk_notify.domain.dispatch import publish_best_effort
from src.mk_notify.domain.events import NotificationEvent, NotifierProtocol
from src.mk_notify.infrastructure.redis_notifier import RedisNotifier
from src.mk_order.application.schemas import OrderResponse
from src.mk_order.domain.models import Order
from src.mk_order.domain.repository import OrderRepositoryProtocol
from src.mk_order.domain.state_machine import OrderAction
from src.mk_order.domain.state_machine import allowed_sources as order_sources
from src.mk_order.domain.state_machine import next_status as order_next_status
from src.mk_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)

_ORDER_ACTION_FOR = {
    DisputeResolution.REFUND: OrderAction.RESOLVE_REFUND,
    DisputeResolution.RELEASE: OrderAction.RESOLVE_RELEASE,
}


class DisputeService:
    def __init__(
        self,
        repo: DisputeRepositoryProtocol | None = None,
        orders: OrderRepositoryProtocol | None = None,
        notifier: NotifierProtocol | None = None,
    ) -> None:
        self._repo: DisputeRepositoryProtocol = repo or DisputeRepository()
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._notifier: NotifierProtocol = notifier or RedisNotifier()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def open_dispute(
        self, db: AsyncSession, buyer_id: str, order_id: str, reason: str, description: str
    ) -> DisputeActionResponse:
        """Buyer contests a paid or completed order; funds freeze until resolution."""
        try:
            order = await self._orders.get_for_update(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.buyer_id != buyer_id:
                raise NotEligibleError("only the buyer can open a dispute")
            if await self._repo.get_active_for_order(db, order.id) is not None:
                raise DuplicateDisputeError(order.id)
            if not order.is_disputable:
                raise NotEligibleError(f"order {order.id} is {order.status}")

            dispute = Dispute(
                id=generate_id(),
                order_id=order.id,
                opener_id=buyer_id,
                seller_id=order.seller_id,
                reason=reason,
                description=description,
                order_status_before=order.status,
            )
            try:
                await self._repo.save(db, dispute)
            except IntegrityError:
                # Partial unique index on active disputes per order
                raise DuplicateDisputeError(order.id) from None
            updated_order = await self._move_order(db, order, OrderAction.DISPUTE)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Dispute opened: id=%s order=%s reason=%s (order was %s)",
            dispute.id, order.id, reason, dispute.order_status_before,
        )
        await publish_best_effort(
            self._notifier,
            [
                (
                    dispute.seller_id,
                    NotificationEvent(
                        event_type="dispute.opened",
                        title="Dispute opened",
                        message=f"The buyer opened a dispute on order {order.id}: {reason}.",
                        kind=NotificationType.WARNING.value,
                        link=f"/disputes/{dispute.id}",
                        payload={"dispute_id": dispute.id, "order_id": order.id},
                    ),
                )
            ],
        )
        return DisputeActionResponse(
            dispute=DisputeResponse.from_domain(dispute),
            order=OrderResponse.from_domain(updated_order),
        )

    async def admin_review(
        self, db: AsyncSession, dispute_id: str, admin_id: str
    ) -> DisputeActionResponse:
        """open → in_review; the order stays disputed."""
        try:
            dispute = await self._repo.get_for_update(db, dispute_id)
            if dispute is None:
                raise DisputeNotFoundError(dispute_id)
            updated = await self._move_dispute(db, dispute, DisputeAction.REVIEW, admin_id=admin_id)
            order = await self._orders.get_by_id(db, dispute.order_id)
            if order is None:
                raise InternalError(f"Dispute {dispute.id} references missing order")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Dispute under review: id=%s admin=%s", updated.id, admin_id)
        await publish_best_effort(
            self._notifier,
            _to_parties(
                updated,
                NotificationEvent(
                    event_type="dispute.in_review",
                    title="Dispute under review",
                    message=f"An administrator is reviewing the dispute on order {updated.order_id}.",
                    link=f"/disputes/{updated.id}",
                    payload={"dispute_id": updated.id},
                ),
            ),
        )
        return DisputeActionResponse(
            dispute=DisputeResponse.from_domain(updated),
            order=OrderResponse.from_domain(order),
        )

    async def resolve(
        self,
        db: AsyncSession,
        dispute_id: str,
        admin_id: str,
        resolution: DisputeResolution,
        details: str | None = None,
    ) -> DisputeActionResponse:
        """Close the dispute and the order together: refund the buyer or release to the seller."""
        try:
            dispute, order = await self._lock_pair(db, dispute_id)
            updated = await self._move_dispute(
                db,
                dispute,
                DisputeAction.for_resolution(resolution),
                admin_id=admin_id,
                resolution_details=details,
            )
            updated_order = await self._move_order(db, order, _ORDER_ACTION_FOR[resolution])
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Dispute resolved: id=%s order=%s resolution=%s admin=%s",
            updated.id, updated_order.id, resolution.value, admin_id,
        )
        if resolution is DisputeResolution.REFUND:
            message = f"The dispute on order {updated.order_id} was resolved with a refund to the buyer."
        else:
            message = f"The dispute on order {updated.order_id} was resolved in favour of the seller."
        await publish_best_effort(
            self._notifier,
            _to_parties(
                updated,
                NotificationEvent(
                    event_type="dispute.resolved",
                    title="Dispute resolved",
                    message=message,
                    kind=NotificationType.INFO.value,
                    link=f"/disputes/{updated.id}",
                    payload={"dispute_id": updated.id, "resolution": resolution.value},
                ),
            ),
        )
        return DisputeActionResponse(
            dispute=DisputeResponse.from_domain(updated),
            order=OrderResponse.from_domain(updated_order),
        )

    async def withdraw_dispute(
        self, db: AsyncSession, dispute_id: str, buyer_id: str
    ) -> DisputeActionResponse:
        """Buyer drops an open complaint; the order returns to its pre-dispute status."""
        try:
            dispute, order = await self._lock_pair(db, dispute_id)
            if dispute.opener_id != buyer_id:
                raise NotEligibleError("only the buyer who opened the dispute can withdraw it")
            updated = await self._move_dispute(db, dispute, DisputeAction.WITHDRAW)
            updated_order = await self._move_order(
                db, order, OrderAction.RESTORE, restore_to=dispute.order_status_before
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Dispute withdrawn: id=%s order=%s restored to %s",
            updated.id, updated_order.id, updated_order.status,
        )
        await publish_best_effort(
            self._notifier,
            [
                (
                    updated.seller_id,
                    NotificationEvent(
                        event_type="dispute.withdrawn",
                        title="Dispute withdrawn",
                        message=f"The buyer withdrew the dispute on order {updated.order_id}.",
                        kind=NotificationType.SUCCESS.value,
                        link=f"/disputes/{updated.id}",
                        payload={"dispute_id": updated.id},
                    ),
                )
            ],
        )
        return DisputeActionResponse(
            dispute=DisputeResponse.from_domain(updated),
            order=OrderResponse.from_domain(updated_order),
        )

    async def add_message(
        self, db: AsyncSession, dispute_id: str, sender_id: str, is_admin: bool, text: str
    ) -> DisputeMessageResponse:
        try:
            dispute = await self._repo.get_by_id(db, dispute_id)
            if dispute is None:
                raise DisputeNotFoundError(dispute_id)
            role = _sender_role(dispute, sender_id, is_admin)
            if not dispute.is_active:
                raise AlreadyResolvedError(dispute.id, dispute.status)
            message = DisputeMessage(
                id=generate_id(),
                dispute_id=dispute.id,
                sender_id=sender_id,
                sender_role=role.value,
                message=text,
            )
            await self._repo.save_message(db, message)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        recipients = [
            uid for uid in (dispute.opener_id, dispute.seller_id) if uid != sender_id
        ]
        event = NotificationEvent(
            event_type="dispute.message",
            title="New dispute message",
            message=f"New message from the {role.value} on dispute {dispute.id}.",
            link=f"/disputes/{dispute.id}",
            payload={"dispute_id": dispute.id, "message_id": message.id},
        )
        await publish_best_effort(self._notifier, [(uid, event) for uid in recipients])
        return DisputeMessageResponse.from_domain(message)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_dispute(
        self, db: AsyncSession, dispute_id: str, user_id: str, is_admin: bool = False
    ) -> DisputeResponse:
        dispute = await self._visible_dispute(db, dispute_id, user_id, is_admin)
        return DisputeResponse.from_domain(dispute)

    async def list_messages(
        self, db: AsyncSession, dispute_id: str, user_id: str, is_admin: bool = False
    ) -> list[DisputeMessageResponse]:
        dispute = await self._visible_dispute(db, dispute_id, user_id, is_admin)
        messages = await self._repo.list_messages(db, dispute.id)
        return [DisputeMessageResponse.from_domain(m) for m in messages]

    async def list_my_disputes(
        self, db: AsyncSession, user_id: str, status: str | None, cursor: str | None, limit: int
    ) -> DisputeListResponse:
        disputes = await self._repo.list_for_user(db, user_id, status, cursor, limit + 1)
        return _page(disputes, limit)

    async def list_disputes(
        self, db: AsyncSession, status: str | None, cursor: str | None, limit: int
    ) -> DisputeListResponse:
        disputes = await self._repo.list_all(db, status, cursor, limit + 1)
        return _page(disputes, limit)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _lock_pair(self, db: AsyncSession, dispute_id: str) -> tuple[Dispute, Order]:
        """Lock the order row, then the dispute row, and return both fresh."""
        snapshot = await self._repo.get_by_id(db, dispute_id)
        if snapshot is None:
            raise DisputeNotFoundError(dispute_id)
        order = await self._orders.get_for_update(db, snapshot.order_id)
        if order is None:
            raise InternalError(f"Dispute {dispute_id} references missing order")
        dispute = await self._repo.get_for_update(db, dispute_id)
        if dispute is None:
            raise DisputeNotFoundError(dispute_id)
        return dispute, order

    async def _move_dispute(
        self,
        db: AsyncSession,
        dispute: Dispute,
        action: DisputeAction,
        admin_id: str | None = None,
        resolution_details: str | None = None,
    ) -> Dispute:
        new_status = next_status(dispute, action)
        updated = await self._repo.transition_status(
            db,
            dispute.id,
            allowed_sources(action),
            new_status,
            admin_id=admin_id,
            resolution_details=resolution_details,
        )
        if updated is None:
            raise InternalError(f"Lost update on locked dispute {dispute.id}")
        return updated

    async def _move_order(
        self, db: AsyncSession, order: Order, action: OrderAction, restore_to: str | None = None
    ) -> Order:
        new_status = order_next_status(order, action, restore_to=restore_to)
        updated = await self._orders.transition_status(
            db, order.id, order_sources(action), new_status
        )
        if updated is None:
            raise InternalError(f"Lost update on locked order {order.id}")
        return updated

    async def _visible_dispute(
        self, db: AsyncSession, dispute_id: str, user_id: str, is_admin: bool
    ) -> Dispute:
        dispute = await self._repo.get_by_id(db, dispute_id)
        if dispute is None or (not is_admin and not dispute.is_party(user_id)):
            raise DisputeNotFoundError(dispute_id)
        return dispute


def _sender_role(dispute: Dispute, sender_id: str, is_admin: bool) -> SenderRole:
    if sender_id == dispute.opener_id:
        return SenderRole.BUYER
    if sender_id == dispute.seller_id:
        return SenderRole.SELLER
    if is_admin:
        return SenderRole.ADMIN
    raise DisputeNotFoundError(dispute.id)


def _to_parties(
    dispute: Dispute, event: NotificationEvent
) -> list[tuple[str, NotificationEvent]]:
    return [(dispute.opener_id, event), (dispute.seller_id, event)]


def _page(disputes: list[Dispute], limit: int) -> DisputeListResponse:
    has_more = len(disputes) > limit
    page = disputes[:limit]
    return DisputeListResponse(
        items=[DisputeResponse.from_domain(d) for d in page],
        next_cursor=page[-1].id if has_more and page else None,
        has_more=has_more,
    )
