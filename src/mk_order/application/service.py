"""OrderService — owns the purchase state machine.

Each public mutation is one transaction: load (row-locked), validate against
src/mk_order/domain/state_machine.py, compare-and-swap the status, commit.
Notifications go out after commit and never affect the outcome.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_catalog.domain.repository import ProductRepositoryProtocol
from src.mk_catalog.infrastructure.persistence import ProductRepository
from src.mk_common.cents import cents_to_display, line_total
from src.mk_common.datetime_utils import clearing_cutoff, utc_now
from src.mk_common.enums import ORDER_PAYMENT_SETTLED_STATUSES, NotificationType, OrderStatus
from src.mk_common.errors import (
    BelowMinimumQuantityError,
    InsufficientStockError,
    InternalError,
    InvalidTransitionError,
    NotEligibleError,
    OrderNotFoundError,
    PaymentMismatchError,
    ProductNotFoundError,
)
from src.mk_common.id_generator import generate_id
from src.mk_notify.domain.dispatch import publish_best_effort
from src.mk_notify.domain.events import NotificationEvent, NotifierProtocol
from src.mk_notify.infrastructure.redis_notifier import RedisNotifier
from src.mk_order.application.schemas import (
    CheckoutResponse,
    OrderActionResponse,
    OrderListResponse,
    OrderResponse,
    ReleaseClearedResponse,
)
from src.mk_order.domain.models import Order
from src.mk_order.domain.repository import OrderRepositoryProtocol
from src.mk_order.domain.state_machine import OrderAction, allowed_sources, next_status
from src.mk_order.infrastructure.persistence import OrderRepository
from src.mk_payment.domain.gateway import PaymentGatewayProtocol
from src.mk_payment.infrastructure.http_gateway import HttpPaymentGateway

logger = logging.getLogger(__name__)

_SWEEP_BATCH_SIZE = 500


class OrderService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        products: ProductRepositoryProtocol | None = None,
        gateway: PaymentGatewayProtocol | None = None,
        notifier: NotifierProtocol | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._products: ProductRepositoryProtocol = products or ProductRepository()
        self._gateway: PaymentGatewayProtocol = gateway or HttpPaymentGateway()
        self._notifier: NotifierProtocol = notifier or RedisNotifier()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_order(
        self, db: AsyncSession, buyer_id: str, product_id: str, quantity: int
    ) -> OrderResponse:
        try:
            product = await self._products.get_product(db, product_id)
            if product is None or not product.is_active:
                raise ProductNotFoundError(product_id)
            if product.seller_id == buyer_id:
                raise NotEligibleError("sellers cannot buy their own listing")
            if quantity < max(1, product.min_order_quantity):
                raise BelowMinimumQuantityError(quantity, max(1, product.min_order_quantity))
            if product.stock < quantity:
                raise InsufficientStockError(quantity, product.stock)

            order = Order(
                id=generate_id(),
                buyer_id=buyer_id,
                seller_id=product.seller_id,
                product_id=product.id,
                quantity=quantity,
                unit_price=product.price_cents,
                total_amount=line_total(quantity, product.price_cents),
                status=OrderStatus.PENDING.value,
                created_at=utc_now(),
            )
            await self._repo.save(db, order)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Order created: id=%s buyer=%s seller=%s total=%d",
            order.id, buyer_id, order.seller_id, order.total_amount,
        )
        return OrderResponse.from_domain(order)

    async def create_checkout(
        self, db: AsyncSession, order_id: str, buyer_id: str, payer_email: str | None
    ) -> CheckoutResponse:
        """Ask the gateway for a payment intent and remember its reference."""
        order = await self._repo.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.buyer_id != buyer_id:
            raise NotEligibleError("only the buyer can pay for an order")
        next_status(order, OrderAction.PAY)  # raises unless still pending

        # The gateway call happens outside any row lock; the reference is then
        # stored only if the order is still pending.
        intent = await self._gateway.create_intent(order, order.total_amount, payer_email)
        try:
            updated = await self._repo.set_payment_reference(db, order.id, intent.reference)
            if updated is None:
                current = await self._repo.get_by_id(db, order.id)
                status = current.status if current else "missing"
                raise InvalidTransitionError("Order", order.id, status, "start checkout")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return CheckoutResponse(
            order_id=order.id,
            payment_reference=intent.reference,
            checkout_url=intent.checkout_url,
        )

    async def confirm_payment(
        self, db: AsyncSession, order_id: str, gateway_payment_id: str, amount: int
    ) -> OrderActionResponse:
        """Idempotent pending → paid. Gateways retry webhooks, so a repeat is a no-op.

        `amount` is what the gateway says it collected; it must equal the
        frozen order total.
        """
        try:
            order = await self._repo.get_for_update(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.status in ORDER_PAYMENT_SETTLED_STATUSES:
                await db.rollback()
                if order.gateway_payment_id not in (None, gateway_payment_id):
                    logger.error(
                        "Second payment for settled order: order=%s status=%s "
                        "settled_by=%s new_payment=%s amount=%d",
                        order.id, order.status, order.gateway_payment_id,
                        gateway_payment_id, amount,
                    )
                else:
                    logger.info(
                        "Payment confirmation ignored: order=%s already %s (payment=%s)",
                        order.id, order.status, gateway_payment_id,
                    )
                return OrderActionResponse(order=OrderResponse.from_domain(order), applied=False)
            if order.status == OrderStatus.CANCELLED.value:
                logger.error(
                    "Payment received for cancelled order: order=%s payment=%s amount=%d",
                    order.id, gateway_payment_id, amount,
                )
            new_status = next_status(order, OrderAction.PAY)
            if amount != order.total_amount:
                logger.error(
                    "Payment amount mismatch: order=%s payment=%s paid=%d expected=%d",
                    order.id, gateway_payment_id, amount, order.total_amount,
                )
                raise PaymentMismatchError(
                    order.id, f"paid {amount} cents, expected {order.total_amount} cents"
                )
            updated = await self._repo.transition_status(
                db,
                order.id,
                allowed_sources(OrderAction.PAY),
                new_status,
                gateway_payment_id=gateway_payment_id,
            )
            if updated is None:
                raise InternalError(f"Lost update on locked order {order.id}")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Payment confirmed: order=%s payment=%s", updated.id, gateway_payment_id)
        await publish_best_effort(
            self._notifier,
            [
                (
                    updated.seller_id,
                    NotificationEvent(
                        event_type="order.paid",
                        title="New sale",
                        message=(
                            f"Order {updated.id} was paid "
                            f"({cents_to_display(updated.total_amount)}). Funds are held in escrow."
                        ),
                        kind=NotificationType.SUCCESS.value,
                        payload={"order_id": updated.id},
                    ),
                ),
                (
                    updated.buyer_id,
                    NotificationEvent(
                        event_type="order.paid",
                        title="Payment confirmed",
                        message=f"Your payment for order {updated.id} was confirmed.",
                        kind=NotificationType.SUCCESS.value,
                        payload={"order_id": updated.id},
                    ),
                ),
            ],
        )
        return OrderActionResponse(order=OrderResponse.from_domain(updated))

    async def fail_payment(self, db: AsyncSession, order_id: str) -> OrderActionResponse:
        """Gateway reported failure: cancel if still pending, otherwise ignore."""
        try:
            order = await self._repo.get_for_update(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.status != OrderStatus.PENDING.value:
                await db.rollback()
                logger.info(
                    "Payment failure ignored: order=%s is %s", order.id, order.status
                )
                return OrderActionResponse(order=OrderResponse.from_domain(order), applied=False)
            updated = await self._transition(db, order, OrderAction.CANCEL)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order cancelled after payment failure: order=%s", updated.id)
        return OrderActionResponse(order=OrderResponse.from_domain(updated))

    async def complete_order(
        self, db: AsyncSession, order_id: str, actor_id: str
    ) -> OrderActionResponse:
        """Buyer confirms delivery: paid → completed, funds become withdrawable."""
        try:
            order = await self._repo.get_for_update(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.buyer_id != actor_id:
                raise NotEligibleError("only the buyer can confirm delivery")
            updated = await self._transition(db, order, OrderAction.COMPLETE)
            warnings = await self._consume_stock(db, updated)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order completed by buyer: order=%s", updated.id)
        await publish_best_effort(self._notifier, [self._released_event(updated)])
        return OrderActionResponse(order=OrderResponse.from_domain(updated), warnings=warnings)

    async def cancel_order(
        self, db: AsyncSession, order_id: str, actor_id: str
    ) -> OrderActionResponse:
        try:
            order = await self._repo.get_for_update(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            if not order.is_party(actor_id):
                raise NotEligibleError("only the buyer or seller can cancel an order")
            updated = await self._transition(db, order, OrderAction.CANCEL)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order cancelled: order=%s by=%s", updated.id, actor_id)
        return OrderActionResponse(order=OrderResponse.from_domain(updated))

    async def release_cleared_orders(
        self, db: AsyncSession, now: datetime | None = None
    ) -> ReleaseClearedResponse:
        """Clearing sweep: paid orders past the window become completed.

        Run periodically by an external scheduler (cron, admin endpoint);
        repeated runs are harmless since only 'paid' rows are touched.
        """
        cutoff = clearing_cutoff(now or utc_now(), settings.CLEARING_WINDOW_DAYS)
        try:
            released = await self._repo.complete_cleared(db, cutoff, _SWEEP_BATCH_SIZE)
            for order in released:
                for warning in await self._consume_stock(db, order):
                    logger.warning("Clearing sweep: %s", warning)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if released:
            logger.info("Clearing sweep released %d orders (cutoff=%s)", len(released), cutoff)
            await publish_best_effort(
                self._notifier, [self._released_event(o) for o in released]
            )
        return ReleaseClearedResponse(
            released_order_ids=[o.id for o in released],
            released_count=len(released),
            cutoff=cutoff,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_order(
        self, db: AsyncSession, order_id: str, actor_id: str, is_admin: bool = False
    ) -> OrderResponse:
        order = await self._repo.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if not is_admin and not order.is_party(actor_id):
            # Same answer as a missing order: do not leak existence
            raise OrderNotFoundError(order_id)
        return OrderResponse.from_domain(order)

    async def list_purchases(
        self, db: AsyncSession, buyer_id: str, status: str | None, cursor: str | None, limit: int
    ) -> OrderListResponse:
        orders = await self._repo.list_by_buyer(db, buyer_id, status, cursor, limit + 1)
        return _page(orders, limit)

    async def list_sales(
        self, db: AsyncSession, seller_id: str, status: str | None, cursor: str | None, limit: int
    ) -> OrderListResponse:
        orders = await self._repo.list_by_seller(db, seller_id, status, cursor, limit + 1)
        return _page(orders, limit)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _transition(self, db: AsyncSession, order: Order, action: OrderAction) -> Order:
        new_status = next_status(order, action)
        updated = await self._repo.transition_status(
            db, order.id, allowed_sources(action), new_status
        )
        if updated is None:
            raise InternalError(f"Lost update on locked order {order.id}")
        return updated

    async def _consume_stock(self, db: AsyncSession, order: Order) -> list[str]:
        """Decrement listing stock on completion. Negative stock is a warning, not an error."""
        remaining = await self._products.decrement_stock(db, order.product_id, order.quantity)
        if remaining is None:
            msg = f"product {order.product_id} no longer exists; stock not updated"
            logger.warning("Order %s: %s", order.id, msg)
            return [msg]
        if remaining < 0:
            msg = f"product {order.product_id} oversold: stock is now {remaining}"
            logger.warning("Order %s: %s", order.id, msg)
            return [msg]
        return []

    @staticmethod
    def _released_event(order: Order) -> tuple[str, NotificationEvent]:
        return (
            order.seller_id,
            NotificationEvent(
                event_type="order.completed",
                title="Funds released",
                message=(
                    f"{cents_to_display(order.total_amount)} from order {order.id} "
                    "is now available for withdrawal."
                ),
                kind=NotificationType.SUCCESS.value,
                payload={"order_id": order.id},
            ),
        )


def _page(orders: list[Order], limit: int) -> OrderListResponse:
    # Caller fetched limit+1 rows to detect has_more without a COUNT(*)
    has_more = len(orders) > limit
    page = orders[:limit]
    return OrderListResponse(
        items=[OrderResponse.from_domain(o) for o in page],
        next_cursor=page[-1].id if has_more and page else None,
        has_more=has_more,
    )
