"""PaymentService — turns a gateway payment notification into order moves.

The webhook body is untrusted. Only the payment id is taken from it; order,
status, amount and currency are re-read from the gateway and that record is
what confirms, cancels or contests the order.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.enums import ORDER_DISPUTABLE_STATUSES, DisputeReason, OrderStatus
from src.mk_common.errors import DuplicateDisputeError, NotEligibleError, PaymentMismatchError
from src.mk_dispute.application.service import DisputeService
from src.mk_order.application.schemas import OrderResponse
from src.mk_order.application.service import OrderService
from src.mk_payment.application.schemas import PaymentNotificationResponse
from src.mk_payment.domain.gateway import (
    APPROVED_STATUSES,
    FAILED_STATUSES,
    REVERSED_STATUSES,
    GatewayPayment,
    PaymentGatewayProtocol,
)
from src.mk_payment.infrastructure.http_gateway import HttpPaymentGateway

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(
        self,
        orders: OrderService | None = None,
        disputes: DisputeService | None = None,
        gateway: PaymentGatewayProtocol | None = None,
    ) -> None:
        self._orders = orders or OrderService()
        self._disputes = disputes or DisputeService()
        self._gateway: PaymentGatewayProtocol = gateway or HttpPaymentGateway()

    async def handle_notification(
        self, db: AsyncSession, payment_id: str
    ) -> PaymentNotificationResponse:
        payment = await self._gateway.get_payment(payment_id)
        order_id = payment.external_reference
        if not order_id:
            logger.warning(
                "Gateway payment %s has no external_reference; ignored", payment.payment_id
            )
            return _response(payment, "ignored")

        if payment.status in APPROVED_STATUSES:
            if payment.currency and payment.currency != settings.PAYMENT_CURRENCY:
                logger.error(
                    "Payment currency mismatch: order=%s payment=%s currency=%s",
                    order_id, payment.payment_id, payment.currency,
                )
                raise PaymentMismatchError(order_id, f"currency {payment.currency}")
            result = await self._orders.confirm_payment(
                db, order_id, payment.payment_id, payment.amount
            )
            action = "confirmed" if result.applied else "already_settled"
            return _response(payment, action, result.order)

        if payment.status in FAILED_STATUSES:
            result = await self._orders.fail_payment(db, order_id)
            return _response(payment, "cancelled" if result.applied else "ignored", result.order)

        if payment.status in REVERSED_STATUSES:
            return await self._reverse(db, payment, order_id)

        logger.info(
            "Payment notification ignored: order=%s payment=%s status=%s",
            order_id, payment.payment_id, payment.status,
        )
        return _response(payment, "ignored")

    async def _reverse(
        self, db: AsyncSession, payment: GatewayPayment, order_id: str
    ) -> PaymentNotificationResponse:
        """Refund or chargeback after the money reached escrow.

        A still-pending order is simply cancelled. A paid or completed one is
        frozen under a dispute so it cannot clear or be withdrawn; an admin
        then resolves it, normally as a refund.
        """
        order = await self._orders.get_order(db, order_id, actor_id="", is_admin=True)
        if order.status == OrderStatus.PENDING.value:
            result = await self._orders.fail_payment(db, order_id)
            return _response(payment, "cancelled", result.order)

        logger.error(
            "Payment reversed at gateway: order=%s payment=%s status=%s order_status=%s",
            order_id, payment.payment_id, payment.status, order.status,
        )
        if order.status not in ORDER_DISPUTABLE_STATUSES:
            return _response(payment, "flagged", order)
        try:
            opened = await self._disputes.open_dispute(
                db,
                order.buyer_id,
                order_id,
                DisputeReason.PAYMENT_REVERSED.value,
                f"Gateway payment {payment.payment_id} was {payment.status}.",
            )
        except (DuplicateDisputeError, NotEligibleError) as exc:
            # Already disputed, or moved on since it was read
            logger.error("Reversed order %s left for admins: %s", order_id, exc.message)
            return _response(payment, "flagged", order)
        return _response(payment, "disputed", opened.order, opened.dispute.id)


def _response(
    payment: GatewayPayment,
    action: str,
    order: OrderResponse | None = None,
    dispute_id: str | None = None,
) -> PaymentNotificationResponse:
    return PaymentNotificationResponse(
        payment_id=payment.payment_id,
        gateway_status=payment.status,
        action=action,
        order=order,
        dispute_id=dispute_id,
    )
