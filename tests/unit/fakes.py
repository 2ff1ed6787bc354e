"""In-memory repositories for end-to-end service scenarios.

They honour the same contracts as the SQL repositories: compare-and-swap
status updates return None when the expected status does not match, and
reads return copies so callers cannot mutate stored rows.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime

from src.mk_catalog.domain.models import Product
from src.mk_common.datetime_utils import utc_now
from src.mk_dispute.domain.models import Dispute, DisputeMessage
from src.mk_notify.domain.events import NotificationEvent
from src.mk_order.domain.models import Order
from src.mk_payment.domain.gateway import GatewayPayment, PaymentIntent
from src.mk_withdrawal.domain.models import FinancialDetails, Withdrawal


@dataclass
class Ledger:
    products: dict[str, Product] = field(default_factory=dict)
    orders: dict[str, Order] = field(default_factory=dict)
    disputes: dict[str, Dispute] = field(default_factory=dict)
    messages: list[DisputeMessage] = field(default_factory=list)
    details: dict[str, FinancialDetails] = field(default_factory=dict)
    withdrawals: dict[str, Withdrawal] = field(default_factory=dict)


def _page(rows: list, status: str | None, cursor_id: str | None, limit: int) -> list:
    rows = [r for r in rows if status is None or r.status == status]
    rows = [r for r in rows if cursor_id is None or r.id < cursor_id]
    rows.sort(key=lambda r: r.id, reverse=True)
    return [replace(r) for r in rows[:limit]]


class FakeProductRepository:
    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    async def get_product(self, db, product_id):
        p = self.ledger.products.get(product_id)
        return replace(p) if p else None

    async def decrement_stock(self, db, product_id, quantity):
        p = self.ledger.products.get(product_id)
        if p is None:
            return None
        p.stock -= quantity
        return p.stock


class FakeOrderRepository:
    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    async def save(self, db, order):
        await asyncio.sleep(0)
        order.created_at = order.created_at or utc_now()
        self.ledger.orders[order.id] = replace(order)

    async def get_by_id(self, db, order_id):
        o = self.ledger.orders.get(order_id)
        return replace(o) if o else None

    async def get_for_update(self, db, order_id):
        await asyncio.sleep(0)
        return await self.get_by_id(db, order_id)

    async def transition_status(
        self, db, order_id, expected, new_status, gateway_payment_id=None
    ):
        o = self.ledger.orders.get(order_id)
        if o is None or o.status not in expected:
            return None
        o.status = new_status
        if gateway_payment_id is not None:
            o.gateway_payment_id = gateway_payment_id
        if new_status == "paid" and o.paid_at is None:
            o.paid_at = utc_now()
        if new_status == "completed" and o.completed_at is None:
            o.completed_at = utc_now()
        return replace(o)

    async def set_payment_reference(self, db, order_id, reference):
        o = self.ledger.orders.get(order_id)
        if o is None or o.status != "pending":
            return None
        o.payment_reference = reference
        return replace(o)

    async def complete_cleared(self, db, cutoff: datetime, limit: int):
        due = sorted(
            (o for o in self.ledger.orders.values()
             if o.status == "paid" and o.paid_at is not None and o.paid_at <= cutoff),
            key=lambda o: o.paid_at,
        )[:limit]
        released = []
        for o in due:
            o.status = "completed"
            o.completed_at = utc_now()
            released.append(replace(o))
        return released

    async def list_by_buyer(self, db, buyer_id, status, cursor_id, limit):
        rows = [o for o in self.ledger.orders.values() if o.buyer_id == buyer_id]
        return _page(rows, status, cursor_id, limit)

    async def list_by_seller(self, db, seller_id, status, cursor_id, limit):
        rows = [o for o in self.ledger.orders.values() if o.seller_id == seller_id]
        return _page(rows, status, cursor_id, limit)


class FakeDisputeRepository:
    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    async def save(self, db, dispute):
        dispute.created_at = dispute.created_at or utc_now()
        self.ledger.disputes[dispute.id] = replace(dispute)

    async def get_by_id(self, db, dispute_id):
        d = self.ledger.disputes.get(dispute_id)
        return replace(d) if d else None

    async def get_for_update(self, db, dispute_id):
        return await self.get_by_id(db, dispute_id)

    async def get_active_for_order(self, db, order_id):
        for d in self.ledger.disputes.values():
            if d.order_id == order_id and d.is_active:
                return replace(d)
        return None

    async def transition_status(
        self, db, dispute_id, expected, new_status, admin_id=None, resolution_details=None
    ):
        d = self.ledger.disputes.get(dispute_id)
        if d is None or d.status not in expected:
            return None
        d.status = new_status
        if admin_id is not None:
            d.admin_id = admin_id
        if resolution_details is not None:
            d.resolution_details = resolution_details
        if new_status == "in_review":
            d.reviewed_at = utc_now()
        if new_status in ("resolved_refund", "resolved_release", "cancelled"):
            d.resolved_at = utc_now()
        return replace(d)

    async def list_for_user(self, db, user_id, status, cursor_id, limit):
        rows = [d for d in self.ledger.disputes.values() if d.is_party(user_id)]
        return _page(rows, status, cursor_id, limit)

    async def list_all(self, db, status, cursor_id, limit):
        return _page(list(self.ledger.disputes.values()), status, cursor_id, limit)

    async def save_message(self, db, message):
        message.created_at = utc_now()
        self.ledger.messages.append(replace(message))

    async def list_messages(self, db, dispute_id):
        return [replace(m) for m in self.ledger.messages if m.dispute_id == dispute_id]


class FakeBalanceRepository:
    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    def _sums(self, seller_id):
        orders: dict[str, int] = defaultdict(int)
        withdrawals: dict[str, int] = defaultdict(int)
        for o in self.ledger.orders.values():
            if o.seller_id == seller_id:
                orders[o.status] += o.total_amount
        for w in self.ledger.withdrawals.values():
            if w.user_id == seller_id:
                withdrawals[w.status] += w.amount
        return dict(orders), dict(withdrawals)

    async def get_status_sums(self, db, seller_id):
        await asyncio.sleep(0)
        return self._sums(seller_id)

    async def get_all_status_sums(self, db):
        owners = {o.seller_id for o in self.ledger.orders.values()}
        owners |= {w.user_id for w in self.ledger.withdrawals.values()}
        return {sid: self._sums(sid) for sid in owners}


class FakeWithdrawalRepository:
    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    async def upsert_details(self, db, details):
        details.updated_at = utc_now()
        self.ledger.details[details.user_id] = replace(details)
        return replace(details)

    async def get_details(self, db, user_id):
        d = self.ledger.details.get(user_id)
        return replace(d) if d else None

    async def lock_details(self, db, user_id):
        await asyncio.sleep(0)
        return await self.get_details(db, user_id)

    async def save(self, db, withdrawal):
        await asyncio.sleep(0)
        withdrawal.created_at = utc_now()
        self.ledger.withdrawals[withdrawal.id] = replace(withdrawal)

    async def get_by_id(self, db, withdrawal_id):
        w = self.ledger.withdrawals.get(withdrawal_id)
        return replace(w) if w else None

    async def transition_status(
        self, db, withdrawal_id, expected, new_status, reviewed_by, admin_note=None
    ):
        w = self.ledger.withdrawals.get(withdrawal_id)
        if w is None or w.status not in expected:
            return None
        w.status = new_status
        w.reviewed_by = reviewed_by
        if admin_note is not None:
            w.admin_note = admin_note
        if new_status == "paid":
            w.paid_at = utc_now()
        return replace(w)

    async def list_by_user(self, db, user_id, status, cursor_id, limit):
        rows = [w for w in self.ledger.withdrawals.values() if w.user_id == user_id]
        return _page(rows, status, cursor_id, limit)

    async def list_all(self, db, status, cursor_id, limit):
        return _page(list(self.ledger.withdrawals.values()), status, cursor_id, limit)


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, NotificationEvent]] = []

    async def publish(self, user_id, event):
        self.sent.append((user_id, event))

    def types_for(self, user_id: str) -> list[str]:
        return [e.event_type for uid, e in self.sent if uid == user_id]


class FakePaymentGateway:
    """Gateway whose payments are whatever the test registered."""

    def __init__(self) -> None:
        self.payments: dict[str, GatewayPayment] = {}

    def register(self, payment_id, order_id, status, amount, currency="BRL"):
        self.payments[payment_id] = GatewayPayment(
            payment_id=payment_id,
            external_reference=order_id,
            status=status,
            amount=amount,
            currency=currency,
        )

    async def create_intent(self, order, amount, payer_email):
        return PaymentIntent(reference=f"pref-{order.id}")

    async def get_payment(self, payment_id):
        return self.payments[payment_id]
