"""WithdrawalService — seller payouts against the derived balance.

request_withdrawal holds two locks while it reads the balance and inserts:
an in-process asyncio.Lock per seller (kept only while in use), and
SELECT ... FOR UPDATE on the seller's seller_financials row, which also holds
across processes.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_balance.application.service import BalanceService
from src.mk_common.cents import cents_to_display
from src.mk_common.enums import NotificationType, WithdrawalStatus
from src.mk_common.errors import (
    BelowMinimumWithdrawalError,
    InsufficientBalanceError,
    InvalidTransitionError,
    MissingFinancialDetailsError,
    WithdrawalNotFoundError,
)
from src.mk_common.id_generator import generate_id
from src.mk_notify.domain.dispatch import publish_best_effort
from src.mk_notify.domain.events import NotificationEvent, NotifierProtocol
from src.mk_notify.infrastructure.redis_notifier import RedisNotifier
from src.mk_withdrawal.application.schemas import (
    FinancialDetailsRequest,
    FinancialDetailsResponse,
    WithdrawalListResponse,
    WithdrawalResponse,
)
from src.mk_withdrawal.domain.models import FinancialDetails, Withdrawal
from src.mk_withdrawal.domain.repository import WithdrawalRepositoryProtocol
from src.mk_withdrawal.infrastructure.persistence import WithdrawalRepository

logger = logging.getLogger(__name__)

_PENDING_ONLY = frozenset({WithdrawalStatus.PENDING.value})


class WithdrawalService:
    def __init__(
        self,
        repo: WithdrawalRepositoryProtocol | None = None,
        balances: BalanceService | None = None,
        notifier: NotifierProtocol | None = None,
        min_withdrawal_cents: int | None = None,
    ) -> None:
        self._repo: WithdrawalRepositoryProtocol = repo or WithdrawalRepository()
        self._balances = balances or BalanceService()
        self._notifier: NotifierProtocol = notifier or RedisNotifier()
        self._min_cents = (
            settings.MIN_WITHDRAWAL_CENTS if min_withdrawal_cents is None else min_withdrawal_cents
        )
        self._seller_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    # ------------------------------------------------------------------
    # Financial details
    # ------------------------------------------------------------------

    async def save_financial_details(
        self, db: AsyncSession, user_id: str, body: FinancialDetailsRequest
    ) -> FinancialDetailsResponse:
        details = FinancialDetails(
            user_id=user_id,
            pix_key=body.pix_key,
            pix_key_type=body.pix_key_type.value,
            legal_name=body.legal_name,
            tax_id=body.tax_id,
        )
        try:
            saved = await self._repo.upsert_details(db, details)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Financial details saved: user=%s key_type=%s", user_id, saved.pix_key_type)
        return FinancialDetailsResponse.from_domain(saved)

    async def get_financial_details(
        self, db: AsyncSession, user_id: str
    ) -> FinancialDetailsResponse:
        details = await self._repo.get_details(db, user_id)
        if details is None:
            raise MissingFinancialDetailsError(user_id)
        return FinancialDetailsResponse.from_domain(details)

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    async def request_withdrawal(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> WithdrawalResponse:
        if amount <= 0 or amount < self._min_cents:
            raise BelowMinimumWithdrawalError(amount, max(1, self._min_cents))

        async with self._seller_lock(user_id):
            try:
                details = await self._repo.lock_details(db, user_id)
                if details is None:
                    raise MissingFinancialDetailsError(user_id)
                balance = await self._balances.compute(db, user_id)
                if amount > balance.available:
                    raise InsufficientBalanceError(amount, balance.available)
                withdrawal = Withdrawal.request(generate_id(), amount, details)
                await self._repo.save(db, withdrawal)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Withdrawal requested: id=%s user=%s amount=%d (available was %d)",
            withdrawal.id, user_id, amount, balance.available,
        )
        return WithdrawalResponse.from_domain(withdrawal)

    async def approve_withdrawal(
        self, db: AsyncSession, withdrawal_id: str, admin_id: str
    ) -> WithdrawalResponse:
        """pending → paid: the admin has sent the PIX transfer."""
        updated = await self._settle(db, withdrawal_id, admin_id, WithdrawalStatus.PAID, None)
        logger.info("Withdrawal paid: id=%s admin=%s", updated.id, admin_id)
        await publish_best_effort(
            self._notifier,
            [
                (
                    updated.user_id,
                    NotificationEvent(
                        event_type="withdrawal.paid",
                        title="Withdrawal paid",
                        message=f"Your withdrawal of {cents_to_display(updated.amount)} was sent.",
                        kind=NotificationType.SUCCESS.value,
                        payload={"withdrawal_id": updated.id},
                    ),
                )
            ],
        )
        return WithdrawalResponse.from_domain(updated)

    async def reject_withdrawal(
        self, db: AsyncSession, withdrawal_id: str, admin_id: str, note: str
    ) -> WithdrawalResponse:
        """pending → rejected: the reserved amount returns to available."""
        updated = await self._settle(db, withdrawal_id, admin_id, WithdrawalStatus.REJECTED, note)
        logger.info("Withdrawal rejected: id=%s admin=%s note=%r", updated.id, admin_id, note)
        await publish_best_effort(
            self._notifier,
            [
                (
                    updated.user_id,
                    NotificationEvent(
                        event_type="withdrawal.rejected",
                        title="Withdrawal rejected",
                        message=(
                            f"Your withdrawal of {cents_to_display(updated.amount)} was rejected: "
                            f"{note}. The amount is available again."
                        ),
                        kind=NotificationType.ERROR.value,
                        payload={"withdrawal_id": updated.id},
                    ),
                )
            ],
        )
        return WithdrawalResponse.from_domain(updated)

    async def list_my_withdrawals(
        self, db: AsyncSession, user_id: str, status: str | None, cursor: str | None, limit: int
    ) -> WithdrawalListResponse:
        items = await self._repo.list_by_user(db, user_id, status, cursor, limit + 1)
        return _page(items, limit)

    async def list_withdrawals(
        self, db: AsyncSession, status: str | None, cursor: str | None, limit: int
    ) -> WithdrawalListResponse:
        items = await self._repo.list_all(db, status, cursor, limit + 1)
        return _page(items, limit)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _settle(
        self,
        db: AsyncSession,
        withdrawal_id: str,
        admin_id: str,
        target: WithdrawalStatus,
        note: str | None,
    ) -> Withdrawal:
        action = "approve" if target is WithdrawalStatus.PAID else "reject"
        try:
            updated = await self._repo.transition_status(
                db, withdrawal_id, _PENDING_ONLY, target.value, admin_id, admin_note=note
            )
            if updated is None:
                current = await self._repo.get_by_id(db, withdrawal_id)
                if current is None:
                    raise WithdrawalNotFoundError(withdrawal_id)
                raise InvalidTransitionError("Withdrawal", withdrawal_id, current.status, action)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return updated

    @asynccontextmanager
    async def _seller_lock(self, user_id: str) -> AsyncIterator[None]:
        """Per-seller asyncio.Lock, dropped once nobody holds or waits on it."""
        lock = self._seller_locks.setdefault(user_id, asyncio.Lock())
        self._lock_users[user_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if self._lock_users[user_id] == 0:
                del self._lock_users[user_id]
                del self._seller_locks[user_id]


def _page(items: list[Withdrawal], limit: int) -> WithdrawalListResponse:
    has_more = len(items) > limit
    page = items[:limit]
    return WithdrawalListResponse(
        items=[WithdrawalResponse.from_domain(w) for w in page],
        next_cursor=page[-1].id if has_more and page else None,
        has_more=has_more,
    )
