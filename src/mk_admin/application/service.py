"""Admin application service — mediation, payouts and ledger checks.

Every method here is reachable only through require_admin; the services it
delegates to enforce the state machines.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_balance.application.schemas import BalanceResponse, ReconciliationReport
from src.mk_balance.application.service import BalanceService
from src.mk_common.enums import DisputeResolution
from src.mk_dispute.application.schemas import DisputeActionResponse, DisputeListResponse
from src.mk_dispute.application.service import DisputeService
from src.mk_order.application.schemas import ReleaseClearedResponse
from src.mk_order.application.service import OrderService
from src.mk_withdrawal.application.schemas import WithdrawalListResponse, WithdrawalResponse
from src.mk_withdrawal.application.service import WithdrawalService

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        orders: OrderService | None = None,
        disputes: DisputeService | None = None,
        withdrawals: WithdrawalService | None = None,
        balances: BalanceService | None = None,
    ) -> None:
        self._orders = orders or OrderService()
        self._disputes = disputes or DisputeService()
        self._withdrawals = withdrawals or WithdrawalService()
        self._balances = balances or BalanceService()

    # --- disputes ---

    async def list_disputes(
        self, db: AsyncSession, status: str | None, cursor: str | None, limit: int
    ) -> DisputeListResponse:
        return await self._disputes.list_disputes(db, status, cursor, limit)

    async def review_dispute(
        self, db: AsyncSession, dispute_id: str, admin_id: str
    ) -> DisputeActionResponse:
        return await self._disputes.admin_review(db, dispute_id, admin_id)

    async def resolve_dispute(
        self,
        db: AsyncSession,
        dispute_id: str,
        admin_id: str,
        resolution: DisputeResolution,
        details: str | None,
    ) -> DisputeActionResponse:
        return await self._disputes.resolve(db, dispute_id, admin_id, resolution, details)

    # --- withdrawals ---

    async def list_withdrawals(
        self, db: AsyncSession, status: str | None, cursor: str | None, limit: int
    ) -> WithdrawalListResponse:
        return await self._withdrawals.list_withdrawals(db, status, cursor, limit)

    async def approve_withdrawal(
        self, db: AsyncSession, withdrawal_id: str, admin_id: str
    ) -> WithdrawalResponse:
        return await self._withdrawals.approve_withdrawal(db, withdrawal_id, admin_id)

    async def reject_withdrawal(
        self, db: AsyncSession, withdrawal_id: str, admin_id: str, note: str
    ) -> WithdrawalResponse:
        return await self._withdrawals.reject_withdrawal(db, withdrawal_id, admin_id, note)

    # --- ledger ---

    async def release_cleared_orders(
        self, db: AsyncSession, admin_id: str, now: datetime | None = None
    ) -> ReleaseClearedResponse:
        result = await self._orders.release_cleared_orders(db, now)
        logger.info(
            "Clearing sweep triggered by admin=%s: released=%d", admin_id, result.released_count
        )
        return result

    async def get_seller_balance(self, db: AsyncSession, seller_id: str) -> BalanceResponse:
        return await self._balances.get_balance(db, seller_id)

    async def verify_reconciliation(self, db: AsyncSession) -> ReconciliationReport:
        report = await self._balances.verify_reconciliation(db)
        if not report.ok:
            logger.error(
                "Reconciliation failed: %d violations across %d sellers",
                len(report.violations), report.sellers_checked,
            )
        return report
