"""BalanceService — read-only composition of repository sums and the calculator."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_balance.application.schemas import BalanceResponse, ReconciliationReport
from src.mk_balance.domain.calculator import Balance, compute_balance
from src.mk_balance.domain.invariants import balance_violations, is_in_debt
from src.mk_balance.domain.repository import BalanceRepositoryProtocol
from src.mk_balance.infrastructure.persistence import BalanceRepository


class BalanceService:
    def __init__(self, repo: BalanceRepositoryProtocol | None = None) -> None:
        self._repo: BalanceRepositoryProtocol = repo or BalanceRepository()

    async def compute(self, db: AsyncSession, seller_id: str) -> Balance:
        """Current balance inside the caller's transaction (used by withdrawals)."""
        order_sums, withdrawal_sums = await self._repo.get_status_sums(db, seller_id)
        return compute_balance(seller_id, order_sums, withdrawal_sums)

    async def get_balance(self, db: AsyncSession, seller_id: str) -> BalanceResponse:
        return BalanceResponse.from_balance(await self.compute(db, seller_id))

    async def verify_reconciliation(self, db: AsyncSession) -> ReconciliationReport:
        all_sums = await self._repo.get_all_status_sums(db)
        violations: list[str] = []
        in_debt: list[str] = []
        for seller_id, (order_sums, withdrawal_sums) in sorted(all_sums.items()):
            balance = compute_balance(seller_id, order_sums, withdrawal_sums)
            violations.extend(balance_violations(balance))
            if is_in_debt(balance):
                in_debt.append(seller_id)
        return ReconciliationReport(
            ok=not violations,
            sellers_checked=len(all_sums),
            violations=violations,
            sellers_in_debt=in_debt,
        )
