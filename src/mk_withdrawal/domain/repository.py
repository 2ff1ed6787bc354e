"""Repository Protocol for seller financial details and withdrawals."""

from collections.abc import Collection
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_withdrawal.domain.models import FinancialDetails, Withdrawal


class WithdrawalRepositoryProtocol(Protocol):
    async def upsert_details(
        self, db: AsyncSession, details: FinancialDetails
    ) -> FinancialDetails: ...

    async def get_details(self, db: AsyncSession, user_id: str) -> FinancialDetails | None: ...

    async def lock_details(self, db: AsyncSession, user_id: str) -> FinancialDetails | None: ...

    async def save(self, db: AsyncSession, withdrawal: Withdrawal) -> None: ...

    async def get_by_id(self, db: AsyncSession, withdrawal_id: str) -> Withdrawal | None: ...

    async def transition_status(
        self,
        db: AsyncSession,
        withdrawal_id: str,
        expected: Collection[str],
        new_status: str,
        reviewed_by: str,
        admin_note: str | None = None,
    ) -> Withdrawal | None: ...

    async def list_by_user(
        self, db: AsyncSession, user_id: str, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Withdrawal]: ...

    async def list_all(
        self, db: AsyncSession, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Withdrawal]: ...
