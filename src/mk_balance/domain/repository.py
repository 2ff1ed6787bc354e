"""Repository Protocol — per-status sums the calculator needs."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

StatusSums = dict[str, int]


class BalanceRepositoryProtocol(Protocol):
    async def get_status_sums(
        self, db: AsyncSession, seller_id: str
    ) -> tuple[StatusSums, StatusSums]: ...

    async def get_all_status_sums(
        self, db: AsyncSession
    ) -> dict[str, tuple[StatusSums, StatusSums]]: ...
