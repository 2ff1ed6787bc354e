"""Repository Protocol for disputes and their message threads."""

from collections.abc import Collection
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_dispute.domain.models import Dispute, DisputeMessage


class DisputeRepositoryProtocol(Protocol):
    async def save(self, db: AsyncSession, dispute: Dispute) -> None: ...

    async def get_by_id(self, db: AsyncSession, dispute_id: str) -> Dispute | None: ...

    async def get_for_update(self, db: AsyncSession, dispute_id: str) -> Dispute | None: ...

    async def get_active_for_order(self, db: AsyncSession, order_id: str) -> Dispute | None: ...

    async def transition_status(
        self,
        db: AsyncSession,
        dispute_id: str,
        expected: Collection[str],
        new_status: str,
        admin_id: str | None = None,
        resolution_details: str | None = None,
    ) -> Dispute | None: ...

    async def list_for_user(
        self, db: AsyncSession, user_id: str, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Dispute]: ...

    async def list_all(
        self, db: AsyncSession, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Dispute]: ...

    async def save_message(self, db: AsyncSession, message: DisputeMessage) -> None: ...

    async def list_messages(self, db: AsyncSession, dispute_id: str) -> list[DisputeMessage]: ...
