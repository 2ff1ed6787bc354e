"""OrderRepository Protocol — interface contract for persistence layer."""

from collections.abc import Collection
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_order.domain.models import Order


class OrderRepositoryProtocol(Protocol):
    async def save(self, db: AsyncSession, order: Order) -> None: ...

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def get_for_update(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def transition_status(
        self,
        db: AsyncSession,
        order_id: str,
        expected: Collection[str],
        new_status: str,
        gateway_payment_id: str | None = None,
    ) -> Order | None: ...

    async def set_payment_reference(
        self, db: AsyncSession, order_id: str, reference: str
    ) -> Order | None: ...

    async def complete_cleared(
        self, db: AsyncSession, cutoff: datetime, limit: int
    ) -> list[Order]: ...

    async def list_by_buyer(
        self, db: AsyncSession, buyer_id: str, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Order]: ...

    async def list_by_seller(
        self, db: AsyncSession, seller_id: str, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Order]: ...
