"""DisputeRepository — raw SQL persistence implementation.

The table carries a partial unique index on order_id for open/in_review rows,
so a second active dispute fails at the database even if two requests race
past the service check.
"""

from collections.abc import Collection
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_dispute.domain.models import Dispute, DisputeMessage

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, order_id, opener_id, seller_id, reason, description, status,
    order_status_before, admin_id, resolution_details,
    created_at, reviewed_at, resolved_at, updated_at
"""

_INSERT_DISPUTE_SQL = text(f"""
    INSERT INTO disputes (id, order_id, opener_id, seller_id, reason,
        description, status, order_status_before)
    VALUES (:id, :order_id, :opener_id, :seller_id, :reason,
        :description, :status, :order_status_before)
    RETURNING {_SELECT_COLUMNS}
""")

_GET_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM disputes WHERE id = :id
""")

_GET_FOR_UPDATE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM disputes WHERE id = :id
    FOR UPDATE
""")

_GET_ACTIVE_FOR_ORDER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM disputes
    WHERE order_id = :order_id AND status IN ('open', 'in_review')
""")

# reviewed_at is stamped on the move to in_review; resolved_at on any close.
_TRANSITION_SQL = text(f"""
    UPDATE disputes
    SET status = CAST(:new_status AS TEXT),
        admin_id = COALESCE(CAST(:admin_id AS TEXT), admin_id),
        resolution_details = COALESCE(CAST(:resolution_details AS TEXT), resolution_details),
        reviewed_at = CASE WHEN CAST(:new_status AS TEXT) = 'in_review'
                           THEN NOW() ELSE reviewed_at END,
        resolved_at = CASE WHEN CAST(:new_status AS TEXT) IN
                               ('resolved_refund', 'resolved_release', 'cancelled')
                           THEN NOW() ELSE resolved_at END,
        updated_at = NOW()
    WHERE id = :id
      AND status = ANY(string_to_array(CAST(:expected_csv AS TEXT), ','))
    RETURNING {_SELECT_COLUMNS}
""")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM disputes
    WHERE (opener_id = :user_id OR seller_id = :user_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_ALL_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM disputes
    WHERE (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_INSERT_MESSAGE_SQL = text("""
    INSERT INTO dispute_messages (id, dispute_id, sender_id, sender_role, message)
    VALUES (:id, :dispute_id, :sender_id, :sender_role, :message)
    RETURNING created_at
""")

_LIST_MESSAGES_SQL = text("""
    SELECT id, dispute_id, sender_id, sender_role, message, created_at
    FROM dispute_messages
    WHERE dispute_id = :dispute_id
    ORDER BY id ASC
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_dispute(row: Any) -> Dispute:
    return Dispute(
        id=row.id,
        order_id=row.order_id,
        opener_id=row.opener_id,
        seller_id=row.seller_id,
        reason=row.reason,
        description=row.description,
        status=row.status,
        order_status_before=row.order_status_before,
        admin_id=row.admin_id,
        resolution_details=row.resolution_details,
        created_at=row.created_at,
        reviewed_at=row.reviewed_at,
        resolved_at=row.resolved_at,
        updated_at=row.updated_at,
    )


def _row_to_message(row: Any) -> DisputeMessage:
    return DisputeMessage(
        id=row.id,
        dispute_id=row.dispute_id,
        sender_id=row.sender_id,
        sender_role=row.sender_role,
        message=row.message,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class DisputeRepository:
    """Concrete implementation of DisputeRepositoryProtocol using raw SQL."""

    async def save(self, db: AsyncSession, dispute: Dispute) -> None:
        result = await db.execute(
            _INSERT_DISPUTE_SQL,
            {
                "id": dispute.id,
                "order_id": dispute.order_id,
                "opener_id": dispute.opener_id,
                "seller_id": dispute.seller_id,
                "reason": dispute.reason,
                "description": dispute.description,
                "status": dispute.status,
                "order_status_before": dispute.order_status_before,
            },
        )
        row = result.fetchone()
        if row is not None:
            dispute.created_at = row.created_at
            dispute.updated_at = row.updated_at

    async def get_by_id(self, db: AsyncSession, dispute_id: str) -> Dispute | None:
        result = await db.execute(_GET_BY_ID_SQL, {"id": dispute_id})
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def get_for_update(self, db: AsyncSession, dispute_id: str) -> Dispute | None:
        result = await db.execute(_GET_FOR_UPDATE_SQL, {"id": dispute_id})
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def get_active_for_order(self, db: AsyncSession, order_id: str) -> Dispute | None:
        result = await db.execute(_GET_ACTIVE_FOR_ORDER_SQL, {"order_id": order_id})
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def transition_status(
        self,
        db: AsyncSession,
        dispute_id: str,
        expected: Collection[str],
        new_status: str,
        admin_id: str | None = None,
        resolution_details: str | None = None,
    ) -> Dispute | None:
        result = await db.execute(
            _TRANSITION_SQL,
            {
                "id": dispute_id,
                "expected_csv": ",".join(sorted(expected)),
                "new_status": new_status,
                "admin_id": admin_id,
                "resolution_details": resolution_details,
            },
        )
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def list_for_user(
        self, db: AsyncSession, user_id: str, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Dispute]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {"user_id": user_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_dispute(row) for row in result.fetchall()]

    async def list_all(
        self, db: AsyncSession, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Dispute]:
        result = await db.execute(
            _LIST_ALL_SQL, {"status": status, "cursor_id": cursor_id, "limit": limit}
        )
        return [_row_to_dispute(row) for row in result.fetchall()]

    async def save_message(self, db: AsyncSession, message: DisputeMessage) -> None:
        result = await db.execute(
            _INSERT_MESSAGE_SQL,
            {
                "id": message.id,
                "dispute_id": message.dispute_id,
                "sender_id": message.sender_id,
                "sender_role": message.sender_role,
                "message": message.message,
            },
        )
        row = result.fetchone()
        if row is not None:
            message.created_at = row.created_at

    async def list_messages(self, db: AsyncSession, dispute_id: str) -> list[DisputeMessage]:
        result = await db.execute(_LIST_MESSAGES_SQL, {"dispute_id": dispute_id})
        return [_row_to_message(row) for row in result.fetchall()]
