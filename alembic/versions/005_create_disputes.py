"""005: create disputes and dispute_messages tables

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE disputes (
            id                  VARCHAR(32)     PRIMARY KEY,
            order_id            VARCHAR(32)     NOT NULL REFERENCES orders (id),
            opener_id           VARCHAR(64)     NOT NULL REFERENCES users (id),
            seller_id           VARCHAR(64)     NOT NULL REFERENCES users (id),
            reason              VARCHAR(40)     NOT NULL,
            description         TEXT            NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'open',
            order_status_before VARCHAR(20)     NOT NULL,
            admin_id            VARCHAR(64)     REFERENCES users (id),
            resolution_details  TEXT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            reviewed_at         TIMESTAMPTZ,
            resolved_at         TIMESTAMPTZ,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_disputes_status       CHECK (status IN (
                'open', 'in_review', 'resolved_refund', 'resolved_release', 'cancelled'
            )),
            CONSTRAINT ck_disputes_reason       CHECK (reason IN (
                'not_delivered', 'not_as_described', 'invalid_credentials', 'fraud', 'other',
                'payment_reversed'
            )),
            CONSTRAINT ck_disputes_before       CHECK (order_status_before IN ('paid', 'completed'))
        );
    """)
    # At most one active dispute per order
    op.execute("""
        CREATE UNIQUE INDEX uq_disputes_active_order ON disputes (order_id)
        WHERE status IN ('open', 'in_review');
    """)
    op.execute("CREATE INDEX idx_disputes_opener ON disputes (opener_id, id DESC);")
    op.execute("CREATE INDEX idx_disputes_seller ON disputes (seller_id, id DESC);")
    op.execute("CREATE INDEX idx_disputes_status ON disputes (status, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_disputes_updated_at
            BEFORE UPDATE ON disputes
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE dispute_messages (
            id              VARCHAR(32)     PRIMARY KEY,
            dispute_id      VARCHAR(32)     NOT NULL REFERENCES disputes (id),
            sender_id       VARCHAR(64)     NOT NULL REFERENCES users (id),
            sender_role     VARCHAR(10)     NOT NULL,
            message         TEXT            NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_dispute_messages_role CHECK (sender_role IN ('buyer', 'seller', 'admin')),
            CONSTRAINT ck_dispute_messages_len  CHECK (LENGTH(message) BETWEEN 1 AND 2000)
        );
    """)
    op.execute("CREATE INDEX idx_dispute_messages_dispute ON dispute_messages (dispute_id, id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS dispute_messages CASCADE;")
    op.execute("DROP TABLE IF EXISTS disputes CASCADE;")
