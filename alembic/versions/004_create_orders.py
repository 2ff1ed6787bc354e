"""004: create orders table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  VARCHAR(32)     PRIMARY KEY,
            buyer_id            VARCHAR(64)     NOT NULL REFERENCES users (id),
            seller_id           VARCHAR(64)     NOT NULL REFERENCES users (id),
            product_id          VARCHAR(64)     NOT NULL REFERENCES products (id),
            quantity            INT             NOT NULL,
            unit_price          BIGINT          NOT NULL,
            total_amount        BIGINT          NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'pending',
            payment_reference   VARCHAR(128),
            gateway_payment_id  VARCHAR(128),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            paid_at             TIMESTAMPTZ,
            completed_at        TIMESTAMPTZ,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_status         CHECK (status IN (
                'pending', 'paid', 'completed', 'cancelled',
                'disputed', 'resolved_refund', 'resolved_release'
            )),
            CONSTRAINT ck_orders_quantity       CHECK (quantity > 0),
            CONSTRAINT ck_orders_unit_price     CHECK (unit_price >= 0),
            CONSTRAINT ck_orders_total          CHECK (total_amount = quantity * unit_price),
            CONSTRAINT ck_orders_buyer_ne_seller CHECK (buyer_id <> seller_id)
        );
    """)
    op.execute("CREATE INDEX idx_orders_buyer ON orders (buyer_id, id DESC);")
    op.execute("CREATE INDEX idx_orders_seller_status ON orders (seller_id, status);")
    # Clearing sweep scans paid orders by age
    op.execute("CREATE INDEX idx_orders_paid_clearing ON orders (paid_at) WHERE status = 'paid';")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
