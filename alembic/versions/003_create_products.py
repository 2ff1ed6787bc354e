"""003: create products table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # stock has no lower bound: completion after a sell-out is recorded, not refused
    op.execute("""
        CREATE TABLE products (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL REFERENCES users (id),
            title               VARCHAR(200)    NOT NULL,
            price_cents         BIGINT          NOT NULL,
            stock               INT             NOT NULL DEFAULT 0,
            min_order_quantity  INT             NOT NULL DEFAULT 1,
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_products_price_gte_0  CHECK (price_cents >= 0),
            CONSTRAINT ck_products_min_qty      CHECK (min_order_quantity >= 1)
        );
    """)
    op.execute("CREATE INDEX idx_products_seller ON products (seller_id);")
    op.execute("""
        CREATE TRIGGER trg_products_updated_at
            BEFORE UPDATE ON products
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS products CASCADE;")
