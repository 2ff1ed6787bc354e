"""006: create seller_financials and withdrawals tables

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE seller_financials (
            user_id         VARCHAR(64)     PRIMARY KEY REFERENCES users (id),
            pix_key         VARCHAR(140)    NOT NULL,
            pix_key_type    VARCHAR(10)     NOT NULL,
            legal_name      VARCHAR(200)    NOT NULL,
            tax_id          VARCHAR(14)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_seller_financials_key_type CHECK (
                pix_key_type IN ('cpf', 'cnpj', 'email', 'phone', 'random')
            ),
            CONSTRAINT ck_seller_financials_tax_id CHECK (LENGTH(tax_id) IN (11, 14))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_seller_financials_updated_at
            BEFORE UPDATE ON seller_financials
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE seller_financials IS "
        "'Payout details; the row is locked FOR UPDATE while a withdrawal is requested';"
    )

    op.execute("""
        CREATE TABLE withdrawals (
            id              VARCHAR(32)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL REFERENCES users (id),
            amount          BIGINT          NOT NULL,
            pix_key         VARCHAR(140)    NOT NULL,
            legal_name      VARCHAR(200)    NOT NULL,
            tax_id          VARCHAR(14)     NOT NULL,
            status          VARCHAR(10)     NOT NULL DEFAULT 'pending',
            admin_note      VARCHAR(500),
            reviewed_by     VARCHAR(64)     REFERENCES users (id),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            paid_at         TIMESTAMPTZ,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_withdrawals_amount    CHECK (amount > 0),
            CONSTRAINT ck_withdrawals_status    CHECK (status IN ('pending', 'paid', 'rejected')),
            CONSTRAINT ck_withdrawals_paid_at   CHECK ((status = 'paid') = (paid_at IS NOT NULL))
        );
    """)
    op.execute("CREATE INDEX idx_withdrawals_user_status ON withdrawals (user_id, status);")
    op.execute("CREATE INDEX idx_withdrawals_status ON withdrawals (status, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_withdrawals_updated_at
            BEFORE UPDATE ON withdrawals
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS withdrawals CASCADE;")
    op.execute("DROP TABLE IF EXISTS seller_financials CASCADE;")
