"""006: create booking_deposits table

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
        CREATE TABLE booking_deposits (
            id                      UUID        PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id                 UUID        NOT NULL,
            booking_id              UUID        NOT NULL REFERENCES bookings(id),
            amount                  BIGINT      NOT NULL,
            status                  VARCHAR(20) NOT NULL DEFAULT 'frozen',
            debit_transaction_id    BIGINT      REFERENCES wallet_transactions(id),
            refund_amount           BIGINT,
            refund_percentage       SMALLINT,
            refund_reason           TEXT,
            refund_transaction_id   BIGINT      REFERENCES wallet_transactions(id),
            refunded_at             TIMESTAMPTZ,
            created_at              TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_booking_deposits_booking  UNIQUE (booking_id),
            CONSTRAINT ck_booking_deposits_status
                CHECK (status IN ('frozen', 'refunded', 'forfeited')),
            CONSTRAINT ck_booking_deposits_refund_pct
                CHECK (refund_percentage IS NULL OR refund_percentage BETWEEN 0 AND 100)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_booking_deposits_updated_at
            BEFORE UPDATE ON booking_deposits
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        ALTER TABLE bookings
            ADD CONSTRAINT bookings_deposit_id_fkey
            FOREIGN KEY (deposit_id) REFERENCES booking_deposits(id);
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS bookings_deposit_id_fkey;")
    op.execute("DROP TABLE IF EXISTS booking_deposits CASCADE;")
