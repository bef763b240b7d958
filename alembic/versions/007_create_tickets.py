"""007: create tickets and ticket_timeline tables

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE tickets (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            ticket_number   VARCHAR(32)     NOT NULL,
            ticket_type     VARCHAR(30)     NOT NULL,
            status          VARCHAR(20)     NOT NULL,
            payer_id        UUID            NOT NULL,
            patient_name    VARCHAR(200),
            patient_phone   VARCHAR(32),
            provider_id     UUID,
            provider_type   VARCHAR(30),
            booking_id      UUID            NOT NULL REFERENCES bookings(id),
            payment_method  VARCHAR(20),
            payment_amount  BIGINT,
            payment_status  VARCHAR(20),
            metadata        JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_tickets_ticket_number UNIQUE (ticket_number)
        );
    """)
    op.execute("CREATE INDEX idx_tickets_booking ON tickets (booking_id);")
    op.execute("""
        CREATE TRIGGER trg_tickets_updated_at
            BEFORE UPDATE ON tickets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE ticket_timeline (
            id              BIGSERIAL       PRIMARY KEY,
            ticket_id       UUID            NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
            action          VARCHAR(30)     NOT NULL,
            description     TEXT,
            actor_id        UUID,
            actor_type      VARCHAR(20),
            actor_name      VARCHAR(200),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_ticket_timeline_ticket ON ticket_timeline (ticket_id, id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ticket_timeline CASCADE;")
    op.execute("DROP TABLE IF EXISTS tickets CASCADE;")
