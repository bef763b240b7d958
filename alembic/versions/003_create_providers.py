"""003: create professionals and legacy doctors tables

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
    op.execute("""
        CREATE TABLE professionals (
            id                          UUID        PRIMARY KEY DEFAULT gen_random_uuid(),
            auth_user_id                UUID,
            type                        VARCHAR(30) NOT NULL DEFAULT 'doctor',
            business_name               VARCHAR(200),
            working_hours               JSONB       NOT NULL DEFAULT '{}'::jsonb,
            unavailable_dates           JSONB       NOT NULL DEFAULT '[]'::jsonb,
            auto_confirm_appointments   BOOLEAN     NOT NULL DEFAULT FALSE,
            created_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX idx_professionals_auth_user ON professionals (auth_user_id, type);"
    )
    op.execute("""
        CREATE TRIGGER trg_professionals_updated_at
            BEFORE UPDATE ON professionals
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON COLUMN professionals.working_hours IS "
        "'Per-day entries keyed by weekday name, with an optional weekdays fallback';"
    )

    # Legacy provider ids still held by old clients; maps to the auth user
    op.execute("""
        CREATE TABLE doctors (
            id          UUID        PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id     UUID        NOT NULL,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS doctors CASCADE;")
    op.execute("DROP TABLE IF EXISTS professionals CASCADE;")
