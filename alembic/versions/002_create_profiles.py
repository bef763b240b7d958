"""002: create profiles and family_members tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # profiles.id is the auth user id issued by the managed auth backend
    op.execute("""
        CREATE TABLE profiles (
            id                  UUID            PRIMARY KEY,
            full_name           VARCHAR(200),
            email               VARCHAR(255),
            phone               VARCHAR(32),
            date_of_birth       DATE,
            gender              VARCHAR(20),
            blood_type          VARCHAR(5),
            height_cm           DOUBLE PRECISION,
            weight_kg           DOUBLE PRECISION,
            allergies           TEXT,
            chronic_conditions  TEXT,
            current_medications TEXT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_profiles_updated_at
            BEFORE UPDATE ON profiles
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE family_members (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            owner_id            UUID            NOT NULL,
            full_name           VARCHAR(200)    NOT NULL,
            relationship        VARCHAR(30),
            date_of_birth       DATE,
            gender              VARCHAR(20),
            blood_type          VARCHAR(5),
            height_cm           DOUBLE PRECISION,
            weight_kg           DOUBLE PRECISION,
            allergies           JSONB,
            chronic_conditions  JSONB,
            current_medications JSONB,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_family_members_owner ON family_members (owner_id);")
    op.execute("""
        CREATE TRIGGER trg_family_members_updated_at
            BEFORE UPDATE ON family_members
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON COLUMN family_members.allergies IS "
        "'JSON array of strings or {\"name\": ...} objects';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS family_members CASCADE;")
    op.execute("DROP TABLE IF EXISTS profiles CASCADE;")
