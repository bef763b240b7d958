"""005: create bookings table

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
        CREATE TABLE bookings (
            id                          UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            patient_id                  UUID            NOT NULL,
            provider_id                 UUID,
            provider_display_name       VARCHAR(200),
            provider_specialty          VARCHAR(200),
            appointment_date            DATE            NOT NULL,
            appointment_time            TIME            NOT NULL,
            status                      VARCHAR(20)     NOT NULL,
            notes                       TEXT,
            payment_method              VARCHAR(20)     NOT NULL,
            payment_amount              BIGINT          NOT NULL,
            payment_status              VARCHAR(20)     NOT NULL,
            visit_type                  VARCHAR(20)     NOT NULL DEFAULT 'in-person',
            is_guest_booking            BOOLEAN         NOT NULL DEFAULT FALSE,
            guest_name                  VARCHAR(200),
            guest_email                 VARCHAR(255),
            guest_phone                 VARCHAR(32),
            family_member_id            UUID,
            family_member_ids           UUID[],
            booking_for_name            VARCHAR(200),
            patient_date_of_birth       DATE,
            patient_gender              VARCHAR(20),
            patient_blood_type          VARCHAR(5),
            patient_height_cm           DOUBLE PRECISION,
            patient_weight_kg           DOUBLE PRECISION,
            patient_allergies           TEXT,
            patient_chronic_conditions  TEXT,
            patient_current_medications TEXT,
            deposit_id                  UUID,
            deposit_status              VARCHAR(20),
            cancelled_at                TIMESTAMPTZ,
            cancelled_by                VARCHAR(20),
            cancellation_reason         TEXT,
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT bookings_provider_id_fkey
                FOREIGN KEY (provider_id) REFERENCES professionals(id),
            CONSTRAINT ck_bookings_status
                CHECK (status IN ('pending', 'confirmed', 'completed', 'cancelled')),
            CONSTRAINT ck_bookings_payment_amount_gt_0 CHECK (payment_amount > 0),
            CONSTRAINT ck_bookings_deposit_status
                CHECK (deposit_status IS NULL OR deposit_status IN ('paid', 'refunded', 'forfeited')),
            CONSTRAINT ck_bookings_cancelled_by
                CHECK (cancelled_by IS NULL OR cancelled_by IN ('patient', 'provider', 'system'))
        );
    """)
    # Duplicate guard lookup
    op.execute("""
        CREATE INDEX idx_bookings_slot
            ON bookings (appointment_date, appointment_time, provider_id)
            WHERE status <> 'cancelled';
    """)
    op.execute("CREATE INDEX idx_bookings_patient ON bookings (patient_id, appointment_date);")
    op.execute("""
        CREATE TRIGGER trg_bookings_updated_at
            BEFORE UPDATE ON bookings
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bookings CASCADE;")
