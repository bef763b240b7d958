"""BookingRepository: concrete implementation of BookingRepositoryProtocol.

The duplicate lookup has four shapes (provider bound or not, payer or guest
identity) because SQL `=` never matches NULL.

Transaction ownership: the CALLER commits (see hm_common.database.committed_step).
"""

from datetime import date, time
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_booking.domain.models import Booking, BookingDraft
from src.hm_common.database import execute_read
from src.hm_common.enums import BookingStatus
from src.hm_common.errors import InternalError

VITALS_COLUMNS = (
    "patient_date_of_birth",
    "patient_gender",
    "patient_blood_type",
    "patient_height_cm",
    "patient_weight_kg",
    "patient_allergies",
    "patient_chronic_conditions",
    "patient_current_medications",
)

_DRAFT_COLUMNS = (
    "patient_id",
    "provider_id",
    "appointment_date",
    "appointment_time",
    "status",
    "payment_method",
    "payment_amount",
    "payment_status",
    "visit_type",
    "is_guest_booking",
    "notes",
    "provider_display_name",
    "provider_specialty",
    "guest_name",
    "guest_email",
    "guest_phone",
    "family_member_id",
    "family_member_ids",
    "booking_for_name",
) + VITALS_COLUMNS

_BOOKING_COLUMNS = ", ".join(
    ("id",) + _DRAFT_COLUMNS + ("deposit_id", "deposit_status", "created_at")
)

_INSERT_SQL = text(f"""
    INSERT INTO bookings ({", ".join(_DRAFT_COLUMNS)})
    VALUES ({", ".join(":" + c for c in _DRAFT_COLUMNS)})
    RETURNING {_BOOKING_COLUMNS}
""")

_GET_BY_ID_SQL = text(f"""
    SELECT {_BOOKING_COLUMNS}
    FROM bookings
    WHERE id = :id
""")

_DELETE_SQL = text("DELETE FROM bookings WHERE id = :id")

_ATTACH_DEPOSIT_SQL = text("""
    UPDATE bookings
    SET deposit_id = :deposit_id,
        deposit_status = :deposit_status,
        updated_at = NOW()
    WHERE id = :id
""")

_MARK_CANCELLED_SQL = text("""
    UPDATE bookings
    SET status = :status,
        deposit_status = COALESCE(:deposit_status, deposit_status),
        cancelled_at = NOW(),
        cancelled_by = :cancelled_by,
        cancellation_reason = :reason,
        updated_at = NOW()
    WHERE id = :id AND status <> :status
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: duplicate guard
# ---------------------------------------------------------------------------

_DUPLICATE_BASE = """
    SELECT id
    FROM bookings
    WHERE appointment_date = :appointment_date
      AND appointment_time = :appointment_time
      AND status <> :cancelled
      AND {provider_clause}
      AND {identity_clause}
    LIMIT 1
"""

_PROVIDER_EQ = "provider_id = :provider_id"
_PROVIDER_NULL = "provider_id IS NULL"
_PAYER_EQ = "patient_id = :payer_id"
_GUEST_MATCH = "(guest_email = :guest_email OR guest_phone = :guest_phone)"

_DUPLICATE_SQL = {
    (has_provider, has_payer): text(
        _DUPLICATE_BASE.format(
            provider_clause=_PROVIDER_EQ if has_provider else _PROVIDER_NULL,
            identity_clause=_PAYER_EQ if has_payer else _GUEST_MATCH,
        )
    )
    for has_provider in (True, False)
    for has_payer in (True, False)
}


def _to_date(value: Any) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _row_to_booking(row: object) -> Booking:
    mapping = row._mapping  # type: ignore[attr-defined]
    vitals = {column: mapping[column] for column in VITALS_COLUMNS}
    if isinstance(vitals["patient_date_of_birth"], date):
        vitals["patient_date_of_birth"] = vitals["patient_date_of_birth"].isoformat()
    member_ids = mapping["family_member_ids"]
    deposit_id = mapping["deposit_id"]
    return Booking(
        id=str(mapping["id"]),
        patient_id=str(mapping["patient_id"]),
        provider_id=str(mapping["provider_id"]) if mapping["provider_id"] else None,
        appointment_date=mapping["appointment_date"],
        appointment_time=mapping["appointment_time"],
        status=mapping["status"],
        payment_method=mapping["payment_method"],
        payment_amount=mapping["payment_amount"],
        payment_status=mapping["payment_status"],
        visit_type=mapping["visit_type"],
        is_guest_booking=mapping["is_guest_booking"],
        notes=mapping["notes"],
        provider_display_name=mapping["provider_display_name"],
        provider_specialty=mapping["provider_specialty"],
        guest_name=mapping["guest_name"],
        guest_email=mapping["guest_email"],
        guest_phone=mapping["guest_phone"],
        family_member_id=(
            str(mapping["family_member_id"]) if mapping["family_member_id"] else None
        ),
        family_member_ids=[str(m) for m in member_ids] if member_ids else None,
        booking_for_name=mapping["booking_for_name"],
        vitals=vitals,
        deposit_id=str(deposit_id) if deposit_id else None,
        deposit_status=mapping["deposit_status"],
        created_at=mapping["created_at"],
    )


class BookingRepository:
    async def find_active_duplicate(
        self,
        db: AsyncSession,
        appointment_date: date,
        appointment_time: time,
        provider_id: str | None,
        payer_id: str | None,
        guest_email: str | None,
        guest_phone: str | None,
    ) -> str | None:
        statement = _DUPLICATE_SQL[(provider_id is not None, payer_id is not None)]
        params: dict[str, Any] = {
            "appointment_date": appointment_date,
            "appointment_time": appointment_time,
            "cancelled": BookingStatus.CANCELLED.value,
        }
        if provider_id is not None:
            params["provider_id"] = provider_id
        if payer_id is not None:
            params["payer_id"] = payer_id
        else:
            params["guest_email"] = guest_email
            params["guest_phone"] = guest_phone
        result = await execute_read(db, statement, params)
        row = result.fetchone()
        return str(row.id) if row else None

    async def insert(self, db: AsyncSession, draft: BookingDraft) -> Booking:
        params: dict[str, Any] = {
            column: getattr(draft, column)
            for column in _DRAFT_COLUMNS
            if column not in VITALS_COLUMNS
        }
        for column in VITALS_COLUMNS:
            params[column] = draft.vitals.get(column)
        params["patient_date_of_birth"] = _to_date(params["patient_date_of_birth"])

        result = await db.execute(_INSERT_SQL, params)
        row = result.fetchone()
        if row is None:
            raise InternalError("Booking insert returned no rows")
        return _row_to_booking(row)

    async def delete(self, db: AsyncSession, booking_id: str) -> None:
        await db.execute(_DELETE_SQL, {"id": booking_id})

    async def attach_deposit(
        self, db: AsyncSession, booking_id: str, deposit_id: str, deposit_status: str
    ) -> None:
        await db.execute(
            _ATTACH_DEPOSIT_SQL,
            {"id": booking_id, "deposit_id": deposit_id, "deposit_status": deposit_status},
        )

    async def get_by_id(self, db: AsyncSession, booking_id: str) -> Booking | None:
        result = await execute_read(db, _GET_BY_ID_SQL, {"id": booking_id})
        row = result.fetchone()
        return _row_to_booking(row) if row else None

    async def mark_cancelled(
        self,
        db: AsyncSession,
        booking_id: str,
        deposit_status: str | None,
        cancelled_by: str,
        reason: str | None,
    ) -> bool:
        """Cancel the booking. False if it was already cancelled."""
        result = await db.execute(
            _MARK_CANCELLED_SQL,
            {
                "id": booking_id,
                "status": BookingStatus.CANCELLED.value,
                "deposit_status": deposit_status,
                "cancelled_by": cancelled_by,
                "reason": reason,
            },
        )
        return result.fetchone() is not None
