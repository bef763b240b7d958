"""Domain models for hm_booking: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from typing import Any


@dataclass
class HealthProfile:
    """Stored health attributes of a payer profile or a dependent."""

    id: str
    full_name: str | None = None
    date_of_birth: date | str | None = None
    gender: str | None = None
    blood_type: str | None = None
    height_cm: float | None = None
    weight_kg: float | None = None
    allergies: Any = None               # text, or list of str / {"name": ...}
    chronic_conditions: Any = None
    current_medications: Any = None


@dataclass
class BookingDraft:
    """Values for a new bookings row, assembled before the insert."""

    patient_id: str
    provider_id: str | None
    appointment_date: date
    appointment_time: time
    status: str
    payment_method: str
    payment_amount: int
    payment_status: str
    visit_type: str
    is_guest_booking: bool
    notes: str | None = None
    provider_display_name: str | None = None
    provider_specialty: str | None = None
    guest_name: str | None = None
    guest_email: str | None = None
    guest_phone: str | None = None
    family_member_id: str | None = None
    family_member_ids: list[str] | None = None
    booking_for_name: str | None = None
    vitals: dict[str, Any] = field(default_factory=dict)


@dataclass
class Booking(BookingDraft):
    id: str = ""
    deposit_id: str | None = None
    deposit_status: str | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        vitals = data.pop("vitals")
        data.update(vitals)
        data["appointment_date"] = self.appointment_date.isoformat()
        data["appointment_time"] = self.appointment_time.strftime("%H:%M")
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        for key, value in data.items():
            if isinstance(value, date):
                data[key] = value.isoformat()
        return data
