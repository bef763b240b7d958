"""Vitals snapshot: health attributes copied onto a booking for provider display.

Precedence per field: a client-supplied value wins when it is neither None
nor an empty string; otherwise the stored profile value is kept. List-valued
profile fields (allergies, conditions, medications) are flattened to a
comma-joined string before the merge.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from datetime import date
from typing import Any

from src.hm_booking.domain.models import HealthProfile
from src.hm_common.datetime_utils import age_in_years


def merge_field(client_value: Any, stored_value: Any) -> Any:
    """Client value wins unless it is None or ""."""
    if client_value is None or client_value == "":
        return stored_value
    return client_value


def to_text(value: Any) -> str | None:
    """Flatten a stored list field into readable text.

    ["Penicillin", {"name": "Peanuts"}] -> "Penicillin, Peanuts"
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        parts = [
            str(entry.get("name") or "") if isinstance(entry, Mapping) else str(entry)
            for entry in value
        ]
        return ", ".join(p for p in parts if p) or None
    return str(value)


def to_measure(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_iso_date(value: Any) -> str | None:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str) and value.strip():
        return value.strip()[:10]
    return None


@dataclass(frozen=True)
class VitalsSnapshot:
    date_of_birth: str | None = None
    gender: str | None = None
    blood_type: str | None = None
    height_cm: float | None = None
    weight_kg: float | None = None
    allergies: str | None = None
    chronic_conditions: str | None = None
    current_medications: str | None = None

    @classmethod
    def from_profile(cls, profile: HealthProfile) -> "VitalsSnapshot":
        return cls(
            date_of_birth=to_iso_date(profile.date_of_birth),
            gender=profile.gender or None,
            blood_type=profile.blood_type or None,
            height_cm=to_measure(profile.height_cm),
            weight_kg=to_measure(profile.weight_kg),
            allergies=to_text(profile.allergies),
            chronic_conditions=to_text(profile.chronic_conditions),
            current_medications=to_text(profile.current_medications),
        )

    def overlay(self, client: Mapping[str, Any] | None) -> "VitalsSnapshot":
        if not client:
            return self
        normalizers = {
            "date_of_birth": to_iso_date,
            "height_cm": to_measure,
            "weight_kg": to_measure,
            "allergies": to_text,
            "chronic_conditions": to_text,
            "current_medications": to_text,
        }
        changes: dict[str, Any] = {}
        for f in fields(self):
            raw = client.get(f.name)
            if raw is None or raw == "":
                continue
            normalize = normalizers.get(f.name)
            value = normalize(raw) if normalize else str(raw)
            changes[f.name] = merge_field(value, getattr(self, f.name))
        return replace(self, **changes)

    def age_years(self, today: date | None = None) -> int | None:
        return age_in_years(self.date_of_birth, today)

    def as_booking_columns(self) -> dict[str, Any]:
        """Flattened patient_* columns of the bookings table."""
        return {f"patient_{key}": value for key, value in asdict(self).items()}

    def as_ticket_vitals(self, today: date | None = None) -> dict[str, Any]:
        data = asdict(self)
        data["age_years"] = self.age_years(today)
        return data


def select_overlay(
    dependent_id: str,
    per_dependent: Mapping[str, Mapping[str, Any]] | None,
    fallback: Mapping[str, Any] | None,
) -> Mapping[str, Any] | None:
    """The dependent's own override object, else the fallback (top-level) override."""
    if per_dependent:
        own = per_dependent.get(dependent_id)
        if own:
            return own
    return fallback


def build_booking_vitals(
    payer_profile: HealthProfile | None,
    dependent_profile: HealthProfile | None,
    dependent_requested: bool,
    per_dependent: Mapping[str, Mapping[str, Any]] | None,
    client_vitals: Mapping[str, Any] | None,
) -> VitalsSnapshot:
    """Snapshot for the booking row.

    Only the first requested dependent populates the booking columns; the
    ticket keeps all of them. A requested dependent that does not exist
    yields an empty snapshot.
    """
    if dependent_requested:
        if dependent_profile is None:
            return VitalsSnapshot()
        overlay = select_overlay(dependent_profile.id, per_dependent, client_vitals)
        return VitalsSnapshot.from_profile(dependent_profile).overlay(overlay)

    base = VitalsSnapshot.from_profile(payer_profile) if payer_profile else VitalsSnapshot()
    return base.overlay(client_vitals)
