"""Date/time utilities for booking slots."""

from datetime import date, datetime, time, timezone

from src.hm_common.errors import InvalidDateTimeError

_DAYS_PER_YEAR = 365.25


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def parse_slot_date(value: str) -> date:
    """Parse a 'YYYY-MM-DD' booking date."""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidDateTimeError(f"Invalid appointment date: {value!r}") from None


def minutes_since_midnight(value: str) -> int:
    """Parse 'HH:MM' (seconds tolerated, e.g. 'HH:MM:SS') into minutes since midnight."""
    parts = value.split(":") if isinstance(value, str) else []
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise InvalidDateTimeError(f"Invalid time: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise InvalidDateTimeError(f"Invalid time: {value!r}")
    return hours * 60 + minutes


def slot_datetime(slot_date: date, slot_time: time) -> datetime:
    """Slot start as an aware datetime; slot times are stored as UTC wall-clock."""
    return datetime.combine(slot_date, slot_time, tzinfo=timezone.utc)


def age_in_years(date_of_birth: date | str | None, today: date | None = None) -> int | None:
    """Whole years since date_of_birth using a 365.25-day year. None if unknown."""
    if date_of_birth is None or date_of_birth == "":
        return None
    if isinstance(date_of_birth, str):
        try:
            date_of_birth = date.fromisoformat(date_of_birth[:10])
        except ValueError:
            return None
    today = today or utc_now().date()
    return int((today - date_of_birth).days // _DAYS_PER_YEAR)
