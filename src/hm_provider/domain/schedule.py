"""Provider schedule evaluation: pure, no I/O.

working_hours is a JSON object keyed by lower-case weekday name, with an
optional generic "weekdays" entry. Lookup order for a date is the explicit
list of keys below; when no key matches the day is unconstrained.
"""

from collections.abc import Sequence
from datetime import date

from src.hm_common.datetime_utils import minutes_since_midnight
from src.hm_common.errors import (
    DateUnavailableError,
    DayUnavailableError,
    OutsideBusinessHoursError,
)
from src.hm_provider.domain.models import DayHours, Provider

WEEKDAY_KEYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
DEFAULT_FALLBACK_KEYS: tuple[str, ...] = ("weekdays",)


class ScheduleResolver:
    def __init__(self, fallback_keys: Sequence[str] = DEFAULT_FALLBACK_KEYS) -> None:
        self._fallback_keys = tuple(fallback_keys)

    def lookup_keys(self, day: date) -> tuple[str, ...]:
        return (WEEKDAY_KEYS[day.weekday()], *self._fallback_keys)

    def hours_for(self, working_hours: dict[str, object], day: date) -> DayHours | None:
        for key in self.lookup_keys(day):
            entry = working_hours.get(key)
            if isinstance(entry, dict):
                return DayHours.from_mapping(entry)
        return None

    def evaluate(self, provider: Provider, day: date, slot_minutes: int | None) -> None:
        """Raise if the provider cannot take a booking at this date/time.

        Order: blackout date, closed day, business hours (inclusive bounds).
        slot_minutes=None skips the hours check.
        """
        if day.isoformat() in {str(d)[:10] for d in provider.unavailable_dates}:
            raise DateUnavailableError()

        hours = self.hours_for(provider.working_hours or {}, day)
        if hours is None:
            return
        if hours.closed:
            raise DayUnavailableError()
        if slot_minutes is None or hours.open is None or hours.close is None:
            return

        open_minutes = minutes_since_midnight(hours.open)
        close_minutes = minutes_since_midnight(hours.close)
        if slot_minutes < open_minutes or slot_minutes > close_minutes:
            raise OutsideBusinessHoursError(hours.open, hours.close)
