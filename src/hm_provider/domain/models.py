"""Domain models for hm_provider: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DayHours:
    """One working_hours entry, e.g. {"open": "09:00", "close": "17:00", "isOpen": true}."""

    is_open: bool | None = None
    open: str | None = None
    close: str | None = None

    @classmethod
    def from_mapping(cls, entry: dict[str, Any]) -> "DayHours":
        is_open = entry.get("isOpen")
        return cls(
            is_open=is_open if isinstance(is_open, bool) else None,
            open=entry.get("open"),
            close=entry.get("close"),
        )

    @property
    def closed(self) -> bool:
        # Only an explicit false closes the day
        return self.is_open is False


@dataclass
class Provider:
    id: str
    working_hours: dict[str, Any] = field(default_factory=dict)
    unavailable_dates: list[str] = field(default_factory=list)
    auto_confirm: bool = False
    auth_user_id: str | None = None


@dataclass(frozen=True)
class ResolvedProvider:
    provider_id: str | None
    auto_confirm: bool = False

    @classmethod
    def none(cls) -> "ResolvedProvider":
        return cls(provider_id=None, auto_confirm=False)
