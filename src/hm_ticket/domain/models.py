"""Domain models for hm_ticket: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class Ticket:
    id: str
    ticket_number: str
    ticket_type: str
    status: str
    payer_id: str
    booking_id: str
    provider_id: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None


@dataclass
class TimelineEvent:
    ticket_id: str
    action: str
    description: str
    actor_id: str
    actor_type: str
    actor_name: str | None = None
