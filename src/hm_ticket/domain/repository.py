"""Repository Protocol for tickets."""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_ticket.domain.models import Ticket, TimelineEvent


class TicketRepositoryProtocol(Protocol):
    async def insert_ticket(self, db: AsyncSession, values: dict[str, Any]) -> Ticket: ...

    async def insert_timeline(self, db: AsyncSession, event: TimelineEvent) -> None: ...
