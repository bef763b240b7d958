"""TicketRepository: tickets and their append-only timeline.

Transaction ownership: the CALLER commits.
"""

from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_common.errors import InternalError
from src.hm_ticket.domain.models import Ticket, TimelineEvent

TICKET_NUMBER_CONSTRAINT = "uq_tickets_ticket_number"

_TICKET_COLUMNS = (
    "id, ticket_number, ticket_type, status, payer_id, booking_id, provider_id, "
    "metadata, created_at"
)

_INSERT_TICKET_SQL = text(f"""
    INSERT INTO tickets
        (ticket_number, ticket_type, status, payer_id, patient_name, patient_phone,
         provider_id, provider_type, booking_id,
         payment_method, payment_amount, payment_status, metadata)
    VALUES
        (:ticket_number, :ticket_type, :status, :payer_id, :patient_name, :patient_phone,
         :provider_id, :provider_type, :booking_id,
         :payment_method, :payment_amount, :payment_status, :metadata)
    RETURNING {_TICKET_COLUMNS}
""").bindparams(bindparam("metadata", type_=JSONB))

_INSERT_TIMELINE_SQL = text("""
    INSERT INTO ticket_timeline
        (ticket_id, action, description, actor_id, actor_type, actor_name)
    VALUES
        (:ticket_id, :action, :description, :actor_id, :actor_type, :actor_name)
""")


def _row_to_ticket(row: object) -> Ticket:
    provider_id = row.provider_id  # type: ignore[attr-defined]
    return Ticket(
        id=str(row.id),  # type: ignore[attr-defined]
        ticket_number=row.ticket_number,  # type: ignore[attr-defined]
        ticket_type=row.ticket_type,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        payer_id=str(row.payer_id),  # type: ignore[attr-defined]
        booking_id=str(row.booking_id),  # type: ignore[attr-defined]
        provider_id=str(provider_id) if provider_id else None,
        metadata=row.metadata,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TicketRepository:
    async def insert_ticket(self, db: AsyncSession, values: dict[str, Any]) -> Ticket:
        result = await db.execute(_INSERT_TICKET_SQL, values)
        row = result.fetchone()
        if row is None:
            raise InternalError("Ticket insert returned no rows")
        return _row_to_ticket(row)

    async def insert_timeline(self, db: AsyncSession, event: TimelineEvent) -> None:
        await db.execute(
            _INSERT_TIMELINE_SQL,
            {
                "ticket_id": event.ticket_id,
                "action": event.action,
                "description": event.description,
                "actor_id": event.actor_id,
                "actor_type": event.actor_type,
                "actor_name": event.actor_name,
            },
        )
