"""TicketGenerator: optional support ticket for a paid booking.

The ticket is a convenience artifact: by the time it is generated the
booking and payment are final, so any failure here is logged and the
booking still succeeds with ticket_number=None.
"""

import logging
import random
from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.hm_booking.domain.models import Booking
from src.hm_booking.domain.repository import ProfileRepositoryProtocol
from src.hm_booking.infrastructure.profiles import ProfileRepository
from src.hm_common.database import committed_step
from src.hm_common.datetime_utils import utc_now
from src.hm_common.enums import TicketStatus, TicketType
from src.hm_common.errors import TicketNumberExhaustedError
from src.hm_ticket.domain.models import Ticket, TimelineEvent
from src.hm_ticket.domain.repository import TicketRepositoryProtocol
from src.hm_ticket.domain.ticket_number import generate_ticket_number
from src.hm_ticket.domain.vitals import build_ticket_vitals
from src.hm_ticket.infrastructure.persistence import (
    TICKET_NUMBER_CONSTRAINT,
    TicketRepository,
)

logger = logging.getLogger(__name__)

PROVIDER_TYPE = "doctor"
TIMELINE_ACTION_CREATED = "created"
TIMELINE_DESCRIPTION = "Appointment ticket created (paid from wallet)"
ACTOR_TYPE_PATIENT = "patient"


class TicketGenerator:
    def __init__(
        self,
        repo: TicketRepositoryProtocol | None = None,
        profiles: ProfileRepositoryProtocol | None = None,
        rng: random.Random | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self._repo: TicketRepositoryProtocol = repo or TicketRepository()
        self._profiles: ProfileRepositoryProtocol = profiles or ProfileRepository()
        self._rng = rng
        self._max_attempts = max_attempts or settings.TICKET_NUMBER_MAX_ATTEMPTS

    async def generate(
        self,
        db: AsyncSession,
        booking: Booking,
        caller_id: str,
        patient_name: str | None,
        patient_email: str | None,
        patient_phone: str | None,
        per_dependent: Mapping[str, Mapping[str, Any]] | None,
        client_vitals: Mapping[str, Any] | None,
    ) -> str | None:
        try:
            metadata = await self._build_metadata(
                db, booking, patient_email, per_dependent, client_vitals
            )
            values = {
                "ticket_type": TicketType.APPOINTMENT.value,
                "status": TicketStatus.CONFIRMED.value,
                "payer_id": booking.patient_id,
                "patient_name": patient_name,
                "patient_phone": patient_phone,
                "provider_id": booking.provider_id,
                "provider_type": PROVIDER_TYPE,
                "booking_id": booking.id,
                "payment_method": booking.payment_method,
                "payment_amount": booking.payment_amount,
                "payment_status": booking.payment_status,
                "metadata": metadata,
            }
            ticket = await self._insert_with_unique_number(db, values, caller_id, patient_name)
        except Exception:
            logger.exception("Ticket generation failed for booking %s", booking.id)
            return None

        logger.info("Created ticket %s for booking %s", ticket.ticket_number, booking.id)
        return ticket.ticket_number

    async def _build_metadata(
        self,
        db: AsyncSession,
        booking: Booking,
        patient_email: str | None,
        per_dependent: Mapping[str, Mapping[str, Any]] | None,
        client_vitals: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        dependent_ids = booking.family_member_ids or []
        if dependent_ids:
            payer_profile = None
            dependents = await self._profiles.get_family_members(
                db, booking.patient_id, dependent_ids
            )
        else:
            payer_profile = await self._profiles.get_profile(db, booking.patient_id)
            dependents = []

        members, primary = build_ticket_vitals(
            payer_profile, dependents, dependent_ids, per_dependent, client_vitals
        )
        return {
            "patient_email": patient_email,
            "appointment_date": booking.appointment_date.isoformat(),
            "appointment_time": booking.appointment_time.strftime("%H:%M"),
            "notes": booking.notes,
            "visit_type": booking.visit_type,
            "family_member_id": booking.family_member_id,
            "family_member_ids": dependent_ids or None,
            "family_members_vitals": members or None,
            **primary,
        }

    async def _insert_with_unique_number(
        self,
        db: AsyncSession,
        values: dict[str, Any],
        caller_id: str,
        actor_name: str | None,
    ) -> Ticket:
        for attempt in range(1, self._max_attempts + 1):
            number = generate_ticket_number(utc_now().date(), self._rng)
            try:
                async with committed_step(db):
                    ticket = await self._repo.insert_ticket(db, {**values, "ticket_number": number})
                    await self._repo.insert_timeline(
                        db,
                        TimelineEvent(
                            ticket_id=ticket.id,
                            action=TIMELINE_ACTION_CREATED,
                            description=TIMELINE_DESCRIPTION,
                            actor_id=caller_id,
                            actor_type=ACTOR_TYPE_PATIENT,
                            actor_name=actor_name,
                        ),
                    )
            except IntegrityError as exc:
                if TICKET_NUMBER_CONSTRAINT not in str(exc.orig):
                    raise
                logger.info("Ticket number %s taken (attempt %d)", number, attempt)
                continue
            return ticket
        raise TicketNumberExhaustedError(self._max_attempts)
