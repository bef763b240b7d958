"""Repository Protocols for bookings and health profiles."""

from datetime import date, time
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_booking.domain.models import Booking, BookingDraft, HealthProfile


class BookingRepositoryProtocol(Protocol):
    async def find_active_duplicate(
        self,
        db: AsyncSession,
        appointment_date: date,
        appointment_time: time,
        provider_id: str | None,
        payer_id: str | None,
        guest_email: str | None,
        guest_phone: str | None,
    ) -> str | None: ...

    async def insert(self, db: AsyncSession, draft: BookingDraft) -> Booking: ...

    async def delete(self, db: AsyncSession, booking_id: str) -> None: ...

    async def attach_deposit(
        self, db: AsyncSession, booking_id: str, deposit_id: str, deposit_status: str
    ) -> None: ...

    async def get_by_id(self, db: AsyncSession, booking_id: str) -> Booking | None: ...

    async def mark_cancelled(
        self,
        db: AsyncSession,
        booking_id: str,
        deposit_status: str | None,
        cancelled_by: str,
        reason: str | None,
    ) -> bool: ...


class ProfileRepositoryProtocol(Protocol):
    async def get_profile(self, db: AsyncSession, user_id: str) -> HealthProfile | None: ...

    async def get_family_members(
        self, db: AsyncSession, owner_id: str, member_ids: list[str]
    ) -> list[HealthProfile]: ...
