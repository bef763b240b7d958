"""WalletBookingService: books an appointment and pays for it from the wallet.

Step order matters. Everything up to the duplicate check only reads, so a
rejected request leaves no trace. From the booking insert on, each step
commits independently and failures are undone by WalletPaymentSaga.
"""

import logging
from contextlib import AsyncExitStack
from datetime import date, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_booking.application.schemas import CreateWithWalletRequest, CreateWithWalletResponse
from src.hm_booking.domain.models import Booking, BookingDraft
from src.hm_booking.domain.repository import BookingRepositoryProtocol, ProfileRepositoryProtocol
from src.hm_booking.domain.saga import WalletPaymentSaga
from src.hm_booking.domain.vitals import VitalsSnapshot, build_booking_vitals
from src.hm_booking.infrastructure.persistence import BookingRepository
from src.hm_booking.infrastructure.profiles import ProfileRepository
from src.hm_booking.infrastructure.slot_lock import (
    SlotLock,
    SlotLockProtocol,
    slot_identities,
    slot_key,
)
from src.hm_common.database import committed_step
from src.hm_common.datetime_utils import minutes_since_midnight, parse_slot_date
from src.hm_common.enums import BookingStatus, PaymentMethod, PaymentStatus, VisitType
from src.hm_common.errors import (
    BookingInsertError,
    DuplicateBookingError,
    InvalidDateTimeError,
    ProviderNotBookableError,
)
from src.hm_common.money import parse_amount, to_major
from src.hm_common.redis_client import get_redis
from src.hm_gateway.auth.dependencies import CurrentUser, ensure_payer_matches
from src.hm_provider.application.service import ProviderResolver
from src.hm_provider.domain.models import ResolvedProvider
from src.hm_ticket.application.service import TicketGenerator
from src.hm_wallet.application.service import WalletApplicationService
from src.hm_wallet.domain.gate import check_affordability

logger = logging.getLogger(__name__)

PROVIDER_FK_CONSTRAINT = "bookings_provider_id_fkey"


def _is_provider_fk_violation(message: str) -> bool:
    return "foreign key" in message or PROVIDER_FK_CONSTRAINT in message


class WalletBookingService:
    def __init__(
        self,
        wallets: WalletApplicationService | None = None,
        providers: ProviderResolver | None = None,
        bookings: BookingRepositoryProtocol | None = None,
        profiles: ProfileRepositoryProtocol | None = None,
        tickets: TicketGenerator | None = None,
        slot_lock: SlotLockProtocol | None = None,
    ) -> None:
        self._wallets = wallets or WalletApplicationService()
        self._providers = providers or ProviderResolver()
        self._bookings: BookingRepositoryProtocol = bookings or BookingRepository()
        self._profiles: ProfileRepositoryProtocol = profiles or ProfileRepository()
        self._tickets = tickets or TicketGenerator(profiles=self._profiles)
        self._slot_lock = slot_lock

    async def _get_slot_lock(self) -> SlotLockProtocol:
        if self._slot_lock is None:
            self._slot_lock = SlotLock(await get_redis())
        return self._slot_lock

    async def create_with_wallet(
        self,
        db: AsyncSession,
        caller: CurrentUser,
        req: CreateWithWalletRequest,
    ) -> CreateWithWalletResponse:
        # 1. Identity
        ensure_payer_matches(caller, req.patient_id)
        amount = parse_amount(req.payment_amount)
        if not req.appointment_date or not req.appointment_time:
            raise InvalidDateTimeError("appointment_date and appointment_time are required")
        day = parse_slot_date(req.appointment_date)
        slot_minutes = minutes_since_midnight(req.appointment_time)
        slot_time = time(slot_minutes // 60, slot_minutes % 60)

        # 2. Provider + schedule
        provider = await self._providers.resolve(db, req.doctor_id, day, slot_minutes)

        # 3-4. Wallet gate
        wallet = await self._wallets.get_or_create_wallet(db, caller.id)
        check_affordability(wallet, amount)

        # 5. Duplicate guard, held until the payment is applied
        payer_ref = caller.id if req.patient_id else None
        lock = await self._get_slot_lock()
        async with AsyncExitStack() as held:
            for identity in slot_identities(payer_ref, req.patient_email, req.patient_phone):
                key = slot_key(day, slot_time, provider.provider_id, identity)
                await held.enter_async_context(lock.hold(key))
            existing = await self._bookings.find_active_duplicate(
                db,
                appointment_date=day,
                appointment_time=slot_time,
                provider_id=provider.provider_id,
                payer_id=payer_ref,
                guest_email=req.patient_email,
                guest_phone=req.patient_phone,
            )
            if existing is not None:
                logger.info("Duplicate booking %s for slot %s %s", existing, day, slot_time)
                raise DuplicateBookingError()

            # 6. Vitals
            dependent_ids = req.dependent_ids()
            vitals = await self._snapshot_vitals(db, caller.id, dependent_ids, req)

            # 7. Booking
            draft = self._build_draft(
                req, caller, provider, day, slot_time, amount, dependent_ids, vitals
            )
            booking = await self._insert_booking(db, draft)

            # 8-9. Payment + deposit
            saga = WalletPaymentSaga(
                db, self._wallets.repo, self._bookings, booking, wallet, caller.id, amount
            )
            outcome = await saga.run()

        # 10. Ticket
        ticket_number = None
        if req.create_ticket:
            ticket_number = await self._tickets.generate(
                db,
                booking,
                caller_id=caller.id,
                patient_name=req.patient_name,
                patient_email=req.patient_email,
                patient_phone=req.patient_phone,
                per_dependent=req.per_dependent_vitals(),
                client_vitals=req.patient_vitals,
            )

        logger.info(
            "Booking %s paid from wallet %s: amount=%d balance_after=%d status=%s",
            booking.id, wallet.id, amount, outcome.wallet.balance, booking.status,
        )
        appointment = booking.to_dict()
        appointment["payment_amount"] = to_major(booking.payment_amount)
        return CreateWithWalletResponse(
            appointment=appointment,
            ticket_number=ticket_number,
            balance_after=to_major(outcome.wallet.balance),
        )

    async def _snapshot_vitals(
        self,
        db: AsyncSession,
        payer_id: str,
        dependent_ids: list[str],
        req: CreateWithWalletRequest,
    ) -> VitalsSnapshot:
        payer_profile = None
        dependent = None
        if dependent_ids:
            members = await self._profiles.get_family_members(db, payer_id, dependent_ids[:1])
            dependent = members[0] if members else None
        else:
            payer_profile = await self._profiles.get_profile(db, payer_id)
        return build_booking_vitals(
            payer_profile,
            dependent,
            bool(dependent_ids),
            req.per_dependent_vitals(),
            req.patient_vitals,
        )

    @staticmethod
    def _build_draft(
        req: CreateWithWalletRequest,
        caller: CurrentUser,
        provider: ResolvedProvider,
        day: date,
        slot_time: time,
        amount: int,
        dependent_ids: list[str],
        vitals: VitalsSnapshot,
    ) -> BookingDraft:
        status = BookingStatus.CONFIRMED if provider.auto_confirm else BookingStatus.PENDING
        return BookingDraft(
            patient_id=caller.id,
            provider_id=provider.provider_id,
            appointment_date=day,
            appointment_time=slot_time,
            status=status.value,
            payment_method=PaymentMethod.WALLET.value,
            payment_amount=amount,
            payment_status=PaymentStatus.PAID.value,
            visit_type=req.visit_type or VisitType.IN_PERSON.value,
            is_guest_booking=not req.patient_id,
            notes=req.notes,
            provider_display_name=req.doctor_name,
            provider_specialty=req.doctor_specialty,
            guest_name=req.patient_name,
            guest_email=req.patient_email,
            guest_phone=req.patient_phone,
            family_member_id=dependent_ids[0] if dependent_ids else None,
            family_member_ids=dependent_ids or None,
            booking_for_name=req.booking_for_name or req.patient_name or None,
            vitals=vitals.as_booking_columns(),
        )

    async def _insert_booking(self, db: AsyncSession, draft: BookingDraft) -> Booking:
        try:
            async with committed_step(db):
                booking = await self._bookings.insert(db, draft)
        except SQLAlchemyError as exc:
            message = str(getattr(exc, "orig", None) or exc)
            logger.error("Booking insert failed: %s", message)
            if _is_provider_fk_violation(message):
                raise ProviderNotBookableError() from exc
            raise BookingInsertError(message) from exc
        logger.info("Created booking %s (status=%s)", booking.id, booking.status)
        return booking
