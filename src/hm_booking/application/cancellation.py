"""CancellationService: cancels a booking and refunds what the payer paid.

All writes (booking status, credit, refund ledger row, deposit settlement)
share one transaction: unlike the booking saga there is no external step
between them, so there is nothing to compensate. The transaction opens by
claiming the booking with a conditional UPDATE; a concurrent cancel of the
same booking waits on that row and then matches nothing, so a deposit is
refunded at most once.

The refund comes from the booking's frozen deposit row. A paid booking can
lack one (deposit tracking in the booking saga is best effort), in which
case the refund is computed from the ledger row that debited the wallet.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_booking.application.schemas import CancelBookingResponse, RefundPreviewResponse
from src.hm_booking.domain.models import Booking
from src.hm_booking.domain.refund import refund_description, refund_percentage, settled_status
from src.hm_booking.domain.repository import BookingRepositoryProtocol
from src.hm_booking.infrastructure.persistence import BookingRepository
from src.hm_common.database import committed_step
from src.hm_common.datetime_utils import slot_datetime, utc_now
from src.hm_common.enums import BookingStatus, CancelledBy, ReferenceType, WalletTransactionType
from src.hm_common.errors import (
    BookingAlreadyCancelledError,
    BookingNotFoundError,
    ForbiddenError,
)
from src.hm_common.money import percentage_of, to_major
from src.hm_gateway.auth.dependencies import CurrentUser
from src.hm_provider.application.service import is_uuid
from src.hm_provider.domain.repository import ProviderRepositoryProtocol
from src.hm_provider.infrastructure.persistence import ProviderRepository
from src.hm_wallet.domain.models import BookingDeposit, WalletTransaction
from src.hm_wallet.domain.repository import WalletRepositoryProtocol
from src.hm_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


@dataclass
class PaidAmount:
    """What the payer paid for a booking and where it is recorded."""

    amount: int
    deposit: BookingDeposit | None = None
    debit: WalletTransaction | None = None

    @property
    def reference_type(self) -> str:
        """Refund ledger rows point at the deposit row, or at the booking without one."""
        if self.deposit is not None:
            return ReferenceType.DEPOSIT.value
        return ReferenceType.APPOINTMENT.value


def slot_start(booking: Booking) -> datetime:
    return slot_datetime(booking.appointment_date, booking.appointment_time)


class CancellationService:
    def __init__(
        self,
        bookings: BookingRepositoryProtocol | None = None,
        wallets: WalletRepositoryProtocol | None = None,
        providers: ProviderRepositoryProtocol | None = None,
    ) -> None:
        self._bookings: BookingRepositoryProtocol = bookings or BookingRepository()
        self._wallets: WalletRepositoryProtocol = wallets or WalletRepository()
        self._providers: ProviderRepositoryProtocol = providers or ProviderRepository()

    async def _load_for_caller(
        self, db: AsyncSession, booking_id: str, caller: CurrentUser
    ) -> tuple[Booking, CancelledBy]:
        """Return the booking and the role the caller acts in. 404 / 403 otherwise."""
        if not is_uuid(booking_id):
            raise BookingNotFoundError(booking_id)
        booking = await self._bookings.get_by_id(db, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)

        if booking.provider_id:
            provider = await self._providers.get_by_id(db, booking.provider_id)
            if provider is not None and provider.auth_user_id == caller.id:
                return booking, CancelledBy.PROVIDER
        if booking.patient_id == caller.id:
            return booking, CancelledBy.PATIENT
        raise ForbiddenError("Unauthorized to cancel this appointment")

    async def _find_paid(self, db: AsyncSession, booking_id: str) -> PaidAmount | None:
        deposit = await self._wallets.get_frozen_deposit(db, booking_id)
        if deposit is not None:
            return PaidAmount(amount=deposit.amount, deposit=deposit)
        debit = await self._wallets.find_booking_debit(db, booking_id)
        if debit is not None:
            logger.warning("Booking %s has no deposit row; refunding from ledger", booking_id)
            return PaidAmount(amount=abs(debit.amount), debit=debit)
        return None

    async def preview(
        self, db: AsyncSession, booking_id: str, caller: CurrentUser
    ) -> RefundPreviewResponse:
        booking, cancelled_by = await self._load_for_caller(db, booking_id, caller)
        now = utc_now()
        start = slot_start(booking)
        percent = refund_percentage(start, now, cancelled_by)
        paid = await self._find_paid(db, booking.id)
        paid_amount = paid.amount if paid else 0
        return RefundPreviewResponse(
            booking_id=booking.id,
            deposit_amount=to_major(paid_amount),
            refund_percentage=percent,
            refund_amount=to_major(percentage_of(paid_amount, percent)),
            hours_until_appointment=round((start - now).total_seconds() / 3600, 2),
        )

    async def cancel(
        self,
        db: AsyncSession,
        booking_id: str,
        caller: CurrentUser,
        reason: str | None,
    ) -> CancelBookingResponse:
        booking, cancelled_by = await self._load_for_caller(db, booking_id, caller)
        if booking.status == BookingStatus.CANCELLED.value:
            raise BookingAlreadyCancelledError()

        percent = refund_percentage(slot_start(booking), utc_now(), cancelled_by)
        paid = await self._find_paid(db, booking.id)
        refund_amount = percentage_of(paid.amount, percent) if paid else 0
        wallet_id = await self._refund_wallet_id(db, paid) if paid and refund_amount else None
        if refund_amount and wallet_id is None:
            logger.warning("No wallet to refund booking %s; refund not credited", booking.id)
            refund_amount = 0
        deposit_status = settled_status(percent).value if paid else None

        balance_after = None
        async with committed_step(db):
            claimed = await self._bookings.mark_cancelled(
                db, booking.id, deposit_status, cancelled_by.value, reason
            )
            if not claimed:
                raise BookingAlreadyCancelledError()

            refund_tx = None
            if paid is not None and wallet_id is not None:
                credited = await self._wallets.credit(db, wallet_id, refund_amount)
                refund_tx = await self._wallets.insert_transaction(
                    db,
                    wallet_id=wallet_id,
                    tx_type=WalletTransactionType.REFUND.value,
                    amount=refund_amount,
                    balance_after=credited.balance,
                    reference_type=paid.reference_type,
                    reference_id=paid.deposit.id if paid.deposit else booking.id,
                    description=refund_description(percent, reason),
                )
                balance_after = credited.balance

            if paid is not None and paid.deposit is not None:
                settled = await self._wallets.settle_deposit(
                    db,
                    deposit_id=paid.deposit.id,
                    status=deposit_status,
                    refund_amount=refund_amount,
                    refund_percentage=percent,
                    refund_reason=reason or f"Cancelled by {cancelled_by.value}",
                    refund_transaction_id=refund_tx.id if refund_tx else None,
                )
                if not settled:
                    raise BookingAlreadyCancelledError()

        logger.info(
            "Cancelled booking %s by %s: refund %d%% (%d)",
            booking.id, cancelled_by.value, percent, refund_amount,
        )
        return CancelBookingResponse(
            booking_id=booking.id,
            status=BookingStatus.CANCELLED.value,
            cancelled_by=cancelled_by.value,
            refund_percentage=percent,
            refund_amount=to_major(refund_amount),
            deposit_status=deposit_status or booking.deposit_status,
            balance_after=to_major(balance_after) if balance_after is not None else None,
        )

    async def _refund_wallet_id(self, db: AsyncSession, paid: PaidAmount) -> str | None:
        if paid.deposit is not None:
            wallet = await self._wallets.get_wallet_by_user_id(db, paid.deposit.user_id)
            return wallet.id if wallet else None
        return paid.debit.wallet_id if paid.debit else None
