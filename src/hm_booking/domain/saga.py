"""WalletPaymentSaga: pays for a freshly inserted booking from the payer's wallet.

Every step commits on its own; there is no enclosing transaction. The saga
walks CREATED -> DEBITED -> LOGGED -> DEPOSIT_TRACKED and each state names
the compensation that undoes it:

    state       failure in next step        compensation
    CREATED     debit                       delete booking
    DEBITED     ledger insert               credit amount back, delete booking
    LOGGED      deposit insert              none (deposit tracking is best effort)

Once LOGGED the payment is final. Deposit tracking and the booking patch that
follows it only add bookkeeping and are never rolled back.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_booking.domain.models import Booking
from src.hm_booking.domain.repository import BookingRepositoryProtocol
from src.hm_common.database import committed_step
from src.hm_common.enums import BookingDepositStatus, ReferenceType, WalletTransactionType
from src.hm_common.errors import (
    AppError,
    DebitFailedError,
    InsufficientFundsError,
    LedgerWriteError,
)
from src.hm_common.money import to_major
from src.hm_wallet.domain.models import BookingDeposit, Wallet, WalletTransaction
from src.hm_wallet.domain.repository import WalletRepositoryProtocol

logger = logging.getLogger(__name__)


class PaymentState(str, Enum):
    CREATED = "CREATED"
    DEBITED = "DEBITED"
    LOGGED = "LOGGED"
    DEPOSIT_TRACKED = "DEPOSIT_TRACKED"
    COMPENSATED = "COMPENSATED"


@dataclass
class PaymentOutcome:
    wallet: Wallet
    transaction: WalletTransaction
    deposit: BookingDeposit | None


class WalletPaymentSaga:
    def __init__(
        self,
        db: AsyncSession,
        wallets: WalletRepositoryProtocol,
        bookings: BookingRepositoryProtocol,
        booking: Booking,
        wallet: Wallet,
        payer_id: str,
        amount: int,
    ) -> None:
        self._db = db
        self._wallets = wallets
        self._bookings = bookings
        self.booking = booking
        self.wallet = wallet
        self.payer_id = payer_id
        self.amount = amount
        self.state = PaymentState.CREATED

    async def run(self) -> PaymentOutcome:
        debited = await self._debit()
        transaction = await self._record_transaction(debited)
        deposit = await self._track_deposit(transaction)
        return PaymentOutcome(wallet=debited, transaction=transaction, deposit=deposit)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _debit(self) -> Wallet:
        try:
            async with committed_step(self._db):
                debited = await self._wallets.debit(self._db, self.wallet.id, self.amount)
        except (SQLAlchemyError, AppError) as exc:
            logger.error("Wallet debit failed for booking %s: %s", self.booking.id, exc)
            await self.compensate()
            raise DebitFailedError() from exc

        if debited is None:
            # Balance drained between the affordability gate and this debit
            await self.compensate()
            current = await self._wallets.get_wallet_by_user_id(self._db, self.payer_id)
            raise InsufficientFundsError(
                balance=to_major(current.balance if current else 0),
                required=to_major(self.amount),
            )

        self.state = PaymentState.DEBITED
        logger.info(
            "Debited %d from wallet %s for booking %s (balance %d)",
            self.amount, self.wallet.id, self.booking.id, debited.balance,
        )
        return debited

    async def _record_transaction(self, debited: Wallet) -> WalletTransaction:
        booking = self.booking
        try:
            async with committed_step(self._db):
                transaction = await self._wallets.insert_transaction(
                    self._db,
                    wallet_id=self.wallet.id,
                    tx_type=WalletTransactionType.DEPOSIT.value,
                    amount=-self.amount,
                    balance_after=debited.balance,
                    reference_type=ReferenceType.APPOINTMENT.value,
                    reference_id=booking.id,
                    description=(
                        f"Deposit for appointment {booking.appointment_date.isoformat()} "
                        f"{booking.appointment_time.strftime('%H:%M')}"
                    ),
                )
        except (SQLAlchemyError, AppError) as exc:
            logger.error("Ledger insert failed for booking %s: %s", booking.id, exc)
            await self.compensate()
            raise LedgerWriteError() from exc

        self.state = PaymentState.LOGGED
        return transaction

    async def _track_deposit(self, transaction: WalletTransaction) -> BookingDeposit | None:
        try:
            async with committed_step(self._db):
                deposit = await self._wallets.insert_deposit(
                    self._db,
                    user_id=self.payer_id,
                    booking_id=self.booking.id,
                    amount=self.amount,
                    debit_transaction_id=transaction.id,
                )
        except (SQLAlchemyError, AppError) as exc:
            logger.error(
                "Deposit tracking failed for booking %s (payment kept): %s", self.booking.id, exc
            )
            return None

        self.state = PaymentState.DEPOSIT_TRACKED
        try:
            async with committed_step(self._db):
                await self._bookings.attach_deposit(
                    self._db, self.booking.id, deposit.id, BookingDepositStatus.PAID.value
                )
        except (SQLAlchemyError, AppError) as exc:
            logger.error(
                "Could not link deposit %s to booking %s: %s", deposit.id, self.booking.id, exc
            )
        else:
            self.booking.deposit_id = deposit.id
            self.booking.deposit_status = BookingDepositStatus.PAID.value
        return deposit

    # ------------------------------------------------------------------
    # Compensation
    # ------------------------------------------------------------------

    async def compensate(self) -> None:
        """Undo the current state. A failing compensation is logged, never raised,
        so the caller still sees the error that triggered it."""
        if self.state not in (PaymentState.CREATED, PaymentState.DEBITED):
            return

        if self.state is PaymentState.DEBITED:
            try:
                async with committed_step(self._db):
                    await self._wallets.credit(self._db, self.wallet.id, self.amount)
            except (SQLAlchemyError, AppError):
                logger.exception(
                    "Compensation failed: could not restore %d to wallet %s (booking %s)",
                    self.amount, self.wallet.id, self.booking.id,
                )

        try:
            async with committed_step(self._db):
                await self._bookings.delete(self._db, self.booking.id)
        except (SQLAlchemyError, AppError):
            logger.exception("Compensation failed: could not delete booking %s", self.booking.id)

        logger.warning("Compensated booking %s from state %s", self.booking.id, self.state.value)
        self.state = PaymentState.COMPENSATED
