"""Unit tests for WalletPaymentSaga: each step and its compensation."""

from datetime import date, time
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.hm_booking.domain.models import Booking
from src.hm_booking.domain.saga import PaymentState, WalletPaymentSaga
from src.hm_common.errors import (
    DebitFailedError,
    InsufficientFundsError,
    InternalError,
    LedgerWriteError,
)
from src.hm_wallet.domain.models import BookingDeposit, Wallet, WalletTransaction


def _make_booking() -> Booking:
    return Booking(
        id="booking-1",
        patient_id="user-1",
        provider_id="prov-1",
        appointment_date=date(2025, 6, 2),
        appointment_time=time(10, 0),
        status="confirmed",
        payment_method="wallet",
        payment_amount=2000,
        payment_status="paid",
        visit_type="in-person",
        is_guest_booking=False,
    )


def _make_wallet(balance: int) -> Wallet:
    return Wallet(id="wallet-1", user_id="user-1", balance=balance)


def _make_tx(balance_after: int = 3000) -> WalletTransaction:
    return WalletTransaction(
        id=77,
        wallet_id="wallet-1",
        type="deposit",
        amount=-2000,
        balance_after=balance_after,
        reference_type="appointment",
        reference_id="booking-1",
    )


def _make_deposit() -> BookingDeposit:
    return BookingDeposit(
        id="deposit-1",
        user_id="user-1",
        booking_id="booking-1",
        amount=2000,
        status="frozen",
        debit_transaction_id=77,
    )


def _db_error() -> OperationalError:
    return OperationalError("UPDATE", {}, Exception("connection reset"))


def _saga(
    wallets: AsyncMock, bookings: AsyncMock, db: AsyncMock | None = None
) -> WalletPaymentSaga:
    return WalletPaymentSaga(
        db or AsyncMock(),
        wallets,
        bookings,
        _make_booking(),
        _make_wallet(5000),
        payer_id="user-1",
        amount=2000,
    )


def _happy_wallets() -> AsyncMock:
    wallets = AsyncMock()
    wallets.debit.return_value = _make_wallet(3000)
    wallets.insert_transaction.return_value = _make_tx()
    wallets.insert_deposit.return_value = _make_deposit()
    return wallets


class TestHappyPath:
    async def test_full_run(self) -> None:
        wallets = _happy_wallets()
        bookings = AsyncMock()
        saga = _saga(wallets, bookings)

        outcome = await saga.run()

        assert saga.state is PaymentState.DEPOSIT_TRACKED
        assert outcome.wallet.balance == 3000
        assert outcome.deposit is not None and outcome.deposit.id == "deposit-1"
        bookings.delete.assert_not_awaited()
        wallets.credit.assert_not_awaited()

    async def test_exactly_one_ledger_row_with_post_debit_balance(self) -> None:
        wallets = _happy_wallets()
        await _saga(wallets, AsyncMock()).run()

        wallets.insert_transaction.assert_awaited_once()
        kwargs = wallets.insert_transaction.await_args.kwargs
        assert kwargs["amount"] == -2000
        assert kwargs["balance_after"] == 3000
        assert kwargs["tx_type"] == "deposit"
        assert kwargs["reference_type"] == "appointment"
        assert kwargs["reference_id"] == "booking-1"
        assert kwargs["description"] == "Deposit for appointment 2025-06-02 10:00"

    async def test_deposit_links_ledger_row_and_patches_booking(self) -> None:
        wallets = _happy_wallets()
        bookings = AsyncMock()
        saga = _saga(wallets, bookings)

        await saga.run()

        assert wallets.insert_deposit.await_args.kwargs["debit_transaction_id"] == 77
        bookings.attach_deposit.assert_awaited_once()
        assert bookings.attach_deposit.await_args.args[1:] == ("booking-1", "deposit-1", "paid")
        assert saga.booking.deposit_id == "deposit-1"
        assert saga.booking.deposit_status == "paid"

    async def test_each_step_commits(self) -> None:
        db = AsyncMock()
        await _saga(_happy_wallets(), AsyncMock(), db).run()
        # debit, ledger, deposit, booking patch
        assert db.commit.await_count == 4


class TestDebitFailure:
    async def test_db_error_deletes_booking(self) -> None:
        wallets = AsyncMock()
        wallets.debit.side_effect = _db_error()
        bookings = AsyncMock()
        saga = _saga(wallets, bookings)

        with pytest.raises(DebitFailedError):
            await saga.run()

        bookings.delete.assert_awaited_once()
        assert bookings.delete.await_args.args[1] == "booking-1"
        wallets.credit.assert_not_awaited()
        wallets.insert_transaction.assert_not_awaited()
        assert saga.state is PaymentState.COMPENSATED

    async def test_drained_balance_deletes_booking(self) -> None:
        wallets = AsyncMock()
        wallets.debit.return_value = None
        wallets.get_wallet_by_user_id.return_value = _make_wallet(50000)
        bookings = AsyncMock()

        with pytest.raises(InsufficientFundsError) as exc_info:
            await _saga(wallets, bookings).run()

        assert exc_info.value.data == {"balance": 500, "required": 20}
        bookings.delete.assert_awaited_once()
        wallets.insert_transaction.assert_not_awaited()


class TestLedgerFailure:
    async def test_restores_balance_then_deletes_booking(self) -> None:
        wallets = AsyncMock()
        wallets.debit.return_value = _make_wallet(3000)
        wallets.insert_transaction.side_effect = _db_error()
        bookings = AsyncMock()
        saga = _saga(wallets, bookings)

        with pytest.raises(LedgerWriteError):
            await saga.run()

        wallets.credit.assert_awaited_once()
        assert wallets.credit.await_args.args[1:] == ("wallet-1", 2000)
        bookings.delete.assert_awaited_once()
        wallets.insert_deposit.assert_not_awaited()
        assert saga.state is PaymentState.COMPENSATED

    async def test_failed_credit_still_deletes_booking(self) -> None:
        wallets = AsyncMock()
        wallets.debit.return_value = _make_wallet(3000)
        wallets.insert_transaction.side_effect = _db_error()
        wallets.credit.side_effect = _db_error()
        bookings = AsyncMock()

        with pytest.raises(LedgerWriteError):
            await _saga(wallets, bookings).run()

        bookings.delete.assert_awaited_once()

    async def test_ledger_insert_without_row_is_compensated(self) -> None:
        wallets = AsyncMock()
        wallets.debit.return_value = _make_wallet(3000)
        wallets.insert_transaction.side_effect = InternalError("no rows")
        bookings = AsyncMock()
        saga = _saga(wallets, bookings)

        with pytest.raises(LedgerWriteError):
            await saga.run()

        assert wallets.credit.await_args.args[1:] == ("wallet-1", 2000)
        bookings.delete.assert_awaited_once()
        assert saga.state is PaymentState.COMPENSATED

    async def test_credit_for_missing_wallet_still_deletes_booking(self) -> None:
        wallets = AsyncMock()
        wallets.debit.return_value = _make_wallet(3000)
        wallets.insert_transaction.side_effect = _db_error()
        wallets.credit.side_effect = InternalError("Wallet not found: wallet-1")
        bookings = AsyncMock()

        with pytest.raises(LedgerWriteError):
            await _saga(wallets, bookings).run()

        bookings.delete.assert_awaited_once()


class TestDepositFailure:
    async def test_not_compensated(self) -> None:
        wallets = _happy_wallets()
        wallets.insert_deposit.side_effect = IntegrityError("INSERT", {}, Exception("fk"))
        bookings = AsyncMock()
        saga = _saga(wallets, bookings)

        outcome = await saga.run()

        assert outcome.deposit is None
        assert outcome.wallet.balance == 3000
        assert saga.state is PaymentState.LOGGED
        bookings.delete.assert_not_awaited()
        bookings.attach_deposit.assert_not_awaited()
        wallets.credit.assert_not_awaited()

    async def test_deposit_insert_without_row_keeps_payment(self) -> None:
        wallets = _happy_wallets()
        wallets.insert_deposit.side_effect = InternalError("Deposit insert returned no rows")
        bookings = AsyncMock()
        saga = _saga(wallets, bookings)

        outcome = await saga.run()

        assert outcome.deposit is None
        assert saga.state is PaymentState.LOGGED
        wallets.credit.assert_not_awaited()

    async def test_booking_patch_failure_is_ignored(self) -> None:
        wallets = _happy_wallets()
        bookings = AsyncMock()
        bookings.attach_deposit.side_effect = _db_error()
        saga = _saga(wallets, bookings)

        outcome = await saga.run()

        assert outcome.deposit is not None
        assert saga.booking.deposit_id is None
        bookings.delete.assert_not_awaited()


class TestCompensate:
    async def test_noop_after_payment_is_logged(self) -> None:
        wallets = AsyncMock()
        bookings = AsyncMock()
        saga = _saga(wallets, bookings)
        saga.state = PaymentState.LOGGED

        await saga.compensate()

        bookings.delete.assert_not_awaited()
        wallets.credit.assert_not_awaited()
