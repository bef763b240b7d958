"""Unit tests for CancellationService: authorization, refund settlement, preview."""

import asyncio
from datetime import UTC, date, datetime, time
from unittest.mock import AsyncMock, patch

import pytest

from src.hm_booking.application.cancellation import CancellationService
from src.hm_booking.domain.models import Booking
from src.hm_common.errors import BookingAlreadyCancelledError, BookingNotFoundError, ForbiddenError
from src.hm_gateway.auth.dependencies import CurrentUser
from src.hm_provider.domain.models import Provider
from src.hm_wallet.domain.models import BookingDeposit, Wallet, WalletTransaction

BOOKING_ID = "c0ffee00-1111-4222-8333-444455556666"
PROVIDER_ID = "0b1c2d3e-4f50-4a6b-8c7d-9e0f1a2b3c4d"
PATIENT = CurrentUser(id="user-1")
DOCTOR = CurrentUser(id="doctor-auth-1")
# Slot is 2025-06-10 10:00 UTC
THREE_DAYS_BEFORE = datetime(2025, 6, 7, 10, 0, tzinfo=UTC)
THIRTY_HOURS_BEFORE = datetime(2025, 6, 9, 4, 0, tzinfo=UTC)
TWO_HOURS_BEFORE = datetime(2025, 6, 10, 8, 0, tzinfo=UTC)
# 2000 DZD in centimes; the wallet holds 3000 DZD after paying
PAID = 200000
BALANCE = 300000


def _make_booking(status: str = "confirmed") -> Booking:
    return Booking(
        id=BOOKING_ID,
        patient_id="user-1",
        provider_id=PROVIDER_ID,
        appointment_date=date(2025, 6, 10),
        appointment_time=time(10, 0),
        status=status,
        payment_method="wallet",
        payment_amount=PAID,
        payment_status="paid",
        visit_type="in-person",
        is_guest_booking=False,
        deposit_id="deposit-1",
        deposit_status="paid",
    )


def _make_debit() -> WalletTransaction:
    return WalletTransaction(
        id=77,
        wallet_id="wallet-9",
        type="deposit",
        amount=-PAID,
        balance_after=BALANCE,
        reference_type="appointment",
        reference_id=BOOKING_ID,
    )


def _make_service(
    booking: Booking | None = None, deposit: bool = True, debit: bool = False
):
    bookings = AsyncMock()
    bookings.get_by_id.return_value = booking or _make_booking()
    bookings.mark_cancelled.return_value = True

    wallets = AsyncMock()
    wallets.get_frozen_deposit.return_value = (
        BookingDeposit(
            id="deposit-1",
            user_id="user-1",
            booking_id=BOOKING_ID,
            amount=PAID,
            status="frozen",
            debit_transaction_id=77,
        )
        if deposit
        else None
    )
    wallets.find_booking_debit.return_value = _make_debit() if debit else None
    wallets.get_wallet_by_user_id.return_value = Wallet(
        id="wallet-1", user_id="user-1", balance=BALANCE
    )
    wallets.credit.side_effect = lambda db, wallet_id, amount: Wallet(
        id=wallet_id, user_id="user-1", balance=BALANCE + amount
    )
    wallets.insert_transaction.return_value = WalletTransaction(
        id=78, wallet_id="wallet-1", type="refund", amount=0, balance_after=0
    )
    wallets.settle_deposit.return_value = True

    providers = AsyncMock()
    providers.get_by_id.return_value = Provider(id=PROVIDER_ID, auth_user_id="doctor-auth-1")

    service = CancellationService(bookings=bookings, wallets=wallets, providers=providers)
    return service, bookings, wallets


def _at(now: datetime):
    return patch("src.hm_booking.application.cancellation.utc_now", return_value=now)


class TestAuthorization:
    async def test_stranger_is_forbidden(self) -> None:
        service, bookings, _ = _make_service()

        with pytest.raises(ForbiddenError) as exc_info:
            await service.cancel(AsyncMock(), BOOKING_ID, CurrentUser(id="intruder"), None)

        assert exc_info.value.message == "Unauthorized to cancel this appointment"
        bookings.mark_cancelled.assert_not_awaited()

    async def test_malformed_id_is_not_found(self) -> None:
        service, bookings, _ = _make_service()

        with pytest.raises(BookingNotFoundError):
            await service.cancel(AsyncMock(), "42", PATIENT, None)

        bookings.get_by_id.assert_not_awaited()

    async def test_missing_booking(self) -> None:
        service, bookings, _ = _make_service()
        bookings.get_by_id.return_value = None

        with pytest.raises(BookingNotFoundError) as exc_info:
            await service.cancel(AsyncMock(), BOOKING_ID, PATIENT, None)

        assert exc_info.value.http_status == 404

    async def test_already_cancelled(self) -> None:
        service, _, wallets = _make_service(_make_booking(status="cancelled"))

        with pytest.raises(BookingAlreadyCancelledError):
            await service.cancel(AsyncMock(), BOOKING_ID, PATIENT, None)

        wallets.credit.assert_not_awaited()


class TestCancel:
    async def test_patient_early_full_refund(self) -> None:
        service, bookings, wallets = _make_service()
        db = AsyncMock()

        with _at(THREE_DAYS_BEFORE):
            result = await service.cancel(db, BOOKING_ID, PATIENT, None)

        assert result.cancelled_by == "patient"
        assert result.refund_percentage == 100
        assert result.refund_amount == 2000
        assert result.balance_after == 5000
        assert result.deposit_status == "refunded"
        assert wallets.credit.await_args.args[1:] == ("wallet-1", PAID)
        tx_kwargs = wallets.insert_transaction.await_args.kwargs
        assert tx_kwargs["tx_type"] == "refund"
        assert tx_kwargs["amount"] == PAID
        assert tx_kwargs["reference_type"] == "deposit"
        assert tx_kwargs["reference_id"] == "deposit-1"
        assert wallets.settle_deposit.await_args.kwargs["refund_transaction_id"] == 78
        assert bookings.mark_cancelled.await_args.args[1:] == (
            BOOKING_ID, "refunded", "patient", None
        )
        db.commit.assert_awaited_once()

    async def test_patient_partial_refund(self) -> None:
        service, _, wallets = _make_service()

        with _at(THIRTY_HOURS_BEFORE):
            result = await service.cancel(AsyncMock(), BOOKING_ID, PATIENT, "Travelling")

        assert result.refund_percentage == 50
        assert result.refund_amount == 1000
        assert wallets.insert_transaction.await_args.kwargs["description"] == (
            "Partial refund (50%) - Travelling"
        )

    async def test_patient_late_forfeits(self) -> None:
        service, bookings, wallets = _make_service()

        with _at(TWO_HOURS_BEFORE):
            result = await service.cancel(AsyncMock(), BOOKING_ID, PATIENT, None)

        assert result.refund_amount == 0
        assert result.deposit_status == "forfeited"
        assert result.balance_after is None
        wallets.credit.assert_not_awaited()
        wallets.insert_transaction.assert_not_awaited()
        assert wallets.settle_deposit.await_args.kwargs["status"] == "forfeited"
        assert bookings.mark_cancelled.await_args.args[2] == "forfeited"

    async def test_provider_late_still_full_refund(self) -> None:
        service, _, _ = _make_service()

        with _at(TWO_HOURS_BEFORE):
            result = await service.cancel(AsyncMock(), BOOKING_ID, DOCTOR, "Emergency")

        assert result.cancelled_by == "provider"
        assert result.refund_percentage == 100
        assert result.refund_amount == 2000

    async def test_without_payment_only_marks_cancelled(self) -> None:
        service, bookings, wallets = _make_service(deposit=False)

        with _at(THREE_DAYS_BEFORE):
            result = await service.cancel(AsyncMock(), BOOKING_ID, PATIENT, None)

        assert result.refund_amount == 0
        assert result.deposit_status == "paid"
        wallets.find_booking_debit.assert_awaited_once()
        wallets.credit.assert_not_awaited()
        wallets.settle_deposit.assert_not_awaited()
        assert bookings.mark_cancelled.await_args.args[2] is None

    async def test_write_failure_rolls_back(self) -> None:
        service, _, wallets = _make_service()
        wallets.settle_deposit.side_effect = RuntimeError("db down")
        db = AsyncMock()

        with _at(THREE_DAYS_BEFORE), pytest.raises(RuntimeError):
            await service.cancel(db, BOOKING_ID, PATIENT, None)

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestRefundsAtMostOnce:
    async def test_lost_claim_writes_nothing(self) -> None:
        service, bookings, wallets = _make_service()
        bookings.mark_cancelled.return_value = False
        db = AsyncMock()

        with _at(THREE_DAYS_BEFORE), pytest.raises(BookingAlreadyCancelledError):
            await service.cancel(db, BOOKING_ID, PATIENT, None)

        wallets.credit.assert_not_awaited()
        wallets.insert_transaction.assert_not_awaited()
        wallets.settle_deposit.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_settled_deposit_rolls_back_the_credit(self) -> None:
        service, _, wallets = _make_service()
        wallets.settle_deposit.return_value = False
        db = AsyncMock()

        with _at(THREE_DAYS_BEFORE), pytest.raises(BookingAlreadyCancelledError):
            await service.cancel(db, BOOKING_ID, PATIENT, None)

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_concurrent_cancels_credit_once(self) -> None:
        service, bookings, wallets = _make_service()
        # The row lock lets exactly one conditional UPDATE match
        bookings.mark_cancelled.side_effect = [True, False]

        with _at(THREE_DAYS_BEFORE):
            results = await asyncio.gather(
                service.cancel(AsyncMock(), BOOKING_ID, PATIENT, None),
                service.cancel(AsyncMock(), BOOKING_ID, DOCTOR, None),
                return_exceptions=True,
            )

        assert sum(isinstance(r, BookingAlreadyCancelledError) for r in results) == 1
        assert wallets.credit.await_count == 1
        assert wallets.insert_transaction.await_count == 1
        assert wallets.settle_deposit.await_count == 1


class TestRefundFromLedger:
    async def test_provider_cancel_refunds_the_debit(self) -> None:
        service, bookings, wallets = _make_service(deposit=False, debit=True)

        with _at(TWO_HOURS_BEFORE):
            result = await service.cancel(AsyncMock(), BOOKING_ID, DOCTOR, None)

        assert result.refund_percentage == 100
        assert result.refund_amount == 2000
        assert result.balance_after == 5000
        assert result.deposit_status == "refunded"
        assert wallets.credit.await_args.args[1:] == ("wallet-9", PAID)
        tx_kwargs = wallets.insert_transaction.await_args.kwargs
        assert tx_kwargs["wallet_id"] == "wallet-9"
        assert tx_kwargs["reference_type"] == "appointment"
        assert tx_kwargs["reference_id"] == BOOKING_ID
        wallets.get_wallet_by_user_id.assert_not_awaited()
        wallets.settle_deposit.assert_not_awaited()
        assert bookings.mark_cancelled.await_args.args[2] == "refunded"

    async def test_patient_partial_refund(self) -> None:
        service, _, wallets = _make_service(deposit=False, debit=True)

        with _at(THIRTY_HOURS_BEFORE):
            result = await service.cancel(AsyncMock(), BOOKING_ID, PATIENT, None)

        assert result.refund_amount == 1000
        assert wallets.credit.await_args.args[1:] == ("wallet-9", PAID // 2)

    async def test_patient_late_forfeits(self) -> None:
        service, bookings, wallets = _make_service(deposit=False, debit=True)

        with _at(TWO_HOURS_BEFORE):
            result = await service.cancel(AsyncMock(), BOOKING_ID, PATIENT, None)

        assert result.refund_amount == 0
        assert result.deposit_status == "forfeited"
        wallets.credit.assert_not_awaited()
        assert bookings.mark_cancelled.await_args.args[2] == "forfeited"


class TestPreview:
    async def test_partial_window(self) -> None:
        service, bookings, wallets = _make_service()

        with _at(THIRTY_HOURS_BEFORE):
            result = await service.preview(AsyncMock(), BOOKING_ID, PATIENT)

        assert result.deposit_amount == 2000
        assert result.refund_percentage == 50
        assert result.refund_amount == 1000
        assert result.hours_until_appointment == 30.0
        wallets.credit.assert_not_awaited()
        bookings.mark_cancelled.assert_not_awaited()

    async def test_falls_back_to_ledger(self) -> None:
        service, _, _ = _make_service(deposit=False, debit=True)

        with _at(THREE_DAYS_BEFORE):
            result = await service.preview(AsyncMock(), BOOKING_ID, PATIENT)

        assert result.deposit_amount == 2000
        assert result.refund_amount == 2000

    async def test_no_payment(self) -> None:
        service, _, _ = _make_service(deposit=False)

        with _at(THREE_DAYS_BEFORE):
            result = await service.preview(AsyncMock(), BOOKING_ID, PATIENT)

        assert result.deposit_amount == 0
        assert result.refund_amount == 0
