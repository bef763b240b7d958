"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Identity/Authorization
  2xxx: Wallet
  3xxx: Provider/Schedule
  4xxx: Booking
  5xxx: Ticket
  9xxx: System
"""

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.data = data
        super().__init__(message)


class ValidationError(AppError):
    """Request rejected before any mutation (HTTP 400)."""

    def __init__(self, code: int, message: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(code, message, 400, data)


class StorageError(AppError):
    """Underlying data-store failure (HTTP 500)."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 500)


# --- 1xxx: Identity/Authorization ---

class UnauthenticatedError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "You must be logged in to pay with wallet.", 401)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Wallet payment is only for your own account.") -> None:
        super().__init__(1002, message, 403)


# --- 2xxx: Wallet ---

class InsufficientFundsError(AppError):
    """balance and required are in major units, as the client sent them."""

    def __init__(self, balance: int | float, required: int | float) -> None:
        super().__init__(
            2001,
            "Insufficient balance",
            400,
            {"balance": balance, "required": required},
        )


class InvalidAmountError(ValidationError):
    def __init__(self) -> None:
        super().__init__(2002, "Invalid payment amount.")


class WalletCreationError(StorageError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, detail)


class DebitFailedError(StorageError):
    def __init__(self) -> None:
        super().__init__(2004, "Failed to deduct from wallet. Appointment not created.")


class LedgerWriteError(StorageError):
    def __init__(self) -> None:
        super().__init__(2005, "Failed to record transaction. Appointment not created.")


# --- 3xxx: Provider/Schedule ---

class DateUnavailableError(ValidationError):
    def __init__(self) -> None:
        super().__init__(
            3001,
            "This date is not available for the selected provider. Please choose another date.",
        )


class DayUnavailableError(ValidationError):
    def __init__(self) -> None:
        super().__init__(
            3002,
            "The provider is not available on this day. Please choose another date.",
        )


class OutsideBusinessHoursError(ValidationError):
    def __init__(self, open_time: str, close_time: str) -> None:
        super().__init__(
            3003,
            f"This time is outside the provider's hours ({open_time}-{close_time}). "
            "Please choose another time.",
            {"open": open_time, "close": close_time},
        )


class ProviderNotBookableError(ValidationError):
    def __init__(self) -> None:
        super().__init__(
            3004,
            "This provider cannot be booked here. Please choose a provider from the booking page.",
        )


# --- 4xxx: Booking ---

class InvalidDateTimeError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, detail)


class BookingInsertError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, detail)


class DuplicateBookingError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "An appointment already exists for this time slot.", 409)


class BookingNotFoundError(AppError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(4004, f"Appointment not found: {booking_id}", 404)


class BookingAlreadyCancelledError(ValidationError):
    def __init__(self) -> None:
        super().__init__(4005, "Appointment is already cancelled")


# --- 5xxx: Ticket ---

class TicketNumberExhaustedError(StorageError):
    def __init__(self, attempts: int) -> None:
        super().__init__(
            5001, f"Could not allocate a unique ticket number after {attempts} attempts"
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
