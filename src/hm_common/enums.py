"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    WALLET = "wallet"


class PaymentStatus(str, Enum):
    PAID = "paid"


class VisitType(str, Enum):
    IN_PERSON = "in-person"
    VIDEO = "video"
    HOME = "home"


class DepositStatus(str, Enum):
    """booking_deposits.status: frozen until refunded or forfeited."""
    FROZEN = "frozen"
    REFUNDED = "refunded"
    FORFEITED = "forfeited"


class BookingDepositStatus(str, Enum):
    """bookings.deposit_status as shown to the patient."""
    PAID = "paid"
    REFUNDED = "refunded"
    FORFEITED = "forfeited"


class WalletTransactionType(str, Enum):
    # "deposit" = funds leaving the wallet to be held against a booking
    DEPOSIT = "deposit"
    REFUND = "refund"


class ReferenceType(str, Enum):
    APPOINTMENT = "appointment"
    DEPOSIT = "deposit"


class TicketType(str, Enum):
    APPOINTMENT = "appointment"


class TicketStatus(str, Enum):
    CONFIRMED = "confirmed"


class CancelledBy(str, Enum):
    PATIENT = "patient"
    PROVIDER = "provider"
    SYSTEM = "system"
