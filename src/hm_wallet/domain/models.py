"""Domain models for hm_wallet: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Wallet:
    id: str
    user_id: str
    balance: int             # minor units, never negative
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class WalletTransaction:
    id: int                          # BIGSERIAL
    wallet_id: str
    type: str                        # WalletTransactionType value
    amount: int                      # minor units, positive=credit negative=debit
    balance_after: int               # wallet balance snapshot after this line
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class BookingDeposit:
    id: str
    user_id: str
    booking_id: str
    amount: int
    status: str                      # DepositStatus value
    debit_transaction_id: int | None = None
    refund_amount: int | None = None
    refund_percentage: int | None = None
    refund_reason: str | None = None
    refund_transaction_id: int | None = None
    refunded_at: datetime | None = None
    created_at: datetime | None = None
