"""WalletRepository: concrete implementation of WalletRepositoryProtocol.

Balance mutations are single atomic UPDATE ... RETURNING statements.
A debit that returns 0 rows means the balance could not cover the amount.

Transaction ownership: the CALLER commits (see hm_common.database.committed_step).
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_common.database import execute_read
from src.hm_common.enums import DepositStatus, ReferenceType, WalletTransactionType
from src.hm_common.errors import InternalError
from src.hm_wallet.domain.models import BookingDeposit, Wallet, WalletTransaction

# ---------------------------------------------------------------------------
# SQL: wallets
# ---------------------------------------------------------------------------

_WALLET_COLUMNS = "id, user_id, balance, created_at, updated_at"

_GET_WALLET_SQL = text(f"""
    SELECT {_WALLET_COLUMNS}
    FROM wallets
    WHERE user_id = :user_id
""")

_CREATE_WALLET_SQL = text(f"""
    INSERT INTO wallets (user_id, balance)
    VALUES (:user_id, 0)
    ON CONFLICT (user_id) DO NOTHING
    RETURNING {_WALLET_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE wallets
    SET balance = balance - :amount,
        updated_at = NOW()
    WHERE id = :wallet_id AND balance >= :amount
    RETURNING {_WALLET_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE wallets
    SET balance = balance + :amount,
        updated_at = NOW()
    WHERE id = :wallet_id
    RETURNING {_WALLET_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: wallet_transactions (append-only)
# ---------------------------------------------------------------------------

_TX_COLUMNS = (
    "id, wallet_id, type, amount, balance_after, "
    "reference_type, reference_id, description, created_at"
)

_INSERT_TX_SQL = text(f"""
    INSERT INTO wallet_transactions
        (wallet_id, type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:wallet_id, :type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING {_TX_COLUMNS}
""")

_FIND_BOOKING_DEBIT_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM wallet_transactions
    WHERE reference_type = :reference_type
      AND reference_id = :booking_id
      AND type = :type
    ORDER BY id
    LIMIT 1
""")

_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM wallet_transactions
    WHERE wallet_id = :wallet_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:type AS VARCHAR) IS NULL OR type = :type)
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: booking_deposits
# ---------------------------------------------------------------------------

_DEPOSIT_COLUMNS = (
    "id, user_id, booking_id, amount, status, debit_transaction_id, "
    "refund_amount, refund_percentage, refund_reason, refund_transaction_id, "
    "refunded_at, created_at"
)

_INSERT_DEPOSIT_SQL = text(f"""
    INSERT INTO booking_deposits
        (user_id, booking_id, amount, status, debit_transaction_id)
    VALUES
        (:user_id, :booking_id, :amount, :status, :debit_transaction_id)
    RETURNING {_DEPOSIT_COLUMNS}
""")

_GET_FROZEN_DEPOSIT_SQL = text(f"""
    SELECT {_DEPOSIT_COLUMNS}
    FROM booking_deposits
    WHERE booking_id = :booking_id AND status = :status
    LIMIT 1
""")

_SETTLE_DEPOSIT_SQL = text("""
    UPDATE booking_deposits
    SET status = :status,
        refund_amount = :refund_amount,
        refund_percentage = :refund_percentage,
        refund_reason = :refund_reason,
        refund_transaction_id = :refund_transaction_id,
        refunded_at = NOW(),
        updated_at = NOW()
    WHERE id = :deposit_id AND status = :frozen
    RETURNING id
""")


def _row_to_wallet(row: object) -> Wallet:
    return Wallet(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> WalletTransaction:
    return WalletTransaction(
        id=row.id,  # type: ignore[attr-defined]
        wallet_id=str(row.wallet_id),  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_deposit(row: object) -> BookingDeposit:
    return BookingDeposit(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        booking_id=str(row.booking_id),  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        debit_transaction_id=row.debit_transaction_id,  # type: ignore[attr-defined]
        refund_amount=row.refund_amount,  # type: ignore[attr-defined]
        refund_percentage=row.refund_percentage,  # type: ignore[attr-defined]
        refund_reason=row.refund_reason,  # type: ignore[attr-defined]
        refund_transaction_id=row.refund_transaction_id,  # type: ignore[attr-defined]
        refunded_at=row.refunded_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class WalletRepository:
    """Concrete repository: every balance change is atomic at the SQL level."""

    async def get_wallet_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Wallet | None:
        result = await execute_read(db, _GET_WALLET_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_wallet(row) if row else None

    async def create_wallet(self, db: AsyncSession, user_id: str) -> Wallet:
        result = await db.execute(_CREATE_WALLET_SQL, {"user_id": user_id})
        row = result.fetchone()
        if row is not None:
            return _row_to_wallet(row)
        # Lost a creation race: another request inserted it first
        existing = await self.get_wallet_by_user_id(db, user_id)
        if existing is None:
            raise InternalError(f"Wallet insert returned no rows for user {user_id}")
        return existing

    async def debit(
        self, db: AsyncSession, wallet_id: str, amount: int
    ) -> Wallet | None:
        result = await db.execute(_DEBIT_SQL, {"wallet_id": wallet_id, "amount": amount})
        row = result.fetchone()
        return _row_to_wallet(row) if row else None

    async def credit(
        self, db: AsyncSession, wallet_id: str, amount: int
    ) -> Wallet:
        result = await db.execute(_CREDIT_SQL, {"wallet_id": wallet_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Wallet not found: {wallet_id}")
        return _row_to_wallet(row)

    async def insert_transaction(
        self,
        db: AsyncSession,
        wallet_id: str,
        tx_type: str,
        amount: int,
        balance_after: int,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> WalletTransaction:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "wallet_id": wallet_id,
                "type": tx_type,
                "amount": amount,
                "balance_after": balance_after,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_transaction(row)

    async def list_transactions(
        self,
        db: AsyncSession,
        wallet_id: str,
        cursor_id: int | None,
        limit: int,
        tx_type: str | None,
    ) -> list[WalletTransaction]:
        result = await execute_read(
            db,
            _LIST_TX_SQL,
            {
                "wallet_id": wallet_id,
                "cursor_id": cursor_id,
                "type": tx_type,
                "limit": limit,
            },
        )
        return [_row_to_transaction(row) for row in result.fetchall()]

    async def find_booking_debit(
        self, db: AsyncSession, booking_id: str
    ) -> WalletTransaction | None:
        """The ledger row that paid for a booking, for bookings whose deposit row is missing."""
        result = await execute_read(
            db,
            _FIND_BOOKING_DEBIT_SQL,
            {
                "reference_type": ReferenceType.APPOINTMENT.value,
                "booking_id": booking_id,
                "type": WalletTransactionType.DEPOSIT.value,
            },
        )
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def insert_deposit(
        self,
        db: AsyncSession,
        user_id: str,
        booking_id: str,
        amount: int,
        debit_transaction_id: int,
    ) -> BookingDeposit:
        result = await db.execute(
            _INSERT_DEPOSIT_SQL,
            {
                "user_id": user_id,
                "booking_id": booking_id,
                "amount": amount,
                "status": DepositStatus.FROZEN.value,
                "debit_transaction_id": debit_transaction_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Deposit insert returned no rows")
        return _row_to_deposit(row)

    async def get_frozen_deposit(
        self, db: AsyncSession, booking_id: str
    ) -> BookingDeposit | None:
        result = await execute_read(
            db,
            _GET_FROZEN_DEPOSIT_SQL,
            {"booking_id": booking_id, "status": DepositStatus.FROZEN.value},
        )
        row = result.fetchone()
        return _row_to_deposit(row) if row else None

    async def settle_deposit(
        self,
        db: AsyncSession,
        deposit_id: str,
        status: str,
        refund_amount: int,
        refund_percentage: int,
        refund_reason: str,
        refund_transaction_id: int | None,
    ) -> bool:
        """Settle a frozen deposit. False if it was already settled."""
        result = await db.execute(
            _SETTLE_DEPOSIT_SQL,
            {
                "deposit_id": deposit_id,
                "frozen": DepositStatus.FROZEN.value,
                "status": status,
                "refund_amount": refund_amount,
                "refund_percentage": refund_percentage,
                "refund_reason": refund_reason,
                "refund_transaction_id": refund_transaction_id,
            },
        )
        return result.fetchone() is not None
