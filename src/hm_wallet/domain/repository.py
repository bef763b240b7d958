"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_wallet.domain.models import BookingDeposit, Wallet, WalletTransaction


class WalletRepositoryProtocol(Protocol):
    async def get_wallet_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> Wallet | None: ...

    async def create_wallet(self, db: AsyncSession, user_id: str) -> Wallet: ...

    async def debit(
        self, db: AsyncSession, wallet_id: str, amount: int
    ) -> Wallet | None: ...

    async def credit(
        self, db: AsyncSession, wallet_id: str, amount: int
    ) -> Wallet: ...

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
    ) -> WalletTransaction: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        wallet_id: str,
        cursor_id: int | None,
        limit: int,
        tx_type: str | None,
    ) -> list[WalletTransaction]: ...

    async def find_booking_debit(
        self, db: AsyncSession, booking_id: str
    ) -> WalletTransaction | None: ...

    async def insert_deposit(
        self,
        db: AsyncSession,
        user_id: str,
        booking_id: str,
        amount: int,
        debit_transaction_id: int,
    ) -> BookingDeposit: ...

    async def get_frozen_deposit(
        self, db: AsyncSession, booking_id: str
    ) -> BookingDeposit | None: ...

    async def settle_deposit(
        self,
        db: AsyncSession,
        deposit_id: str,
        status: str,
        refund_amount: int,
        refund_percentage: int,
        refund_reason: str,
        refund_transaction_id: int | None,
    ) -> bool: ...
