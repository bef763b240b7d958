"""WalletApplicationService: thin composition layer.

get_or_create_wallet commits its own insert: the booking saga treats wallet
creation as a step that must succeed before anything else is written.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_common.database import committed_step
from src.hm_common.errors import WalletCreationError
from src.hm_common.money import amount_to_display, to_major
from src.hm_wallet.application.schemas import (
    BalanceResponse,
    TransactionItem,
    TransactionListResponse,
    cursor_decode,
    cursor_encode,
)
from src.hm_wallet.domain.models import Wallet
from src.hm_wallet.domain.repository import WalletRepositoryProtocol
from src.hm_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class WalletApplicationService:
    def __init__(self, repo: WalletRepositoryProtocol | None = None) -> None:
        self._repo: WalletRepositoryProtocol = repo or WalletRepository()

    @property
    def repo(self) -> WalletRepositoryProtocol:
        return self._repo

    async def get_or_create_wallet(self, db: AsyncSession, owner_id: str) -> Wallet:
        wallet = await self._repo.get_wallet_by_user_id(db, owner_id)
        if wallet is not None:
            return wallet
        try:
            async with committed_step(db):
                wallet = await self._repo.create_wallet(db, owner_id)
        except SQLAlchemyError as exc:
            logger.error("Wallet creation failed for user %s: %s", owner_id, exc)
            raise WalletCreationError(f"Could not create wallet: {exc}") from exc
        logger.info("Created wallet %s for user %s", wallet.id, owner_id)
        return wallet

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        wallet = await self.get_or_create_wallet(db, user_id)
        return BalanceResponse.from_wallet(user_id, wallet.id, wallet.balance)

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        tx_type: str | None,
    ) -> TransactionListResponse:
        wallet = await self.get_or_create_wallet(db, user_id)
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_transactions(
            db, wallet.id, cursor_id, limit + 1, tx_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            TransactionItem(
                id=e.id,
                type=e.type,
                amount=to_major(e.amount),
                amount_display=amount_to_display(e.amount),
                balance_after=to_major(e.balance_after),
                balance_after_display=amount_to_display(e.balance_after),
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionListResponse(items=items, next_cursor=next_cursor, has_more=has_more)
