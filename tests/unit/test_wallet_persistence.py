"""Tests for WalletRepository deposit settlement and ledger lookups against a mocked session."""

from unittest.mock import AsyncMock, MagicMock

from src.hm_wallet.infrastructure.persistence import WalletRepository


def _db_returning(rows: list[object]) -> AsyncMock:
    result = MagicMock()
    result.fetchone.return_value = rows[0] if rows else None
    result.fetchall.return_value = rows
    db = AsyncMock()
    db.execute.return_value = result
    return db


def _tx_row() -> MagicMock:
    row = MagicMock()
    row.id = 77
    row.wallet_id = "wallet-1"
    row.type = "deposit"
    row.amount = -200000
    row.balance_after = 300000
    row.reference_type = "appointment"
    row.reference_id = "booking-1"
    row.description = "Deposit for appointment 2025-06-10 10:00"
    row.created_at = None
    return row


async def _settle(db: AsyncMock) -> bool:
    return await WalletRepository().settle_deposit(
        db,
        deposit_id="deposit-1",
        status="refunded",
        refund_amount=200000,
        refund_percentage=100,
        refund_reason="Sick",
        refund_transaction_id=78,
    )


class TestSettleDeposit:
    async def test_settles_only_frozen_deposit(self) -> None:
        db = _db_returning([MagicMock()])

        assert await _settle(db) is True

        sql = str(db.execute.await_args.args[0])
        assert "status = :frozen" in sql
        assert "RETURNING id" in sql
        params = db.execute.await_args.args[1]
        assert params["frozen"] == "frozen"
        assert params["status"] == "refunded"

    async def test_already_settled_matches_nothing(self) -> None:
        assert await _settle(_db_returning([])) is False


class TestFindBookingDebit:
    async def test_maps_ledger_row(self) -> None:
        db = _db_returning([_tx_row()])

        tx = await WalletRepository().find_booking_debit(db, "booking-1")

        assert tx is not None
        assert tx.wallet_id == "wallet-1"
        assert tx.amount == -200000
        assert db.execute.await_args.args[1] == {
            "reference_type": "appointment",
            "booking_id": "booking-1",
            "type": "deposit",
        }

    async def test_missing(self) -> None:
        assert await WalletRepository().find_booking_debit(_db_returning([]), "booking-1") is None
