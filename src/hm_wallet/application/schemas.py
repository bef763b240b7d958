"""Pydantic schemas and cursor utilities for hm_wallet API."""

import base64
import json

from pydantic import BaseModel

from src.hm_common.money import amount_to_display, to_major

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    wallet_id: str
    balance: int | float  # major units
    balance_display: str

    @classmethod
    def from_wallet(cls, user_id: str, wallet_id: str, balance: int) -> "BalanceResponse":
        return cls(
            user_id=user_id,
            wallet_id=wallet_id,
            balance=to_major(balance),
            balance_display=amount_to_display(balance),
        )


class TransactionItem(BaseModel):
    id: int
    type: str
    amount: int | float  # major units
    amount_display: str
    balance_after: int | float
    balance_after_display: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool
