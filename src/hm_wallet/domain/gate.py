"""Affordability gate: the booking saga's single abort-early checkpoint."""

from src.hm_common.errors import InsufficientFundsError
from src.hm_common.money import to_major
from src.hm_wallet.domain.models import Wallet


def check_affordability(wallet: Wallet, amount: int) -> None:
    """Pure comparison. Raises InsufficientFundsError; never mutates anything."""
    if wallet.balance < amount:
        raise InsufficientFundsError(balance=to_major(wallet.balance), required=to_major(amount))
