"""Integer money utilities.

Balances and amounts are stored and computed as ints in the wallet
currency's minor unit (1 DZD = 100). The HTTP API speaks major units:
parse_amount converts inbound amounts, to_major converts outbound ones.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from config.settings import settings
from src.hm_common.errors import InvalidAmountError

MINOR_PER_MAJOR = 100


def parse_amount(raw: object) -> int:
    """Client amount in major units -> minor units.

    Any finite positive number or numeric string is accepted:
    2000 -> 200000, 1500.5 -> 150050, "1500.50" -> 150050.
    Sub-minor fractions round half up; an amount that rounds to 0 is invalid.
    """
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise InvalidAmountError()
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise InvalidAmountError() from None
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError()
    amount = int((value * MINOR_PER_MAJOR).to_integral_value(rounding=ROUND_HALF_UP))
    if amount <= 0:
        raise InvalidAmountError()
    return amount


def to_major(amount: int) -> int | float:
    """Minor units as a JSON number in major units: 200000 -> 2000, 150050 -> 1500.5."""
    if amount % MINOR_PER_MAJOR == 0:
        return amount // MINOR_PER_MAJOR
    return amount / MINOR_PER_MAJOR


def amount_to_display(amount: int) -> str:
    """Convert minor units to display string: 500000 -> '5,000.00 DZD', -1200 -> '-12.00 DZD'."""
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(amount), MINOR_PER_MAJOR)
    return f"{sign}{major:,}.{minor:02d} {settings.CURRENCY}"


def percentage_of(amount: int, percent: int) -> int:
    """Integer share of amount, rounded down (the platform never over-refunds)."""
    return amount * percent // 100
