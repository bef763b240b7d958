"""Human-readable ticket numbers: TKT-<YYYYMMDD>-<NNNNN>."""

import random
from datetime import date

TICKET_PREFIX = "TKT"
_SUFFIX_MIN = 10000
_SUFFIX_MAX = 99999


def generate_ticket_number(today: date, rng: random.Random | None = None) -> str:
    suffix = (rng or random).randint(_SUFFIX_MIN, _SUFFIX_MAX)
    return f"{TICKET_PREFIX}-{today.strftime('%Y%m%d')}-{suffix}"
