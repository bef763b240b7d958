"""Cancellation refund policy for wallet deposits.

- Provider or system cancellation: 100%
- Patient, 48h or more before the slot: 100%
- Patient, 24h to 48h before: 50%
- Patient, under 24h: 0% (deposit forfeited)
"""

from datetime import datetime, timedelta

from src.hm_common.enums import CancelledBy, DepositStatus

FULL_REFUND_NOTICE = timedelta(hours=48)
PARTIAL_REFUND_NOTICE = timedelta(hours=24)
PARTIAL_REFUND_PERCENT = 50


def refund_percentage(slot_at: datetime, cancel_at: datetime, cancelled_by: CancelledBy) -> int:
    if cancelled_by in (CancelledBy.PROVIDER, CancelledBy.SYSTEM):
        return 100
    notice = slot_at - cancel_at
    if notice >= FULL_REFUND_NOTICE:
        return 100
    if notice >= PARTIAL_REFUND_NOTICE:
        return PARTIAL_REFUND_PERCENT
    return 0


def settled_status(percent: int) -> DepositStatus:
    return DepositStatus.FORFEITED if percent == 0 else DepositStatus.REFUNDED


def refund_description(percent: int, reason: str | None) -> str:
    if percent == 100:
        return f"Full refund - {reason or 'Appointment cancelled'}"
    return f"Partial refund ({percent}%) - {reason or 'Late cancellation'}"
