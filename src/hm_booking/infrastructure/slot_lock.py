"""Redis slot lock held while one booking request runs its saga.

The SQL duplicate lookup alone cannot stop two identical requests that are in
flight at the same time. The locks are keyed on the same tuple the lookup
matches on; whoever fails to take one is treated as a duplicate. A guest
booking matches on email OR phone, so it takes one lock per identifier.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import date, time
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.hm_common.errors import DuplicateBookingError

logger = logging.getLogger(__name__)

# Delete only if we still own the key
_COMPARE_AND_DELETE = """
if redis.call("get", KEYS[1]) == ARGV[1] then
  return redis.call("del", KEYS[1])
else
  return 0
end
"""


def slot_key(
    appointment_date: date,
    appointment_time: time,
    provider_id: str | None,
    identity: str,
) -> str:
    return (
        f"hm:slot:{appointment_date.isoformat()}:{appointment_time.strftime('%H:%M')}:"
        f"{provider_id or '-'}:{identity}"
    )


def slot_identities(
    payer_id: str | None, guest_email: str | None, guest_phone: str | None
) -> list[str]:
    """Identities to lock for one request, in a stable order."""
    if payer_id:
        return [payer_id]
    identities = []
    if guest_email:
        identities.append(f"guest-email:{guest_email}")
    if guest_phone:
        identities.append(f"guest-phone:{guest_phone}")
    return identities or ["guest:-"]


class SlotLockProtocol(Protocol):
    def hold(self, key: str) -> AbstractAsyncContextManager[None]: ...


class SlotLock:
    def __init__(self, redis: aioredis.Redis, ttl_seconds: int | None = None) -> None:
        self._redis = redis
        self._ttl = ttl_seconds or settings.SLOT_LOCK_TTL_SECONDS

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        token = uuid.uuid4().hex
        acquired = await self._redis.set(key, token, nx=True, ex=self._ttl)
        if not acquired:
            logger.info("Slot lock busy: %s", key)
            raise DuplicateBookingError()
        try:
            yield
        finally:
            try:
                await self._redis.eval(_COMPARE_AND_DELETE, 1, key, token)
            except RedisError as exc:
                # The key still expires after the TTL
                logger.warning("Failed to release slot lock %s: %s", key, exc)
