"""ProviderResolver: maps a caller-supplied provider token to a bookable provider.

Resolution never fails the request: an unknown provider leaves the booking
providerless. Schedule violations of a resolved provider do fail it.
"""

import logging
import re
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_provider.domain.models import Provider, ResolvedProvider
from src.hm_provider.domain.repository import ProviderRepositoryProtocol
from src.hm_provider.domain.schedule import ScheduleResolver
from src.hm_provider.infrastructure.persistence import ProviderRepository

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
LEGACY_PROVIDER_TYPE = "doctor"


def is_uuid(value: object) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value))


def parse_provider_token(raw: object) -> str | None:
    """UUID-shaped token or None. Malformed tokens mean "no provider specified"."""
    if not isinstance(raw, str):
        return None
    token = raw.strip()
    return token if is_uuid(token) else None


class ProviderResolver:
    def __init__(
        self,
        repo: ProviderRepositoryProtocol | None = None,
        schedule: ScheduleResolver | None = None,
    ) -> None:
        self._repo: ProviderRepositoryProtocol = repo or ProviderRepository()
        self._schedule = schedule or ScheduleResolver()

    async def lookup(self, db: AsyncSession, token: str) -> Provider | None:
        """Primary table first, then legacy doctors -> auth user -> primary table."""
        provider = await self._repo.get_by_id(db, token)
        if provider is not None:
            return provider

        user_id = await self._repo.get_legacy_doctor_user_id(db, token)
        if user_id is None:
            return None
        return await self._repo.get_by_auth_user(db, user_id, LEGACY_PROVIDER_TYPE)

    async def resolve(
        self,
        db: AsyncSession,
        raw_token: object,
        day: date,
        slot_minutes: int | None,
    ) -> ResolvedProvider:
        token = parse_provider_token(raw_token)
        if token is None:
            return ResolvedProvider.none()

        provider = await self.lookup(db, token)
        if provider is None:
            logger.warning("Provider id not in professionals or doctors: %s", token)
            return ResolvedProvider.none()

        self._schedule.evaluate(provider, day, slot_minutes)
        return ResolvedProvider(provider_id=provider.id, auto_confirm=provider.auto_confirm)
