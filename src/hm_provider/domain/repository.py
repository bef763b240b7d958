"""Repository Protocol for provider lookups (read-only)."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_provider.domain.models import Provider


class ProviderRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, provider_id: str) -> Provider | None: ...

    async def get_by_auth_user(
        self, db: AsyncSession, auth_user_id: str, provider_type: str
    ) -> Provider | None: ...

    async def get_legacy_doctor_user_id(
        self, db: AsyncSession, doctor_id: str
    ) -> str | None: ...
