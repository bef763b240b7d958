"""ProviderRepository: reads professionals and the legacy doctors table."""

import logging

from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_common.database import execute_read
from src.hm_provider.domain.models import Provider

logger = logging.getLogger(__name__)

_PROFESSIONAL_COLUMNS = (
    "id, auth_user_id, working_hours, unavailable_dates, auto_confirm_appointments"
)

_GET_BY_ID_SQL = text(f"""
    SELECT {_PROFESSIONAL_COLUMNS}
    FROM professionals
    WHERE id = :id
""")

_GET_BY_AUTH_USER_SQL = text(f"""
    SELECT {_PROFESSIONAL_COLUMNS}
    FROM professionals
    WHERE auth_user_id = :auth_user_id AND type = :type
    LIMIT 1
""")

_GET_LEGACY_DOCTOR_SQL = text("""
    SELECT user_id
    FROM doctors
    WHERE id = :id
""")


def _row_to_provider(row: object) -> Provider:
    unavailable = row.unavailable_dates  # type: ignore[attr-defined]
    working_hours = row.working_hours  # type: ignore[attr-defined]
    auth_user_id = row.auth_user_id  # type: ignore[attr-defined]
    return Provider(
        id=str(row.id),  # type: ignore[attr-defined]
        working_hours=working_hours if isinstance(working_hours, dict) else {},
        unavailable_dates=list(unavailable) if isinstance(unavailable, list) else [],
        auto_confirm=bool(row.auto_confirm_appointments),  # type: ignore[attr-defined]
        auth_user_id=str(auth_user_id) if auth_user_id else None,
    )


class ProviderRepository:
    async def get_by_id(self, db: AsyncSession, provider_id: str) -> Provider | None:
        result = await execute_read(db, _GET_BY_ID_SQL, {"id": provider_id})
        row = result.fetchone()
        return _row_to_provider(row) if row else None

    async def get_by_auth_user(
        self, db: AsyncSession, auth_user_id: str, provider_type: str
    ) -> Provider | None:
        result = await execute_read(
            db, _GET_BY_AUTH_USER_SQL, {"auth_user_id": auth_user_id, "type": provider_type}
        )
        row = result.fetchone()
        return _row_to_provider(row) if row else None

    async def get_legacy_doctor_user_id(
        self, db: AsyncSession, doctor_id: str
    ) -> str | None:
        try:
            result = await execute_read(db, _GET_LEGACY_DOCTOR_SQL, {"id": doctor_id})
        except ProgrammingError:
            # Deployments without the legacy doctors table
            await db.rollback()
            logger.debug("Legacy doctors table unavailable; skipping lookup for %s", doctor_id)
            return None
        row = result.fetchone()
        return str(row.user_id) if row and row.user_id else None
