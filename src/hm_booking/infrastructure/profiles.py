"""ProfileRepository: read-only access to payer profiles and family members."""

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_booking.domain.models import HealthProfile
from src.hm_common.database import execute_read

_HEALTH_COLUMNS = (
    "id, full_name, date_of_birth, gender, blood_type, height_cm, weight_kg, "
    "allergies, chronic_conditions, current_medications"
)

_GET_PROFILE_SQL = text(f"""
    SELECT {_HEALTH_COLUMNS}
    FROM profiles
    WHERE id = :id
""")

# Scoped to the owner: a caller can only snapshot their own dependents
_GET_FAMILY_MEMBERS_SQL = text(f"""
    SELECT {_HEALTH_COLUMNS}
    FROM family_members
    WHERE owner_id = :owner_id AND id IN :ids
""").bindparams(bindparam("ids", expanding=True))


def _row_to_profile(row: object) -> HealthProfile:
    return HealthProfile(
        id=str(row.id),  # type: ignore[attr-defined]
        full_name=row.full_name,  # type: ignore[attr-defined]
        date_of_birth=row.date_of_birth,  # type: ignore[attr-defined]
        gender=row.gender,  # type: ignore[attr-defined]
        blood_type=row.blood_type,  # type: ignore[attr-defined]
        height_cm=row.height_cm,  # type: ignore[attr-defined]
        weight_kg=row.weight_kg,  # type: ignore[attr-defined]
        allergies=row.allergies,  # type: ignore[attr-defined]
        chronic_conditions=row.chronic_conditions,  # type: ignore[attr-defined]
        current_medications=row.current_medications,  # type: ignore[attr-defined]
    )


class ProfileRepository:
    async def get_profile(self, db: AsyncSession, user_id: str) -> HealthProfile | None:
        result = await execute_read(db, _GET_PROFILE_SQL, {"id": user_id})
        row = result.fetchone()
        return _row_to_profile(row) if row else None

    async def get_family_members(
        self, db: AsyncSession, owner_id: str, member_ids: list[str]
    ) -> list[HealthProfile]:
        """Members in the order requested; unknown or foreign ids are dropped."""
        if not member_ids:
            return []
        result = await execute_read(
            db, _GET_FAMILY_MEMBERS_SQL, {"owner_id": owner_id, "ids": member_ids}
        )
        by_id = {p.id: p for p in (_row_to_profile(row) for row in result.fetchall())}
        return [by_id[m] for m in member_ids if m in by_id]
