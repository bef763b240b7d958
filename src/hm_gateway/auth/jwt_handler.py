"""JWT access token verification.

Tokens are issued by the managed auth backend and signed with the shared
JWT_SECRET (HS256). This service only verifies them; login, refresh and
revocation live with the auth backend.

create_access_token exists for local tooling and tests that need to mint a
token the way the auth backend does.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.hm_common.errors import UnauthenticatedError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: str, email: str | None = None) -> str:
    """Issue an access token carrying the caller identity."""
    now = datetime.now(UTC)
    payload: dict[str, object] = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    if email:
        payload["email"] = email
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        UnauthenticatedError: token invalid, expired, or not an access token.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise UnauthenticatedError() from None

    if payload.get("type") != "access":
        raise UnauthenticatedError()

    return payload
