"""FastAPI dependency: get_current_user.

Usage in any protected router:
    from src.hm_gateway.auth.dependencies import get_current_user

    @router.post("/protected")
    async def protected(user: CurrentUser = Depends(get_current_user)):
        ...
"""

from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.hm_common.errors import ForbiddenError, UnauthenticatedError
from src.hm_gateway.auth.jwt_handler import decode_token

# auto_error=False so a missing header surfaces as our own 401 envelope
_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None = None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> CurrentUser:
    """Extract and validate the Bearer token, return the caller identity.

    Raises UnauthenticatedError (401) if the token is missing, invalid, or expired.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()

    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthenticatedError()

    return CurrentUser(id=str(user_id), email=payload.get("email"))


def ensure_payer_matches(caller: CurrentUser, payer_id: str | None) -> None:
    """Wallet payment is allowed only from the caller's own account.

    No payer reference means "the caller". Any other reference is a 403.
    """
    if payer_id and payer_id != caller.id:
        raise ForbiddenError()
