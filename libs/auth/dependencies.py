from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _decode(token: str) -> AuthUser:
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        options={"verify_aud": False},
    )
    return AuthUser(**payload)


def _service_role_jwt(calling_service: str) -> str:
    """Short-lived token used for internal service-to-service calls."""
    settings = get_settings()
    now = int(datetime.now(tz=timezone.utc).timestamp())
    payload = {
        "sub": f"service:{calling_service}",
        "role": "service_role",
        "iat": now,
        "exp": now + 60,
    }
    return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm="HS256")


async def get_current_user(
    token: Annotated[HTTPAuthorizationCredentials, Depends(security)]
) -> AuthUser:
    """
    Validate the bearer JWT and return the authenticated user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        return _decode(token.credentials)
    except (JWTError, ValidationError):
        raise credentials_exception


async def get_optional_user(
    token: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(optional_security)
    ],
) -> Optional[AuthUser]:
    """Like get_current_user, but guests (no or invalid token) get None."""
    if token is None:
        return None
    try:
        return _decode(token.credentials)
    except (JWTError, ValidationError):
        return None


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)]
) -> AuthUser:
    """
    Ensure the user carries an admin role claim.
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user
