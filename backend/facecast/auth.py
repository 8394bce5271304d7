"""
Caller identity: a JWT bearer session, or a client-generated anonymous id
carried in the `x-anonymous-user-id` header.
"""
import jwt
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from fastapi import Header
from typing import Optional
from .config import settings
from .exceptions import UnauthorizedError


@dataclass(frozen=True)
class Owner:
    user_id: str
    email: Optional[str] = None
    is_anonymous: bool = False


def create_access_token(user_id: str, email: Optional[str] = None) -> str:
    """Create a JWT access token"""
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": user_id,
        "exp": now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        "iat": now,
    }
    if email:
        to_encode["email"] = email
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Owner]:
    """Decode a JWT access token into its owner, None when invalid or expired"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return Owner(user_id=str(user_id), email=payload.get("email"))


def _session_from_header(authorization: Optional[str]) -> Optional[Owner]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return decode_access_token(authorization.split(" ", 1)[1].strip())


def anonymous_owner(anonymous_id: Optional[str]) -> Optional[Owner]:
    if anonymous_id and anonymous_id.startswith(settings.ANONYMOUS_ID_PREFIX):
        return Owner(user_id=anonymous_id, is_anonymous=True)
    return None


async def get_session_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[Owner]:
    return _session_from_header(authorization)


async def get_session_user(
    authorization: Optional[str] = Header(None),
) -> Owner:
    """
    Dependency for routes that need a signed-in user
    """
    owner = _session_from_header(authorization)
    if owner is None:
        raise UnauthorizedError()
    return owner


async def resolve_owner(
    authorization: Optional[str] = Header(None),
    x_anonymous_user_id: Optional[str] = Header(None),
) -> Owner:
    """
    Session first, then the anonymous id header
    """
    owner = _session_from_header(authorization) or anonymous_owner(x_anonymous_user_id)
    if owner is None:
        raise UnauthorizedError()
    return owner
