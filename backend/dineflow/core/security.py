"""
Password hashing, JWT issuing and the request-scoped identity dependencies.

Core operations never read identity from ambient state: routes resolve the
caller with `get_current_user_id` / `get_current_identity` and pass the id
into the service call explicitly.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from dineflow.core.config import get_settings

settings = get_settings()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    user_id: int
    is_admin: bool = False


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Returns the token claims or None if the token is invalid/expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None:
        raise _unauthorized("Not authenticated")

    claims = decode_access_token(credentials.credentials)
    if not claims or "sub" not in claims:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token subject")

    return Identity(user_id=user_id, is_admin=bool(claims.get("admin", False)))


async def get_current_user_id(identity: Identity = Depends(get_current_identity)) -> int:
    return identity.user_id


async def get_current_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return identity
