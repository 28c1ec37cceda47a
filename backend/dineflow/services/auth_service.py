"""
Authentication service handling user registration and login.
"""

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from dineflow.models.user import User
from dineflow.schemas.user import UserCreate, UserLogin
from dineflow.core.security import hash_password, verify_password, create_access_token
from dineflow.core.logging import get_logger

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new customer account.
    Raises 409 if email or username already exists.
    """
    result = await db.execute(
        select(User).where(or_(User.email == user_data.email, User.username == user_data.username))
    )
    existing = result.scalars().first()
    if existing:
        reason = "email_exists" if existing.email == user_data.email else "username_exists"
        logger.warning("registration_failed", reason=reason)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered" if reason == "email_exists" else "Username already taken",
        )

    user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=hash_password(user_data.password),
        display_name=user_data.display_name or user_data.username,
        phone=user_data.phone,
        line_user_id=user_data.line_user_id,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate and return a JWT whose claims carry the user id and admin flag.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    token = create_access_token(data={"sub": str(user.id), "admin": user.is_admin})
    logger.info("user_logged_in", user_id=user.id)
    return token
