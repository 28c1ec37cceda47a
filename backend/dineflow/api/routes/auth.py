"""
Authentication endpoints: register and login.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.db.session import get_db
from dineflow.schemas.user import UserCreate, UserResponse, UserLogin, Token
from dineflow.services.auth_service import register_user, authenticate_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a customer account."""
    return await register_user(db, user_data)


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    token = await authenticate_user(db, login_data)
    return Token(access_token=token)
