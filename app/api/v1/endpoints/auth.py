import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.errors import UnauthenticatedError, ValidationFailure
from app.core.security import (
    verify_password,
    create_access_token,
    create_refresh_token,
    verify_token,
    get_password_hash,
)
from app.models.user import User
from app.schemas.auth import Token
from app.schemas.user import UserCreate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def normalize_email(email: str) -> str:
    return email.strip().lower()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new user with email and password"""
    if not user.name or not user.email or not user.password:
        raise ValidationFailure("Name, email and password are required")

    email = normalize_email(user.email)

    # Check if user already exists
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise ValidationFailure("Email already in use", field="email")

    db_user = User(
        name=user.name.strip(),
        email=email,
        hashed_password=get_password_hash(user.password)
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise ValidationFailure("Email already in use", field="email")
    await db.refresh(db_user)

    return db_user


@router.post("/login", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    """Login with email (as the username field) and password, returning JWT tokens"""
    result = await db.execute(select(User).where(User.email == normalize_email(form_data.username)))
    user = result.scalar_one_or_none()

    if not user or not verify_password(form_data.password, user.hashed_password):
        if user and not user.hashed_password:
            logger.info(f"Password login attempted for social-only account {user.id}")
        raise UnauthenticatedError("Incorrect email or password")

    return {
        "access_token": create_access_token(data={"sub": str(user.id)}),
        "refresh_token": create_refresh_token(data={"sub": str(user.id)}),
        "token_type": "bearer"
    }


@router.post("/refresh", response_model=Token)
async def refresh_token(refresh_token: str, db: AsyncSession = Depends(get_db)):
    """Refresh access token using refresh token"""
    payload = verify_token(refresh_token, "refresh")

    try:
        user_id = int(payload["sub"])
    except ValueError:
        raise UnauthenticatedError("Invalid token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UnauthenticatedError("Invalid token")

    return {
        "access_token": create_access_token(data={"sub": str(user.id)}),
        "refresh_token": refresh_token,
        "token_type": "bearer"
    }
