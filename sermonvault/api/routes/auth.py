"""
Authentication endpoints.

This module provides:
- Login (OAuth2 password flow)
- User registration (password-based)
- Get current user profile

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
- OAuth2 Password Flow: https://oauth.net/2/grant-types/password/
"""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sermonvault.core.auth import authenticate_user, get_current_active_user
from sermonvault.core.config import settings
from sermonvault.core.logging import get_logger
from sermonvault.core.security import create_access_token, get_password_hash
from sermonvault.db.deps import get_db
from sermonvault.models.user import User
from sermonvault.schemas.auth import (
    Token,
    UserRegister,
    UserResponse,
    UserWithToken,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _issue_token(user: User) -> str:
    return create_access_token(
        data={"sub": user.email},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


# ================================
# OAuth2 Password Flow Login
# ================================

@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """
    Login with email and password (OAuth2 password flow).

    Request Format:
    ---------------
    Content-Type: application/x-www-form-urlencoded

    username=pastor@example.com&password=secret

    OAuth2 requires the field to be called "username", even though it
    holds the email.

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 400: Inactive user
    """
    user = await authenticate_user(db, form_data.username, form_data.password)

    # Same answer for unknown email and wrong password
    if not user:
        logger.warning("login_failed", email=form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.warning("login_inactive_user", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    user.last_login = datetime.now(timezone.utc)
    await db.commit()

    logger.info("login_succeeded", user_id=user.id)
    return Token(access_token=_issue_token(user), token_type="bearer")


# ================================
# User Registration
# ================================

@router.post("/register", response_model=UserWithToken, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user and log them in.

    Raises:
        HTTPException 400: Email already registered
        HTTPException 422: Invalid data (handled by Pydantic)
    """
    result = await db.execute(
        select(User).where(User.email == user_data.email)
    )
    if result.scalar_one_or_none():
        logger.warning("registration_email_taken", email=user_data.email)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        email=user_data.email,
        name=user_data.name,
        hashed_password=get_password_hash(user_data.password),
        is_active=True
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    logger.info("user_registered", user_id=new_user.id)

    return UserWithToken(
        user=UserResponse.model_validate(new_user),
        access_token=_issue_token(new_user),
        token_type="bearer"
    )


# ================================
# Get Current User
# ================================

@router.get("/me", response_model=UserResponse)
async def read_users_me(
    current_user: User = Depends(get_current_active_user)
):
    """Profile of the authenticated user."""
    return UserResponse.model_validate(current_user)
