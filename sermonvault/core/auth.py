"""
Authentication dependencies for FastAPI.

This module provides:
- OAuth2 password bearer scheme
- User authentication against stored bcrypt hashes
- Dependencies for protected routes

Every sermon, pipeline and chat route depends on get_current_active_user,
so an unauthenticated request is rejected with 401 before the handler
body runs and before any model or storage client is touched.

References:
-----------
- FastAPI Security Tutorial: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sermonvault.core.security import decode_access_token, verify_password
from sermonvault.db.deps import get_db
from sermonvault.models.user import User

# ================================
# OAuth2 Configuration
# ================================

# Extracts "Authorization: Bearer <token>"; tokenUrl feeds the Swagger
# "Authorize" button.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


# ================================
# Authentication Functions
# ================================

async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    """
    Authenticate a user by email and password.

    Returns None for an unknown email or a wrong password so the caller
    can answer with the same 401 in both cases.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not user.hashed_password:
        return None

    if not verify_password(password, user.hashed_password):
        return None

    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Get the current authenticated user from a JWT token.

    Flow:
    -----
    1. OAuth2PasswordBearer pulls the token from the Authorization header
       (401 when missing)
    2. decode_access_token checks signature and expiry
    3. The "sub" claim (email) is looked up in the users table

    Raises:
        HTTPException 401: token invalid, expired, or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    email: str | None = payload.get("sub")
    if email is None:
        raise credentials_exception

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get the current user and verify the account is active.

    Raises:
        HTTPException 400: account disabled
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return current_user
