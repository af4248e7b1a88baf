"""
Authentication schemas (Pydantic models for request/response).

Login itself takes the OAuth2 password form (username = email), so only
registration has a JSON body.

References:
-----------
- Pydantic: https://docs.pydantic.dev/latest/
- FastAPI Request Body: https://fastapi.tiangolo.com/tutorial/body/
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


# ================================
# Authentication Schemas
# ================================

class Token(BaseModel):
    """
    JWT token response.

    Client should send in future requests:
        Authorization: Bearer <access_token>
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(
        default="bearer",
        description="Token type (always 'bearer' for JWT)"
    )


class TokenData(BaseModel):
    """Claims read back from a JWT."""
    email: Optional[str] = Field(
        None,
        description="User's email address (from 'sub' claim)"
    )


# ================================
# User Registration
# ================================

class UserRegister(BaseModel):
    """
    User registration request.

    Example request:
        POST /api/auth/register
        {
            "email": "pastor@example.com",
            "name": "John Smith",
            "password": "SecurePassword123!"
        }
    """
    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["pastor@example.com"]
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name",
        examples=["John Smith"]
    )
    password: str = Field(
        ...,
        min_length=8,
        max_length=72,
        description="Password (8-72 characters, bcrypt's limit)",
        examples=["SecurePassword123!"]
    )


# ================================
# User Response Schemas
# ================================

class UserResponse(BaseModel):
    """
    User profile. Excludes the password hash.
    """
    id: int = Field(..., description="User's unique ID")
    email: str = Field(..., description="User's email address")
    name: str = Field(..., description="Display name")
    is_active: bool = Field(..., description="Whether the account is active")
    last_login: Optional[datetime] = Field(None, description="Last successful login (UTC)")

    model_config = {
        "from_attributes": True
    }


class UserWithToken(BaseModel):
    """User information with a JWT, returned after registration."""
    user: UserResponse = Field(..., description="User information")
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
