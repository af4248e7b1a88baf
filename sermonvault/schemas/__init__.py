"""
Pydantic schemas for request/response validation.

Import all schemas here for easy access.
"""

from sermonvault.schemas.auth import (
    Token,
    TokenData,
    UserRegister,
    UserResponse,
    UserWithToken,
)
from sermonvault.schemas.chat import ChatMessage, ChatRequest
from sermonvault.schemas.metadata import SermonMetadata, SermonValidation
from sermonvault.schemas.sermon import (
    ProcessingStatusResponse,
    SermonResponse,
    SermonUpdate,
    SignedUrlResponse,
    StageResponse,
    UploadResponse,
)

__all__ = [
    # Authentication
    "Token",
    "TokenData",
    "UserRegister",
    "UserResponse",
    "UserWithToken",
    # Chat
    "ChatMessage",
    "ChatRequest",
    # Metadata
    "SermonMetadata",
    "SermonValidation",
    # Sermons and processing
    "ProcessingStatusResponse",
    "SermonResponse",
    "SermonUpdate",
    "SignedUrlResponse",
    "StageResponse",
    "UploadResponse",
]
