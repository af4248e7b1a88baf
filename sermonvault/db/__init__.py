"""Database utilities and session management."""

from sermonvault.db.base import Base, BaseModel, JSONType, String50, String255, String1000
from sermonvault.db.deps import DBSession, get_db, get_db_override
from sermonvault.db.session import (
    AsyncSessionLocal,
    check_db_health,
    close_db,
    engine,
    get_session,
    init_db,
)

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    # Column types
    "JSONType",
    "String50",
    "String255",
    "String1000",
    # Session management
    "engine",
    "AsyncSessionLocal",
    "get_session",
    "init_db",
    "close_db",
    "check_db_health",
    # Dependencies
    "get_db",
    "DBSession",
    "get_db_override",
]
