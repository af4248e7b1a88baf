"""
User Model

Database Tables:
----------------
- users: account data for password (bcrypt) authentication

A user exclusively owns their sermons and processing records; every
sermon, chunk and analytics query is filtered by user_id.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sermonvault.db.base import BaseModel, String255

# Type checking imports only, avoids a circular import with sermon.py
if TYPE_CHECKING:
    from sermonvault.models.sermon import Sermon, SermonProcessing


class User(BaseModel):
    """
    User account.

    Relationships:
    --------------
    - sermons: one-to-many, deleted with the user
    - processing_records: one-to-many, deleted with the user
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address (login identifier, JWT subject)"
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Display name"
    )

    hashed_password: Mapped[str | None] = mapped_column(
        String255,
        nullable=True,
        comment="bcrypt password hash"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Disabled accounts cannot authenticate"
    )

    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp of the last successful login (UTC)"
    )

    sermons: Mapped[list["Sermon"]] = relationship(
        "Sermon",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    processing_records: Mapped[list["SermonProcessing"]] = relationship(
        "SermonProcessing",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, email='{self.email}')"
