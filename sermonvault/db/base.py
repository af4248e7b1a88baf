"""
Database Base Classes and Common Utilities

Foundation for all ORM models.

Key Pieces:
-----------
1. metadata: MetaData with a naming convention so Alembic generates
   stable constraint names
2. Base: DeclarativeBase bound to that metadata
3. BaseModel: abstract base adding id / created_at / updated_at
4. JSONType: JSON column that becomes JSONB on PostgreSQL

Learning Resources:
- SQLAlchemy Declarative Base: https://docs.sqlalchemy.org/en/20/orm/declarative_config.html
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, MetaData, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, registry


# ================================
# Naming Convention
# ================================
# Constraint names like fk_sermon_chunks_sermon_id_sermons instead of
# database-generated ones, so migrations can drop them by name.
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

orm_registry = registry(metadata=metadata)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        class Sermon(Base):
            __tablename__ = "sermons"
            id: Mapped[int] = mapped_column(primary_key=True)
    """

    registry = orm_registry
    metadata = metadata

    __tablename__: str


class CommonTableAttributes:
    """
    Mixin that provides common fields and methods to all models.

    Common Fields Added:
    --------------------
    - id: Primary key (auto-incrementing integer)
    - created_at: When the record was created (UTC, set once)
    - updated_at: When the record was last modified (UTC)
    """

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing primary key"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="Timestamp when record was created (UTC)"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="Timestamp when record was last updated (UTC)"
    )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"

    def dict(self) -> dict[str, Any]:
        """Convert the row's column values to a plain dictionary."""
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
        }


class BaseModel(Base, CommonTableAttributes):
    """
    Ready-to-use abstract base for application models.

    Every subclass gets id, created_at, updated_at, dict() and __repr__().
    """

    __abstract__ = True


# ================================
# Column Type Shortcuts
# ================================

String50 = String(50)  # status values, file types
String255 = String(255)  # titles, names, file names
String1000 = String(1000)  # storage paths, URLs

# JSONB on PostgreSQL (indexable, used by analytics), plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")
