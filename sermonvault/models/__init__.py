"""
Database Models

Import models from this module so every table is registered with
Base.metadata before create_all() or Alembic autogenerate runs:

    from sermonvault.models import User, Sermon, SermonChunk, SermonProcessing
"""

from sermonvault.models.sermon import (
    CHUNK_TYPE_CONTENT,
    MAX_SERMON_TAGS,
    SERMON_METADATA_FIELDS,
    SERMON_TAGS,
    SERMON_TYPES,
    ProcessingStatus,
    Sermon,
    SermonChunk,
    SermonProcessing,
    SermonType,
)
from sermonvault.models.user import User

__all__ = [
    # Models
    "User",
    "Sermon",
    "SermonChunk",
    "SermonProcessing",
    # Enums and vocabularies
    "ProcessingStatus",
    "SermonType",
    "SERMON_TYPES",
    "SERMON_TAGS",
    "MAX_SERMON_TAGS",
    "SERMON_METADATA_FIELDS",
    "CHUNK_TYPE_CONTENT",
]
