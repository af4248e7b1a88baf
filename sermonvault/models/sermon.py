"""
Sermon Models

This module contains the sermon ingestion and retrieval models.

Models Included:
----------------
1. SermonProcessing - one row per upload attempt, the pipeline state machine
2. Sermon - the finalized, queryable sermon with LLM-extracted metadata
3. SermonChunk - an embedded shard of sermon text used for retrieval
4. ProcessingStatus / SermonType (Enums) and the SERMON_TAGS taxonomy

Database Tables:
----------------
- sermon_processing: pipeline state (uploaded → parsed → vectorized → completed | error)
- sermons: sermon metadata and file reference (many-to-1 with users)
- sermon_chunks: text chunks with vector(1536) embeddings (many-to-1 with sermons)

Ownership:
----------
A sermon owns its chunks (cascade delete). A processing record only
references its sermon (SET NULL when the sermon is deleted).
"""

import enum
import datetime as dt
from typing import TYPE_CHECKING, Any, Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sermonvault.core.config import settings
from sermonvault.db.base import BaseModel, JSONType, String50, String255, String1000

if TYPE_CHECKING:
    from sermonvault.models.user import User


# ================================
# Enums and Vocabularies
# ================================

class ProcessingStatus(str, enum.Enum):
    """
    Pipeline state of an upload.

    Status Flow:
    ------------
    UPLOADED → PARSED → VECTORIZED → COMPLETED   (success path)
        ↓         ↓          ↓
      ERROR     ERROR      ERROR                 (any stage may fail)

    Each forward transition is made by exactly one externally invoked
    stage; see sermonvault.services.pipeline.
    """

    UPLOADED = "uploaded"
    PARSED = "parsed"
    VECTORIZED = "vectorized"
    COMPLETED = "completed"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class SermonType(str, enum.Enum):
    """Homiletic style of a sermon."""

    EXPOSITORY = "expository"
    TEXTUAL = "textual"
    TOPICAL = "topical"
    NARRATIVE = "narrative"

    def __str__(self) -> str:
        return self.value


SERMON_TYPES: tuple[str, ...] = tuple(t.value for t in SermonType)

# Fixed tag taxonomy; a sermon carries at most MAX_SERMON_TAGS of these
SERMON_TAGS: tuple[str, ...] = (
    "salvation",
    "discipleship",
    "faith",
    "prayer",
    "relationships",
    "spiritual-warfare",
    "evangelism",
    "healing",
    "worship",
    "stewardship",
    "identity",
    "community",
    "character",
    "biblical-history",
    "prophecy",
)

MAX_SERMON_TAGS = 3

CHUNK_TYPE_CONTENT = "content"


# ================================
# SermonProcessing Model
# ================================

class SermonProcessing(BaseModel):
    """
    Durable state-machine row tracking one upload through the pipeline.

    Invariant: status only moves forward
    (uploaded → parsed → vectorized → completed) or to error.

    raw_text is only needed until vectorization; it is kept for operator
    inspection and retries.
    """

    __tablename__ = "sermon_processing"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owner of the upload"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProcessingStatus.UPLOADED.value,
        index=True,
        comment="uploaded, parsed, vectorized, completed, error"
    )

    file_name: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="Original file name as uploaded"
    )

    file_size: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Upload size in bytes"
    )

    file_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="MIME type of the upload"
    )

    page_count: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Number of PDF pages"
    )

    raw_text: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Normalized extracted text"
    )

    sermon_id: Mapped[int | None] = mapped_column(
        ForeignKey("sermons.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Sermon created by the parse stage"
    )

    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Internal failure detail for operators"
    )

    failed_stage: Mapped[str | None] = mapped_column(
        String50,
        nullable=True,
        comment="Stage that moved the record to error (parse, vectorize, store)"
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="processing_records",
        lazy="raise",
    )

    sermon: Mapped[Optional["Sermon"]] = relationship(
        "Sermon",
        foreign_keys=[sermon_id],
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"SermonProcessing(id={self.id}, status={self.status})"

    @property
    def is_terminal(self) -> bool:
        """completed and error are terminal until a client retries."""
        return self.status in (ProcessingStatus.COMPLETED.value, ProcessingStatus.ERROR.value)


# ================================
# Sermon Model
# ================================

class Sermon(BaseModel):
    """
    A finalized sermon and its extracted metadata.

    List fields (scriptures, topics, tags, ...) are JSON arrays.
    confidence_scores maps a field name to the classifier's confidence in
    [0, 1]; fields the classifier could not resolve have confidence 0.
    """

    __tablename__ = "sermons"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owner of the sermon"
    )

    processing_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Processing record that created this sermon"
    )

    # ================================
    # Core Metadata
    # ================================

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True, index=True)
    preacher: Mapped[str | None] = mapped_column(String255, nullable=True)
    location: Mapped[str | None] = mapped_column(String255, nullable=True)
    series: Mapped[str | None] = mapped_column(String255, nullable=True)
    primary_scripture: Mapped[str | None] = mapped_column(String255, nullable=True)
    sermon_type: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="expository, textual, topical or narrative"
    )
    tone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    word_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # ================================
    # List Metadata (JSON arrays)
    # ================================

    scriptures: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    topics: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Subset of the fixed tag taxonomy, at most 3"
    )
    key_points: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    illustrations: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    themes: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    calls_to_action: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    personal_stories: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    mentioned_people: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    mentioned_events: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    keywords: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)

    confidence_scores: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Field name → classifier confidence in [0, 1]"
    )

    # ================================
    # File Reference
    # ================================

    file_path: Mapped[str | None] = mapped_column(
        String1000,
        nullable=True,
        comment="Object storage key: {user_id}/{sermon_id}/{file_name}"
    )
    public_url: Mapped[str | None] = mapped_column(String1000, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String255, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_pages: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # ================================
    # Relationships
    # ================================

    user: Mapped["User"] = relationship(
        "User",
        back_populates="sermons",
        lazy="raise",
    )

    chunks: Mapped[list["SermonChunk"]] = relationship(
        "SermonChunk",
        back_populates="sermon",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
        order_by="SermonChunk.chunk_index",
    )

    def __repr__(self) -> str:
        return f"Sermon(id={self.id}, title='{self.title[:30]}')"


# Metadata fields exposed for editing and confidence wrapping
SERMON_METADATA_FIELDS: tuple[str, ...] = (
    "title",
    "date",
    "preacher",
    "location",
    "series",
    "primary_scripture",
    "scriptures",
    "sermon_type",
    "topics",
    "tags",
    "summary",
    "key_points",
    "illustrations",
    "themes",
    "calls_to_action",
    "personal_stories",
    "mentioned_people",
    "mentioned_events",
    "tone",
    "keywords",
)


# ================================
# SermonChunk Model
# ================================

class SermonChunk(BaseModel):
    """
    A bounded-length shard of sermon text with its embedding.

    Created batch by batch during vectorization and never mutated.
    chunk_index records the order within the sermon, since chunks in a
    batch are embedded concurrently and may be inserted in any order.
    """

    __tablename__ = "sermon_chunks"

    sermon_id: Mapped[int] = mapped_column(
        ForeignKey("sermons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning sermon"
    )

    chunk_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Order of this chunk within the sermon (0-indexed)"
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Chunk text"
    )

    chunk_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CHUNK_TYPE_CONTENT,
        comment="Always 'content' for now"
    )

    embedding = mapped_column(
        Vector(settings.EMBEDDING_DIMENSION),
        nullable=True,
        comment="Embedding vector for cosine similarity search"
    )

    sermon: Mapped["Sermon"] = relationship(
        "Sermon",
        back_populates="chunks",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint(
            "sermon_id",
            "chunk_index",
            name="uq_sermon_chunk_index"
        ),
    )

    def __repr__(self) -> str:
        return f"SermonChunk(id={self.id}, sermon_id={self.sermon_id}, index={self.chunk_index})"
