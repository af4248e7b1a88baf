"""
Sermon and processing-record schemas.

Responses use camelCase keys (sermonType, keyPoints, processingId, ...);
requests accept either camelCase or snake_case.
"""

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sermonvault.models.sermon import MAX_SERMON_TAGS, SERMON_TAGS, SERMON_TYPES
from sermonvault.schemas.metadata import normalize_tag


class CamelModel(BaseModel):
    """Base for API models serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ================================
# Sermons
# ================================

class SermonResponse(CamelModel):
    """A sermon with its metadata and file reference."""

    id: int
    title: str
    date: Optional[dt.date] = None
    preacher: Optional[str] = None
    location: Optional[str] = None
    series: Optional[str] = None
    primary_scripture: Optional[str] = None
    scriptures: Optional[list[str]] = None
    sermon_type: Optional[str] = None
    topics: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    summary: Optional[str] = None
    key_points: Optional[list[str]] = None
    illustrations: Optional[list[str]] = None
    themes: Optional[list[str]] = None
    calls_to_action: Optional[list[str]] = None
    personal_stories: Optional[list[str]] = None
    mentioned_people: Optional[list[str]] = None
    mentioned_events: Optional[list[str]] = None
    tone: Optional[str] = None
    keywords: Optional[list[str]] = None
    word_count: Optional[int] = None
    confidence_scores: Optional[dict[str, float]] = None

    file_path: Optional[str] = None
    public_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    file_pages: Optional[int] = None
    processing_id: Optional[int] = None

    created_at: dt.datetime
    updated_at: dt.datetime


class SermonUpdate(CamelModel):
    """
    Partial sermon update. Only fields present in the request are applied.

    sermon_type and tags must come from the fixed vocabularies; anything
    else is a 422.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    date: Optional[dt.date] = None
    preacher: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    series: Optional[str] = Field(None, max_length=255)
    primary_scripture: Optional[str] = Field(None, max_length=255)
    scriptures: Optional[list[str]] = None
    sermon_type: Optional[str] = None
    topics: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    summary: Optional[str] = None
    key_points: Optional[list[str]] = None
    illustrations: Optional[list[str]] = None
    themes: Optional[list[str]] = None
    calls_to_action: Optional[list[str]] = None
    personal_stories: Optional[list[str]] = None
    mentioned_people: Optional[list[str]] = None
    mentioned_events: Optional[list[str]] = None
    tone: Optional[str] = Field(None, max_length=100)
    keywords: Optional[list[str]] = None

    @field_validator("sermon_type")
    @classmethod
    def check_sermon_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        value = v.strip().lower()
        if value not in SERMON_TYPES:
            raise ValueError(f"sermon_type must be one of: {', '.join(SERMON_TYPES)}")
        return value

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        tags = list(dict.fromkeys(normalize_tag(tag) for tag in v))
        unknown = [tag for tag in tags if tag not in SERMON_TAGS]
        if unknown:
            raise ValueError(f"Unknown tags: {', '.join(unknown)}")
        if len(tags) > MAX_SERMON_TAGS:
            raise ValueError(f"At most {MAX_SERMON_TAGS} tags are allowed")
        return tags

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, keyed by column name."""
        changes = self.model_dump(exclude_unset=True)
        # title is required on the row
        if changes.get("title", "") is None:
            del changes["title"]
        return changes


# ================================
# Processing
# ================================

class UploadResponse(CamelModel):
    processing_id: int
    status: str


class StageResponse(CamelModel):
    """Outcome of a pipeline stage call."""

    processing_id: int
    sermon_id: Optional[int] = None
    status: str
    next_step: Optional[str] = None
    chunk_count: Optional[int] = None
    file_path: Optional[str] = None
    public_url: Optional[str] = None


class ProcessingStatusResponse(CamelModel):
    processing_id: int
    status: str
    sermon_id: Optional[int] = None
    file_name: str
    page_count: Optional[int] = None
    error_message: Optional[str] = None
    failed_stage: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime


# ================================
# Files
# ================================

class SignedUrlResponse(BaseModel):
    url: str
