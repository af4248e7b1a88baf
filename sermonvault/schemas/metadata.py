"""
Sermon metadata schemas.

SermonMetadata is the boundary model for the classifier's JSON reply.
Nothing the model returns reaches the database without passing through it:
- malformed values are coerced or defaulted to None
- sermon_type and tags are checked against the fixed vocabularies
- every metadata field gets a confidence in [0, 1], with 0 for unresolved fields
"""

import re
import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sermonvault.models.sermon import (
    MAX_SERMON_TAGS,
    SERMON_METADATA_FIELDS,
    SERMON_TAGS,
    SERMON_TYPES,
)

_LIST_FIELDS = (
    "scriptures",
    "topics",
    "tags",
    "key_points",
    "illustrations",
    "themes",
    "calls_to_action",
    "personal_stories",
    "mentioned_people",
    "mentioned_events",
    "keywords",
)

_TEXT_FIELDS = (
    "title",
    "preacher",
    "location",
    "series",
    "primary_scripture",
    "sermon_type",
    "summary",
    "tone",
)

_NULL_STRINGS = {"", "null", "none", "n/a", "unknown"}


def normalize_sermon_type(value: str | None) -> str | None:
    """
    Map free-form model output onto one of the four sermon types.

    "Expository", "expository sermon" and "TOPICAL preaching" all
    normalize. Anything else, or a value naming more than one type,
    returns None.
    """
    if not value:
        return None
    words = re.findall(r"[a-z]+", value.lower())
    matches = {w for w in words if w in SERMON_TYPES}
    if len(matches) != 1:
        return None
    return matches.pop()


def normalize_tag(value: str) -> str:
    """Lowercase and hyphenate a tag: 'Spiritual Warfare' → 'spiritual-warfare'."""
    return re.sub(r"[\s_]+", "-", value.strip().lower())


def filter_tags(tags: list[str] | None) -> list[str] | None:
    """Keep taxonomy tags only, de-duplicated, at most MAX_SERMON_TAGS."""
    if not tags:
        return None
    kept: list[str] = []
    for tag in tags:
        normalized = normalize_tag(tag)
        if normalized in SERMON_TAGS and normalized not in kept:
            kept.append(normalized)
    return kept[:MAX_SERMON_TAGS] or None


class SermonMetadata(BaseModel):
    """
    Validated sermon metadata with per-field confidence.

    Construct with SermonMetadata.model_validate(raw_json_dict).
    """

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
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

    confidence: dict[str, float] = Field(
        default_factory=dict,
        description="Field name → confidence in [0, 1]",
    )

    @model_validator(mode="before")
    @classmethod
    def accept_confidence_scores_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and "confidence" not in data and "confidence_scores" in data:
            data = {**data, "confidence": data["confidence_scores"]}
        return data

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, (dict, list)):
            return None
        text = str(v).strip()
        return None if text.lower() in _NULL_STRINGS else text

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> Optional[list[str]]:
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return None
        items = [str(item).strip() for item in v if item is not None and not isinstance(item, (dict, list))]
        items = [item for item in items if item and item.lower() not in _NULL_STRINGS]
        return items or None

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Optional[dt.date]:
        if v is None or isinstance(v, dt.date):
            return v
        if not isinstance(v, str):
            return None
        try:
            return dt.date.fromisoformat(v.strip()[:10])
        except ValueError:
            return None

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, v: Any) -> dict[str, float]:
        if not isinstance(v, dict):
            return {}
        scores: dict[str, float] = {}
        for key, value in v.items():
            if isinstance(value, bool):
                continue
            try:
                score = float(value)
            except (TypeError, ValueError):
                continue
            scores[str(key)] = min(max(score, 0.0), 1.0)
        return scores

    @model_validator(mode="after")
    def apply_vocabularies(self) -> "SermonMetadata":
        self.sermon_type = normalize_sermon_type(self.sermon_type)
        self.tags = filter_tags(self.tags)

        # One score per metadata field; unresolved fields are pinned to 0
        self.confidence = {
            field: (self.confidence.get(field, 0.0) if self.is_resolved(field) else 0.0)
            for field in SERMON_METADATA_FIELDS
        }
        return self

    def is_resolved(self, field: str) -> bool:
        """True when the field has a non-empty value."""
        return getattr(self, field) not in (None, [], "")

    def sermon_values(self) -> dict[str, Any]:
        """Metadata as Sermon column values (no confidence)."""
        return {field: getattr(self, field) for field in SERMON_METADATA_FIELDS}


class SermonValidation(BaseModel):
    """Verdict of the is-this-a-sermon check."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_sermon: bool = Field(False, alias="isSermon")
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reason: str = ""

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        try:
            return min(max(float(v), 0.0), 1.0)
        except (TypeError, ValueError):
            return 0.0
