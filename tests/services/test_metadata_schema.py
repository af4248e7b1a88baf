"""
Tests for the metadata boundary models.

This test module verifies:
1. Sermon type and tag vocabularies
2. Coercion of malformed model output
3. Per-field confidence (clamped, pinned to 0 for unresolved fields)
4. The sermon content validation verdict
"""

import datetime as dt

from sermonvault.models.sermon import SERMON_METADATA_FIELDS
from sermonvault.schemas.metadata import (
    SermonMetadata,
    SermonValidation,
    filter_tags,
    normalize_sermon_type,
    normalize_tag,
)
from tests.conftest import METADATA_REPLY


class TestVocabularies:
    """Test sermon_type and tag normalization."""

    def test_sermon_type_variants(self):
        assert normalize_sermon_type("Expository") == "expository"
        assert normalize_sermon_type("expository sermon") == "expository"
        assert normalize_sermon_type("TOPICAL preaching") == "topical"

    def test_sermon_type_rejects_unknown_or_ambiguous(self):
        assert normalize_sermon_type("homily") is None
        assert normalize_sermon_type("expository/topical") is None
        assert normalize_sermon_type(None) is None
        assert normalize_sermon_type("") is None

    def test_normalize_tag(self):
        assert normalize_tag("Spiritual Warfare") == "spiritual-warfare"
        assert normalize_tag("  biblical_history ") == "biblical-history"

    def test_filter_tags_keeps_taxonomy_only(self):
        tags = filter_tags(["Faith", "faith", "unknown", "Prayer", "worship", "healing"])
        assert tags == ["faith", "prayer", "worship"]

    def test_filter_tags_empty(self):
        assert filter_tags([]) is None
        assert filter_tags(None) is None
        assert filter_tags(["not-a-tag"]) is None


class TestSermonMetadata:
    """Test SermonMetadata validation of a classifier reply."""

    def test_full_reply(self):
        metadata = SermonMetadata.model_validate(METADATA_REPLY)

        assert metadata.title == "Grace Upon Grace"
        assert metadata.date == dt.date(2024, 3, 10)
        assert metadata.sermon_type == "expository"
        assert metadata.tags == ["salvation", "faith"]
        assert metadata.location is None
        assert metadata.mentioned_events is None

    def test_confidence_covers_every_field(self):
        metadata = SermonMetadata.model_validate(METADATA_REPLY)

        assert set(metadata.confidence) == set(SERMON_METADATA_FIELDS)
        assert metadata.confidence["title"] == 0.95
        # Reported but unresolved
        assert metadata.confidence["location"] == 0.0
        # Resolved but not reported
        assert metadata.confidence["summary"] == 0.0

    def test_coerces_malformed_values(self):
        metadata = SermonMetadata.model_validate({
            "title": "  N/A ",
            "date": "March 10th",
            "topics": "grace",
            "scriptures": [None, "John 3:16", "", {"nested": True}],
            "preacher": ["not", "a", "string"],
            "confidence": {"topics": 1.7, "scriptures": "0.4", "date": True, "preacher": "high"},
        })

        assert metadata.title is None
        assert metadata.date is None
        assert metadata.preacher is None
        assert metadata.topics == ["grace"]
        assert metadata.scriptures == ["John 3:16"]
        assert metadata.confidence["topics"] == 1.0
        assert metadata.confidence["scriptures"] == 0.4
        assert metadata.confidence["date"] == 0.0

    def test_datetime_string_is_truncated_to_date(self):
        metadata = SermonMetadata.model_validate({"date": "2023-12-24T10:30:00Z"})
        assert metadata.date == dt.date(2023, 12, 24)

    def test_confidence_scores_key_is_accepted(self):
        metadata = SermonMetadata.model_validate({
            "title": "Faith Over Fear",
            "confidence_scores": {"title": 0.5},
        })
        assert metadata.confidence["title"] == 0.5

    def test_non_dict_confidence_is_ignored(self):
        metadata = SermonMetadata.model_validate({"title": "Hope", "confidence": [0.9]})
        assert metadata.confidence["title"] == 0.0

    def test_sermon_values(self):
        values = SermonMetadata.model_validate(METADATA_REPLY).sermon_values()

        assert set(values) == set(SERMON_METADATA_FIELDS)
        assert "confidence" not in values
        assert values["tags"] == ["salvation", "faith"]

    def test_empty_reply(self):
        metadata = SermonMetadata.model_validate({})

        assert all(value is None for value in metadata.sermon_values().values())
        assert all(score == 0.0 for score in metadata.confidence.values())


class TestSermonValidation:
    """Test the is-this-a-sermon verdict."""

    def test_camel_case_reply(self):
        verdict = SermonValidation.model_validate({
            "isSermon": True,
            "confidence": 1.4,
            "reason": "Expository preaching on John 1",
        })
        assert verdict.is_sermon is True
        assert verdict.confidence == 1.0
        assert verdict.reason.startswith("Expository")

    def test_defaults(self):
        verdict = SermonValidation.model_validate({"confidence": "unsure"})
        assert verdict.is_sermon is False
        assert verdict.confidence == 0.0
        assert verdict.reason == ""
