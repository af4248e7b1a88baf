"""Sermon metadata extraction: LLM classifier, content validator, scripture finder."""

from sermonvault.services.metadata.classifier import MetadataClassifier, sample_text
from sermonvault.services.metadata.scripture import find_scripture_references
from sermonvault.services.metadata.validator import validate_sermon_content

__all__ = [
    "MetadataClassifier",
    "sample_text",
    "find_scripture_references",
    "validate_sermon_content",
]
