"""
Sermon Metadata Classifier

Sends sermon text to Claude and turns the JSON reply into a validated
SermonMetadata record.

Long documents are head-and-tail sampled: the introduction and the
conclusion carry most of the title, scripture, preacher and
call-to-action information, while the middle is mostly body content.
"""

from sermonvault.core.config import settings
from sermonvault.core.errors import LLMError, MetadataError, RateLimitError
from sermonvault.core.logging import get_logger
from sermonvault.models.sermon import SERMON_TAGS, SERMON_TYPES
from sermonvault.schemas.metadata import SermonMetadata
from sermonvault.services.llm import LLMService, get_llm_service
from sermonvault.services.metadata.scripture import find_scripture_references

logger = get_logger(__name__)


def sample_text(
    text: str,
    threshold: int | None = None,
    sample_chars: int | None = None,
) -> str:
    """
    Head-and-tail sample text longer than threshold.

    Returns text unchanged when short enough, otherwise the first and last
    sample_chars characters joined by "\\n...\\n".
    """
    threshold = threshold or settings.METADATA_SAMPLE_THRESHOLD
    sample_chars = sample_chars or settings.METADATA_SAMPLE_CHARS
    if len(text) <= threshold:
        return text
    return f"{text[:sample_chars]}\n...\n{text[-sample_chars:]}"


def build_system_prompt(references: list[str]) -> str:
    """System prompt describing the JSON shape the model must return."""
    hint = ", ".join(references) if references else "none found"
    return f"""You extract structured metadata from sermon manuscripts.

Bible references have been pre-processed from the full text: {hint}

Return ONLY a JSON object with these fields:
- title: string
- date: "YYYY-MM-DD"
- preacher: string
- location: string
- series: string
- primary_scripture: string (e.g. "Matthew 21:1-11")
- scriptures: array of references, e.g. ["Matthew 21:1-11", "Zechariah 9:9"]
- sermon_type: one of {", ".join(SERMON_TYPES)}
- topics: array of 1-3 topics
- tags: array of 1-3 tags chosen ONLY from: {", ".join(SERMON_TAGS)}
- summary: string (100-200 words)
- key_points: array of 1-3 key points
- illustrations: array of strings
- themes: array of strings
- calls_to_action: array of strings
- personal_stories: array of strings
- mentioned_people: array of strings
- mentioned_events: array of strings
- tone: string (e.g. "encouraging", "challenging")
- keywords: array of strings
- confidence: object mapping each field name above to a number between 0 and 1

If you cannot determine a field, return null for it and 0 for its confidence."""


class MetadataClassifier:
    """
    LLM-backed sermon metadata extraction.

    Usage:
    ------
    classifier = MetadataClassifier()
    metadata = await classifier.extract(sermon_text)
    metadata.title, metadata.tags, metadata.confidence["title"]
    """

    def __init__(self, llm: LLMService | None = None):
        self._llm = llm

    @property
    def llm(self) -> LLMService:
        if self._llm is None:
            self._llm = get_llm_service()
        return self._llm

    async def extract(self, text: str) -> SermonMetadata:
        """
        Extract validated metadata from sermon text.

        Raises:
            RateLimitError: provider quota exhausted
            MetadataError: model call failed or reply was unusable
        """
        references = find_scripture_references(text)
        excerpt = sample_text(text)

        try:
            raw = await self.llm.complete_json(
                system=build_system_prompt(references),
                messages=[{
                    "role": "user",
                    "content": f"Please analyze this sermon and extract the metadata:\n\n{excerpt}",
                }],
            )
        except RateLimitError:
            raise
        except LLMError as e:
            raise MetadataError(str(e.message), provider_name=e.provider_name) from e

        metadata = SermonMetadata.model_validate(raw)

        # Fall back to references found locally when the model returned none
        if metadata.scriptures is None and references:
            metadata.scriptures = references
            metadata.confidence["scriptures"] = 0.5

        logger.info(
            "sermon_metadata_extracted",
            title=metadata.title,
            sermon_type=metadata.sermon_type,
            tags=metadata.tags,
            sampled=len(excerpt) < len(text),
        )
        return metadata
