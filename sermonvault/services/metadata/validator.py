"""
Sermon content validator.

Asks the model whether a document is actually a sermon before the parse
stage spends a metadata extraction on it. Only the first 1000 characters
are sent.
"""

from sermonvault.core.logging import get_logger
from sermonvault.schemas.metadata import SermonValidation
from sermonvault.services.llm import LLMService, get_llm_service

logger = get_logger(__name__)

VALIDATION_SAMPLE_CHARS = 1000

VALIDATION_PROMPT = """You are a sermon content validator. Analyze the given text and determine if it is a sermon.
Respond ONLY with a JSON object in this exact format:
{"isSermon": boolean, "confidence": number between 0 and 1, "reason": string explaining your decision}

Consider:
- Religious/spiritual content
- Preaching style and tone
- Biblical references
- Sermon structure (introduction, body, conclusion)
- Call to action or application
- Theological concepts"""


async def validate_sermon_content(text: str, llm: LLMService | None = None) -> SermonValidation:
    """
    Classify text as sermon / not sermon.

    Raises:
        LLMError: model call failed or returned unusable JSON
    """
    llm = llm or get_llm_service()
    raw = await llm.complete_json(
        system=VALIDATION_PROMPT,
        messages=[{
            "role": "user",
            "content": f"Analyze this text and determine if it's a sermon: {text[:VALIDATION_SAMPLE_CHARS]}...",
        }],
        max_tokens=300,
    )
    result = SermonValidation.model_validate(raw)
    logger.info(
        "sermon_validation_result",
        is_sermon=result.is_sermon,
        confidence=result.confidence,
    )
    return result
