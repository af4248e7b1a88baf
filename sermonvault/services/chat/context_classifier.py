"""
Decides whether a chat message needs the user's sermon corpus.

General biblical or theological questions are answered directly; questions
about specific sermons, past teaching, frequency or history need retrieval.
When in doubt the answer is NEEDS_CONTEXT.
"""

import enum

from sermonvault.core.config import settings
from sermonvault.core.errors import LLMError, RateLimitError
from sermonvault.core.logging import get_logger
from sermonvault.services.llm import LLMService

logger = get_logger(__name__)


class ContextDecision(str, enum.Enum):
    NEEDS_CONTEXT = "NEEDS_CONTEXT"
    NO_CONTEXT = "NO_CONTEXT"


CLASSIFIER_PROMPT = """Determine if this question requires searching through sermon content or if it's a general question.

Questions that NEED_CONTEXT:
- "What did Pastor John say about marriage last month?"
- "Which sermon talked about the prodigal son?"
- "When was the last time you covered Revelation?"
- "What are the key points from recent sermons about prayer?"
- "How many times have you preached on forgiveness?"

Questions that DON'T need context (NO_CONTEXT):
- "What does the Bible say about marriage?"
- "Can you explain the story of the prodigal son?"
- "How should I pray?"
- "What is the meaning of forgiveness in Christianity?"
- "What are the basic principles of faith?"

Rules:
1. If the question references specific sermons, pastors, or past teachings → NEEDS_CONTEXT
2. If the question asks about frequency, patterns, or history → NEEDS_CONTEXT
3. If the question is about general biblical or theological topics → NO_CONTEXT
4. If in doubt, prefer NEEDS_CONTEXT for better accuracy

Reply with only "NEEDS_CONTEXT" or "NO_CONTEXT"."""


async def classify_context(message: str, llm: LLMService) -> ContextDecision:
    """
    Classify a message. Only an exact NO_CONTEXT reply skips retrieval.

    Rate limits propagate; any other classifier failure falls back to
    NEEDS_CONTEXT.
    """
    try:
        reply = await llm.complete(
            system=CLASSIFIER_PROMPT,
            messages=[{"role": "user", "content": f'Question: "{message}"'}],
            model=settings.ANTHROPIC_CLASSIFIER_MODEL,
            max_tokens=10,
        )
    except RateLimitError:
        raise
    except LLMError as e:
        logger.warning("context_classifier_failed", error=str(e))
        return ContextDecision.NEEDS_CONTEXT

    decision = (
        ContextDecision.NO_CONTEXT
        if reply.strip() == ContextDecision.NO_CONTEXT.value
        else ContextDecision.NEEDS_CONTEXT
    )
    logger.debug("context_classified", decision=decision.value)
    return decision
