"""
Chat Router

Routes a chat message through:

1. History bounding     last CHAT_HISTORY_LIMIT messages, oversized ones dropped
2. Classification       NEEDS_CONTEXT / NO_CONTEXT (small model)
3. No-context path      pastoral assistant answer, no retrieval
4. Context path         best-effort analytics function routing, then chunk
                        retrieval; both merged into one synthesis prompt
5. Streaming            answer text, then a sermon reference trailer

prepare() does every call that can fail before the first byte is sent, so
the HTTP layer can still turn a quota error into a 429. stream() only
talks to the answer model.
"""

import json
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from sermonvault.core.config import settings
from sermonvault.core.errors import RateLimitError, SermonVaultError
from sermonvault.core.logging import get_logger
from sermonvault.services.chat.analytics import run_function
from sermonvault.services.chat.context_classifier import ContextDecision, classify_context
from sermonvault.services.chat.function_router import FunctionCall, route_function
from sermonvault.services.chat.retriever import RetrievedChunk, SermonRetriever
from sermonvault.services.llm import LLMService
from sermonvault.services.processors.embedder import EmbeddingService

logger = get_logger(__name__)

REFERENCES_START = "<<<SERMON_REFERENCES>>>"
REFERENCES_END = "<<<END_SERMON_REFERENCES>>>"

PASTORAL_PROMPT = """You are a helpful pastoral assistant.
Answer general questions about ministry, theology, and church leadership without referencing specific sermons.

Be direct and helpful in your responses.
Do not start with "Hello" or "How can I assist you?"
Instead, answer the question directly while maintaining a warm, cheerful, and professional tone."""

SYNTHESIS_PROMPT = """You are a friendly sermon assistant helping a pastor understand their own preaching.

Core instructions:
1. Answer the question directly first
2. Reference specific sermons and dates naturally, and bold them
3. Mention interesting patterns you notice in the data
4. Only use the sermon information below; if it does not answer the question, say so

{analysis}

{context}"""


class HistoryMessage(Protocol):
    role: str
    content: str


def bound_history(
    messages: Sequence[HistoryMessage],
    limit: int | None = None,
    max_chars: int | None = None,
) -> list[dict[str, str]]:
    """
    Keep the last `limit` messages, then drop any longer than max_chars.

    Only user and assistant turns are kept, and the list never starts with
    an assistant turn.
    """
    limit = limit or settings.CHAT_HISTORY_LIMIT
    max_chars = max_chars or settings.CHAT_HISTORY_MAX_CHARS

    kept = [
        {"role": m.role, "content": m.content}
        for m in list(messages)[-limit:]
        if m.role in ("user", "assistant") and len(m.content) <= max_chars
    ]
    while kept and kept[0]["role"] == "assistant":
        kept.pop(0)
    return kept


def format_chunk_context(hits: list[RetrievedChunk]) -> str:
    return "\n\n".join(
        f'[Sermon: "{hit.sermon_title}" ({hit.sermon_date.isoformat() if hit.sermon_date else "undated"}) '
        f"Content: {hit.content}]"
        for hit in hits
    )


def collect_references(hits: list[RetrievedChunk]) -> list[dict[str, Any]]:
    """Unique sermons behind hits, in order of best similarity."""
    seen: dict[int, dict[str, Any]] = {}
    for hit in hits:
        if hit.sermon_id not in seen:
            seen[hit.sermon_id] = {
                "id": hit.sermon_id,
                "title": hit.sermon_title,
                "date": hit.sermon_date.isoformat() if hit.sermon_date else None,
            }
    return list(seen.values())


def format_references_trailer(references: list[dict[str, Any]]) -> str:
    return f"\n{REFERENCES_START}{json.dumps(references)}{REFERENCES_END}"


@dataclass
class ChatPlan:
    """Everything the answer stream needs, resolved before streaming starts."""

    decision: ContextDecision
    system: str
    messages: list[dict[str, str]]
    function_call: FunctionCall | None = None
    references: list[dict[str, Any]] = field(default_factory=list)


class ChatRouter:
    """
    Usage:
    ------
    router = ChatRouter(db, llm, embedder)
    plan = await router.prepare(user.id, request.message, request.messages)
    return StreamingResponse(router.stream(plan), media_type="text/event-stream")
    """

    def __init__(self, db: AsyncSession, llm: LLMService, embedder: EmbeddingService):
        self.db = db
        self.llm = llm
        self.retriever = SermonRetriever(db, embedder)

    async def prepare(
        self,
        user_id: int,
        message: str,
        history: Sequence[HistoryMessage] = (),
    ) -> ChatPlan:
        """
        Classify the message and gather its context.

        Raises:
            RateLimitError: a provider quota was exhausted
            EmbeddingError: the question could not be embedded
        """
        messages = bound_history(history) + [{"role": "user", "content": message}]
        decision = await classify_context(message, self.llm)

        if decision is ContextDecision.NO_CONTEXT:
            logger.info("chat_routed", user_id=user_id, decision=decision.value)
            return ChatPlan(decision=decision, system=PASTORAL_PROMPT, messages=messages)

        call, analysis = await self._run_analytics(user_id, message)
        hits = await self.retriever.search(message, user_id)

        analysis_block = (
            f"Analysis results ({call.name}):\n{json.dumps(analysis, default=str)}"
            if call and analysis else ""
        )
        context_block = (
            f"Relevant sermon content:\n{format_chunk_context(hits)}"
            if hits else "No sermon passages matched this question."
        )

        logger.info(
            "chat_routed",
            user_id=user_id,
            decision=decision.value,
            function=call.name if call else None,
            function_has_result=analysis is not None,
            chunks=len(hits),
        )
        return ChatPlan(
            decision=decision,
            system=SYNTHESIS_PROMPT.format(analysis=analysis_block, context=context_block).strip(),
            messages=messages,
            function_call=call,
            references=collect_references(hits),
        )

    async def stream(self, plan: ChatPlan) -> AsyncIterator[str]:
        """Yield the answer, then the reference trailer when sermons were used."""
        async for text in self.llm.stream(system=plan.system, messages=plan.messages):
            yield text
        if plan.references:
            yield format_references_trailer(plan.references)

    async def _run_analytics(
        self,
        user_id: int,
        message: str,
    ) -> tuple[FunctionCall | None, dict[str, Any] | None]:
        try:
            call = await route_function(message, self.llm)
            if call is None:
                return None, None
            return call, await run_function(self.db, user_id, call)
        except RateLimitError:
            raise
        except SermonVaultError as e:
            logger.warning("chat_analytics_skipped", user_id=user_id, error=str(e))
            await self.db.rollback()
            return None, None

