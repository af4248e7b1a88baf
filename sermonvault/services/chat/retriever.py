"""
Sermon Chunk Retriever

Semantic search over one user's sermon chunks with pgvector cosine
distance. Similarity is reported as 1 - distance.

Query Shapes:
-------------
- simple questions:      threshold 0.3, at most 5 chunks
- analytical questions:  threshold 0.2, at most 30 chunks
  ("how many", "how often", "frequency", "pattern", "when ... last", "history")

Person or entity questions ("what did I say about Moses?") get a suffix on
the embedding input so that passages mentioning the person score higher
than passages that only share the topic.
"""

import re
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sermonvault.core.config import settings
from sermonvault.core.logging import get_logger
from sermonvault.models.sermon import Sermon, SermonChunk
from sermonvault.services.processors.embedder import EmbeddingService

logger = get_logger(__name__)

ANALYTICAL_QUERY = re.compile(r"how (many|often)|frequency|pattern|when.*last|history")

ENTITY_SUFFIX = " (mentions, quotes, or references)"

# "about Moses", "say about Paul", "mention David", "quote Spurgeon"
_ENTITY_QUERY = re.compile(
    r"\b(?:who|about|mention(?:ed|s)?|quot(?:e|ed|es)|reference[ds]?|said)\b\s+"
    r"(?:[A-Z][a-z]+)(?:\s+[A-Z][a-z]+)*",
)


def is_analytical_query(message: str) -> bool:
    return ANALYTICAL_QUERY.search(message.lower()) is not None


def is_entity_query(message: str) -> bool:
    """True when the question is about a named person or entity."""
    return bool(re.match(r"\s*who\b", message, re.IGNORECASE)) or _ENTITY_QUERY.search(message) is not None


def build_search_text(message: str) -> str:
    """Text to embed for message."""
    if is_entity_query(message):
        return f"{message}{ENTITY_SUFFIX}"
    return message


@dataclass
class RetrievedChunk:
    """A chunk hit with its sermon's title and date attached."""

    chunk_id: int
    sermon_id: int
    content: str
    similarity: float
    sermon_title: str
    sermon_date: date | None


class SermonRetriever:
    """
    Usage:
    ------
    retriever = SermonRetriever(db, embedder)
    hits = await retriever.search("When did I last preach on Job?", user_id=7)
    """

    def __init__(self, db: AsyncSession, embedder: EmbeddingService):
        self.db = db
        self.embedder = embedder

    def limits_for(self, message: str) -> tuple[float, int]:
        """(similarity threshold, max results) for message."""
        if is_analytical_query(message):
            return settings.RAG_ANALYTICAL_THRESHOLD, settings.RAG_ANALYTICAL_COUNT
        return settings.RAG_SIMPLE_THRESHOLD, settings.RAG_SIMPLE_COUNT

    async def search(self, message: str, user_id: int) -> list[RetrievedChunk]:
        """Return the user's best-matching chunks, most similar first."""
        threshold, limit = self.limits_for(message)
        embedding = await self.embedder.embed_text(build_search_text(message))

        distance = SermonChunk.embedding.cosine_distance(embedding)
        query = (
            select(
                SermonChunk.id,
                SermonChunk.sermon_id,
                SermonChunk.content,
                Sermon.title,
                Sermon.date,
                distance.label("distance"),
            )
            .join(Sermon, SermonChunk.sermon_id == Sermon.id)
            .where(
                Sermon.user_id == user_id,
                SermonChunk.embedding.isnot(None),
                distance <= 1.0 - threshold,
            )
            .order_by(distance)
            .limit(limit)
        )
        rows = (await self.db.execute(query)).all()

        hits = [
            RetrievedChunk(
                chunk_id=row.id,
                sermon_id=row.sermon_id,
                content=row.content,
                similarity=1.0 - float(row.distance),
                sermon_title=row.title,
                sermon_date=row.date,
            )
            for row in rows
        ]
        hits.sort(key=lambda h: h.similarity, reverse=True)

        logger.info(
            "sermon_chunks_retrieved",
            user_id=user_id,
            hits=len(hits),
            threshold=threshold,
            limit=limit,
        )
        return hits
