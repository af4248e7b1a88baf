"""
Embedding Service

Generates vector embeddings for sermon chunks and chat queries through the
OpenAI embeddings API (text-embedding-3-small, 1536 dimensions).

Batching:
---------
embed_batch() embeds its texts concurrently. The pipeline feeds it
EMBEDDING_BATCH_SIZE chunks at a time and persists each batch before
requesting the next, which bounds concurrent outbound calls and keeps
partial progress if the run dies midway.
"""

import asyncio
from collections.abc import Iterable, Iterator, Sequence
from itertools import islice
from typing import TypeVar

import openai
from openai import AsyncOpenAI

from sermonvault.core.config import settings
from sermonvault.core.errors import EmbeddingError, RateLimitError
from sermonvault.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive lists of at most size items."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    iterator = iter(items)
    while batch := list(islice(iterator, size)):
        yield batch


class EmbeddingService:
    """
    Service for generating embeddings via the OpenAI API.

    Usage:
    ------
    embedder = get_embedding_service()
    vector = await embedder.embed_text("What did I preach about grace?")
    vectors = await embedder.embed_batch(["chunk one", "chunk two"])
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        dimension: int | None = None,
        batch_size: int | None = None,
    ):
        if client is None:
            if not settings.OPENAI_API_KEY:
                raise EmbeddingError("OPENAI_API_KEY not configured", provider_name="openai")
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.EMBEDDING_TIMEOUT_SECONDS,
                max_retries=0,
            )
        self.client = client
        self.model = model or settings.EMBEDDING_MODEL
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self.batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE

    async def embed_text(self, text: str) -> list[float]:
        """
        Generate the embedding of a single text.

        Raises:
            RateLimitError: OpenAI quota or rate limit hit
            EmbeddingError: any other API failure, or an unexpected vector size
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text", provider_name="openai")

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text,
            )
        except openai.RateLimitError as e:
            raise RateLimitError("OpenAI rate limit or quota exceeded", provider_name="openai") from e
        except openai.APIError as e:
            raise EmbeddingError(f"Embedding request failed: {e}", provider_name="openai") from e

        vector = list(response.data[0].embedding)
        if len(vector) != self.dimension:
            raise EmbeddingError(
                f"Expected {self.dimension}-dim embedding, got {len(vector)}",
                provider_name="openai",
            )
        return vector

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed texts concurrently, one request per text.

        Results are returned in input order. The first failure propagates
        and the batch is abandoned.
        """
        if not texts:
            return []
        vectors = await asyncio.gather(*(self.embed_text(t) for t in texts))
        logger.debug("embedding_batch_completed", size=len(texts), model=self.model)
        return list(vectors)


# ================================
# Global Instance (Singleton)
# ================================

_embedding_service: EmbeddingService | None = None


def get_embedding_service() -> EmbeddingService:
    """Return the process-wide EmbeddingService, creating it on first call."""
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
        logger.info(
            "embedding_service_initialized",
            model=_embedding_service.model,
            dimension=_embedding_service.dimension,
        )
    return _embedding_service
