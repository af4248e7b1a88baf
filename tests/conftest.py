"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Tests run against an in-memory SQLite database. Anthropic, OpenAI and S3
are never contacted: the LLM and embedder are in-process fakes and the
storage service wraps a MagicMock boto3 client.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/tutorial/testing/
- Async SQLAlchemy: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
"""

import os

# Must be set before sermonvault.core.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ENV"] = "testing"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")

import datetime as dt
from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import fitz  # PyMuPDF
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sermonvault.api.deps import (
    get_chat_router,
    get_pipeline,
    get_sermon_service,
    get_storage_service,
)
from sermonvault.core.security import create_access_token, get_password_hash
from sermonvault.db.base import Base
from sermonvault.db.deps import get_db
from sermonvault.main import app
from sermonvault.models.sermon import Sermon
from sermonvault.models.user import User
from sermonvault.services.chat.router import ChatRouter
from sermonvault.services.metadata.classifier import MetadataClassifier
from sermonvault.services.pipeline import SermonPipeline
from sermonvault.services.processors.chunker import SermonChunker
from sermonvault.services.sermon_service import SermonService
from sermonvault.services.storage import SermonStorage

EMBEDDING_DIMENSION = 1536

SERMON_TEXT = (
    "Grace Upon Grace. A sermon on John 1:16 preached by Rev. Daniel Hughes. "
    "From his fullness we have all received, grace upon grace. "
    "Grace is the unearned favor of God toward people who could never repay it. "
    "Paul reminds us in Ephesians 2:8-9 that we are saved by grace through faith. "
    "When I was a young pastor I tried to earn that favor through long hours. "
    "My father once told me that a gift you pay for is no longer a gift. "
    "The law came through Moses, but grace and truth came through Jesus Christ. "
    "This week, receive grace before you try to give it. "
    "Forgive someone who has not asked for it, and watch what grace does."
)

METADATA_REPLY: dict[str, Any] = {
    "title": "Grace Upon Grace",
    "date": "2024-03-10",
    "preacher": "Daniel Hughes",
    "location": None,
    "series": "The Gospel of John",
    "primary_scripture": "John 1:16",
    "scriptures": ["John 1:16", "Ephesians 2:8-9"],
    "sermon_type": "Expository",
    "topics": ["grace", "forgiveness"],
    "tags": ["Salvation", "faith", "made-up-tag"],
    "summary": "Grace is received before it is given.",
    "key_points": ["Grace is unearned", "Grace came through Jesus"],
    "illustrations": ["A gift you pay for is no longer a gift"],
    "themes": ["grace"],
    "calls_to_action": ["Forgive someone who has not asked for it"],
    "personal_stories": ["Trying to earn favor as a young pastor"],
    "mentioned_people": ["Moses", "Paul"],
    "mentioned_events": [],
    "tone": "encouraging",
    "keywords": ["grace", "gift"],
    "confidence": {
        "title": 0.95,
        "date": 0.8,
        "preacher": 0.9,
        "location": 0.4,
        "sermon_type": 0.7,
        "tags": 0.6,
    },
}


def make_pdf(*pages: str) -> bytes:
    """Build an in-memory PDF with one page per text argument."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_textbox(fitz.Rect(72, 72, 540, 770), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def fake_vector(text: str) -> list[float]:
    return [(len(text) % 10 + 1) / 10.0] * EMBEDDING_DIMENSION


# ================================
# Fake Providers
# ================================

def _reply(value: Any) -> Any:
    if isinstance(value, Exception):
        raise value
    return value


class FakeLLM:
    """
    Stand-in for LLMService.

    Set text_reply / json_reply / tool_reply to a value, or to an exception
    instance to make that call fail. Every call is recorded in `calls`.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, list[dict[str, str]]]] = []
        self.text_reply: Any = "NEEDS_CONTEXT"
        self.json_reply: Any = dict(METADATA_REPLY)
        self.tool_reply: Any = None
        self.stream_parts: list[str] = ["Grace ", "abounds."]

    async def complete(self, system, messages, model=None, max_tokens=None, temperature=0.0):
        self.calls.append(("complete", system, messages))
        return _reply(self.text_reply)

    async def complete_json(self, system, messages, model=None, max_tokens=None):
        self.calls.append(("complete_json", system, messages))
        return _reply(self.json_reply)

    async def call_tool(self, system, messages, tools, model=None):
        self.calls.append(("call_tool", system, messages))
        return _reply(self.tool_reply)

    async def stream(self, system, messages, model=None, max_tokens=None, temperature=0.7):
        self.calls.append(("stream", system, messages))
        for part in self.stream_parts:
            yield part


class FakeEmbedder:
    """
    Stand-in for EmbeddingService.

    fail_on_batch=N makes the Nth embed_batch() call raise `error`.
    """

    def __init__(self, batch_size: int = 2) -> None:
        self.batch_size = batch_size
        self.dimension = EMBEDDING_DIMENSION
        self.batches: list[list[str]] = []
        self.texts: list[str] = []
        self.fail_on_batch: int | None = None
        self.error: Exception | None = None
        self.text_error: Exception | None = None

    async def embed_text(self, text: str) -> list[float]:
        self.texts.append(text)
        if self.text_error is not None:
            raise self.text_error
        return fake_vector(text)

    async def embed_batch(self, texts):
        self.batches.append(list(texts))
        if self.fail_on_batch == len(self.batches):
            raise self.error
        return [fake_vector(t) for t in texts]


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single connection alive so every session sees
    the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    import sermonvault.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session for one test.

    Pipeline stages commit and roll back on their own, so tests get a
    plain session on a throwaway database rather than an outer
    transaction.
    """
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


# ================================
# Provider Fixtures
# ================================

@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def s3_client() -> MagicMock:
    """MagicMock standing in for a boto3 S3 client."""
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://signed.example.com/sermon.pdf?X-Amz-Signature=abc"
    return client


@pytest.fixture
def storage(s3_client: MagicMock) -> SermonStorage:
    return SermonStorage(bucket="test-sermons", region="us-east-1", client=s3_client)


@pytest.fixture
def pipeline(db_session, fake_llm, fake_embedder, storage) -> SermonPipeline:
    """Pipeline wired to fakes; 200-char chunks so short texts span several batches."""
    return SermonPipeline(
        db_session,
        classifier=MetadataClassifier(fake_llm),
        embedder=fake_embedder,
        storage=storage,
        chunker=SermonChunker(max_chars=200, overlap_chars=60),
        validate_content=False,
    )


@pytest.fixture
def sermon_service(db_session, storage) -> SermonService:
    return SermonService(db_session, storage=storage)


@pytest.fixture
def chat_router(db_session, fake_llm, fake_embedder) -> ChatRouter:
    """ChatRouter whose retriever returns no hits unless a test says otherwise."""
    router = ChatRouter(db_session, fake_llm, fake_embedder)
    router.retriever = MagicMock(search=AsyncMock(return_value=[]))
    return router


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    pipeline: SermonPipeline,
    sermon_service: SermonService,
    storage: SermonStorage,
    chat_router: ChatRouter,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for the app, with every service dependency pointed
    at the test session and fakes.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/api/sermons", headers=auth_headers)
            assert response.status_code == 200
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_sermon_service] = lambda: sermon_service
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_chat_router] = lambda: chat_router

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ================================
# User Fixtures
# ================================

async def _create_user(db_session: AsyncSession, email: str, name: str, is_active: bool = True) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash("testpass123"),
        is_active=is_active,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Active user; password is "testpass123"."""
    return await _create_user(db_session, "pastor@example.com", "Pastor Dan")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second account, for ownership checks."""
    return await _create_user(db_session, "other@example.com", "Other Pastor")


@pytest_asyncio.fixture
async def inactive_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "inactive@example.com", "Inactive Pastor", is_active=False)


# ================================
# Authentication Fixtures
# ================================

def _bearer(user: User) -> dict[str, str]:
    token = create_access_token(data={"sub": user.email}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    return _bearer(test_user)


@pytest.fixture
def other_auth_headers(other_user: User) -> dict[str, str]:
    return _bearer(other_user)


@pytest.fixture
def expired_token() -> str:
    return create_access_token(
        data={"sub": "pastor@example.com"},
        expires_delta=timedelta(hours=-1),
    )


# ================================
# Sermon Fixtures
# ================================

@pytest.fixture
def sermon_pdf() -> bytes:
    return make_pdf(SERMON_TEXT)


@pytest_asyncio.fixture
async def uploaded_record(pipeline: SermonPipeline, test_user: User, sermon_pdf: bytes):
    return await pipeline.create_record(test_user.id, "grace.pdf", "application/pdf", sermon_pdf)


@pytest_asyncio.fixture
async def parsed_record(pipeline: SermonPipeline, uploaded_record):
    await pipeline.parse(uploaded_record)
    return uploaded_record


@pytest_asyncio.fixture
async def vectorized_record(pipeline: SermonPipeline, parsed_record):
    await pipeline.vectorize(parsed_record)
    return parsed_record


@pytest.fixture
def make_sermon(db_session: AsyncSession):
    """
    Factory for finalized sermons.

    Usage:
        sermon = await make_sermon(test_user, title="Faith", topics=["faith"])
    """
    async def _make(user: User, **fields: Any) -> Sermon:
        values: dict[str, Any] = {
            "title": "Untitled Sermon",
            "date": dt.date(2024, 1, 7),
            "preacher": "Daniel Hughes",
            "word_count": 2500,
        }
        values.update(fields)
        sermon = Sermon(user_id=user.id, **values)
        db_session.add(sermon)
        await db_session.commit()
        await db_session.refresh(sermon)
        return sermon

    return _make


# ================================
# Pytest Hooks
# ================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires network and API keys)"
    )
