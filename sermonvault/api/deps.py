"""
Service dependencies for FastAPI routes.

Routes never construct services themselves; they depend on these
providers, which tests replace through app.dependency_overrides:

    app.dependency_overrides[get_pipeline] = lambda: SermonPipeline(db, classifier=fake, ...)

Model, embedding and storage clients are process-wide singletons created
on first use, so a request that never needs one never creates it.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sermonvault.db.deps import get_db
from sermonvault.services.chat.router import ChatRouter
from sermonvault.services.llm import get_llm_service
from sermonvault.services.pipeline import SermonPipeline
from sermonvault.services.processors.embedder import get_embedding_service
from sermonvault.services.sermon_service import SermonService
from sermonvault.services.storage import SermonStorage, get_storage


def get_storage_service() -> SermonStorage:
    return get_storage()


def get_pipeline(db: AsyncSession = Depends(get_db)) -> SermonPipeline:
    return SermonPipeline(db)


def get_sermon_service(db: AsyncSession = Depends(get_db)) -> SermonService:
    return SermonService(db)


def get_chat_router(db: AsyncSession = Depends(get_db)) -> ChatRouter:
    return ChatRouter(db, get_llm_service(), get_embedding_service())
