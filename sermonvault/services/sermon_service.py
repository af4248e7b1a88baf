"""
Sermon Service

Owner-scoped reads, edits and deletes of finalized sermons.

Every query filters on user_id, so another user's sermon is
indistinguishable from a missing one.
"""

from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sermonvault.core.errors import StorageError
from sermonvault.core.logging import get_logger
from sermonvault.models.sermon import (
    SERMON_METADATA_FIELDS,
    Sermon,
    SermonChunk,
    SermonProcessing,
)
from sermonvault.services.storage import SermonStorage, get_storage

logger = get_logger(__name__)


def with_confidence(sermon: Sermon) -> dict[str, dict[str, Any]]:
    """
    Wrap each metadata field as {"value": ..., "confidence": ...}.

    Fields missing from confidence_scores get confidence 0.
    """
    scores = sermon.confidence_scores or {}
    wrapped: dict[str, dict[str, Any]] = {}
    for name in ("id", *SERMON_METADATA_FIELDS, "word_count"):
        value = getattr(sermon, name)
        if name == "date" and value is not None:
            value = value.isoformat()
        try:
            confidence = float(scores.get(name, 0.0))
        except (TypeError, ValueError):
            confidence = 0.0
        wrapped[name] = {"value": value, "confidence": confidence}
    return wrapped


class SermonService:
    """
    Usage:
    ------
    service = SermonService(db)
    sermons = await service.list_sermons(user.id)
    sermon = await service.get_sermon(sermon_id, user.id)
    await service.delete_sermon(sermon)
    """

    def __init__(self, db: AsyncSession, storage: SermonStorage | None = None):
        self.db = db
        self._storage = storage

    @property
    def storage(self) -> SermonStorage:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    async def list_sermons(self, user_id: int) -> list[Sermon]:
        """All of the user's sermons, newest first."""
        result = await self.db.execute(
            select(Sermon)
            .where(Sermon.user_id == user_id)
            .order_by(Sermon.created_at.desc(), Sermon.id.desc())
        )
        return list(result.scalars().all())

    async def get_sermon(self, sermon_id: int, user_id: int) -> Sermon | None:
        result = await self.db.execute(
            select(Sermon).where(Sermon.id == sermon_id, Sermon.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def update_sermon(self, sermon: Sermon, changes: dict[str, Any]) -> Sermon:
        """
        Apply a partial metadata update.

        changes must already be validated; unknown keys are ignored.
        """
        applied = []
        for name, value in changes.items():
            if name in SERMON_METADATA_FIELDS or name == "word_count":
                setattr(sermon, name, value)
                applied.append(name)

        await self.db.commit()
        await self.db.refresh(sermon)

        logger.info("sermon_updated", sermon_id=sermon.id, fields=applied)
        return sermon

    async def delete_sermon(self, sermon: Sermon) -> None:
        """
        Delete a sermon and everything hanging off it.

        Order: chunks, processing record references, storage object, sermon
        row. A storage failure is logged and does not block the delete.
        """
        sermon_id = sermon.id
        file_path = sermon.file_path

        await self.db.execute(delete(SermonChunk).where(SermonChunk.sermon_id == sermon_id))
        await self.db.execute(
            update(SermonProcessing)
            .where(SermonProcessing.sermon_id == sermon_id)
            .values(sermon_id=None)
        )

        if file_path:
            try:
                await self.storage.delete(file_path)
            except StorageError as e:
                logger.error("sermon_file_delete_failed", sermon_id=sermon_id, key=file_path, error=str(e))

        await self.db.delete(sermon)
        await self.db.commit()

        logger.info("sermon_deleted", sermon_id=sermon_id, had_file=bool(file_path))
