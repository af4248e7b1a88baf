"""
Sermon Ingestion Pipeline

The processing record is a small state machine driven by four client calls:

    upload      → uploaded     (text extracted, record created)
    parse       → parsed       (metadata extracted, sermon row created)
    vectorize   → vectorized   (chunks embedded and stored batch by batch)
    store       → completed    (PDF written to object storage)

Any stage may move the record to error instead.

Rules:
------
1. A stage only runs when the record is in its predecessor state, or in
   error after failing at that same stage (a retry). Otherwise it raises
   InvalidStateError and leaves the record untouched.
2. On success the record advances and the caller learns the next step.
   Nothing chains automatically.
3. On failure the record is marked error with the message and the failed
   stage. It is never deleted, and work committed by earlier stages or
   earlier embedding batches stays in place.
"""

import enum
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sermonvault.core.config import settings
from sermonvault.core.errors import (
    EmbeddingError,
    ExtractionError,
    InvalidStateError,
    NotASermonError,
    SermonVaultError,
)
from sermonvault.core.logging import get_logger
from sermonvault.models.sermon import (
    CHUNK_TYPE_CONTENT,
    ProcessingStatus,
    Sermon,
    SermonChunk,
    SermonProcessing,
)
from sermonvault.schemas.metadata import SermonValidation
from sermonvault.services.metadata.classifier import MetadataClassifier
from sermonvault.services.metadata.validator import validate_sermon_content
from sermonvault.services.processors.chunker import SermonChunker
from sermonvault.services.processors.embedder import (
    EmbeddingService,
    batched,
    get_embedding_service,
)
from sermonvault.services.processors.pdf_extractor import extract_pdf_text
from sermonvault.services.storage import SermonStorage, build_object_key, get_storage

logger = get_logger(__name__)

DEFAULT_TITLE = "Untitled Sermon"
DEFAULT_PREACHER = "Unknown Preacher"
DEFAULT_SUMMARY = "No summary available"


class Stage(str, enum.Enum):
    """Externally invoked pipeline stages."""

    PARSE = "parse"
    VECTORIZE = "vectorize"
    STORE = "store"

    def __str__(self) -> str:
        return self.value


# Stage → status the record must be in before it runs
STAGE_PREDECESSOR: dict[Stage, ProcessingStatus] = {
    Stage.PARSE: ProcessingStatus.UPLOADED,
    Stage.VECTORIZE: ProcessingStatus.PARSED,
    Stage.STORE: ProcessingStatus.VECTORIZED,
}

# Stage → status the record moves to on success
STAGE_RESULT: dict[Stage, ProcessingStatus] = {
    Stage.PARSE: ProcessingStatus.PARSED,
    Stage.VECTORIZE: ProcessingStatus.VECTORIZED,
    Stage.STORE: ProcessingStatus.COMPLETED,
}

NEXT_STEP: dict[Stage, str | None] = {
    Stage.PARSE: Stage.VECTORIZE.value,
    Stage.VECTORIZE: Stage.STORE.value,
    Stage.STORE: None,
}


@dataclass
class StageResult:
    """Outcome of a successful stage."""

    record: SermonProcessing
    status: ProcessingStatus
    next_step: str | None
    chunk_count: int | None = None
    file_path: str | None = None
    public_url: str | None = None


ContentValidator = Callable[[str], Awaitable[SermonValidation]]


def count_words(text: str) -> int:
    return len(text.split())


class SermonPipeline:
    """
    Runs pipeline stages against processing records.

    Collaborators are injected so tests can substitute fakes; any left
    out fall back to the process-wide singletons on first use.

    Usage:
    ------
    pipeline = SermonPipeline(db)
    record = await pipeline.create_record(user.id, "sermon.pdf", "application/pdf", data)
    result = await pipeline.parse(record)
    result.next_step  # "vectorize"
    """

    def __init__(
        self,
        db: AsyncSession,
        classifier: MetadataClassifier | None = None,
        embedder: EmbeddingService | None = None,
        storage: SermonStorage | None = None,
        chunker: SermonChunker | None = None,
        content_validator: ContentValidator | None = None,
        validate_content: bool | None = None,
    ):
        self.db = db
        self.classifier = classifier or MetadataClassifier()
        self._embedder = embedder
        self._storage = storage
        self.chunker = chunker or SermonChunker()
        self.content_validator = content_validator or validate_sermon_content
        self.validate_content = (
            settings.SERMON_VALIDATION_ENABLED if validate_content is None else validate_content
        )

    @property
    def embedder(self) -> EmbeddingService:
        if self._embedder is None:
            self._embedder = get_embedding_service()
        return self._embedder

    @property
    def storage(self) -> SermonStorage:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    # ========================================
    # Records
    # ========================================

    async def create_record(
        self,
        user_id: int,
        file_name: str,
        file_type: str,
        content: bytes,
    ) -> SermonProcessing:
        """
        Extract text from an uploaded PDF and create an `uploaded` record.

        Raises:
            ExtractionError: the PDF is unreadable; no record is created
        """
        document = await extract_pdf_text(content)

        record = SermonProcessing(
            user_id=user_id,
            status=ProcessingStatus.UPLOADED.value,
            file_name=file_name,
            file_size=len(content),
            file_type=file_type,
            page_count=document.page_count,
            raw_text=document.text,
        )
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)

        logger.info(
            "processing_record_created",
            processing_id=record.id,
            user_id=user_id,
            pages=document.page_count,
            characters=len(document.text),
        )
        return record

    async def get_record(self, processing_id: int, user_id: int) -> SermonProcessing | None:
        """Load a record owned by user_id, or None."""
        result = await self.db.execute(
            select(SermonProcessing).where(
                SermonProcessing.id == processing_id,
                SermonProcessing.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    # ========================================
    # State Checks
    # ========================================

    def check_state(self, record: SermonProcessing, stage: Stage) -> None:
        """
        Assert record may run stage.

        Raises:
            InvalidStateError: naming the expected and actual status
        """
        expected = STAGE_PREDECESSOR[stage]
        if record.status == expected.value:
            return
        if record.status == ProcessingStatus.ERROR.value and record.failed_stage == stage.value:
            logger.info("stage_retry", stage=stage.value, processing_id=record.id)
            return
        raise InvalidStateError(stage.value, expected.value, record.status)

    async def _advance(self, record: SermonProcessing, stage: Stage) -> ProcessingStatus:
        status = STAGE_RESULT[stage]
        record.status = status.value
        record.error_message = None
        record.failed_stage = None
        await self.db.commit()
        logger.info(
            "stage_completed",
            stage=stage.value,
            processing_id=record.id,
            sermon_id=record.sermon_id,
            status=status.value,
        )
        return status

    async def _fail(self, record: SermonProcessing, stage: Stage, error: Exception) -> None:
        """Discard uncommitted work and mark the record as error."""
        logger.error(
            "stage_failed",
            stage=stage.value,
            processing_id=record.id,
            error=str(error),
            error_type=type(error).__name__,
        )
        await self.db.rollback()
        await self.db.refresh(record)
        record.status = ProcessingStatus.ERROR.value
        record.error_message = str(error)[:2000]
        record.failed_stage = stage.value
        await self.db.commit()

    # ========================================
    # Stage 1: Parse
    # ========================================

    async def parse(self, record: SermonProcessing) -> StageResult:
        """
        Extract metadata and create the sermon row.

        Raises:
            InvalidStateError: record not `uploaded`
            NotASermonError: content validation rejected the document
            MetadataError / RateLimitError: classifier failure
        """
        self.check_state(record, Stage.PARSE)

        try:
            text = record.raw_text or ""
            if not text.strip():
                raise ExtractionError("Processing record has no extracted text")

            if self.validate_content:
                verdict = await self.content_validator(text)
                if not verdict.is_sermon:
                    raise NotASermonError(verdict.reason, verdict.confidence)

            metadata = await self.classifier.extract(text)

            sermon = Sermon(
                user_id=record.user_id,
                processing_id=record.id,
                **metadata.sermon_values(),
            )
            sermon.title = sermon.title or DEFAULT_TITLE
            sermon.date = sermon.date or date.today()
            sermon.preacher = sermon.preacher or DEFAULT_PREACHER
            sermon.summary = sermon.summary or DEFAULT_SUMMARY
            sermon.word_count = count_words(text)
            sermon.confidence_scores = metadata.confidence
            sermon.file_name = record.file_name
            sermon.file_size = record.file_size
            sermon.file_type = record.file_type
            sermon.file_pages = record.page_count

            self.db.add(sermon)
            await self.db.flush()
            record.sermon_id = sermon.id

        except Exception as e:
            await self._fail(record, Stage.PARSE, e)
            raise

        status = await self._advance(record, Stage.PARSE)
        return StageResult(record=record, status=status, next_step=NEXT_STEP[Stage.PARSE])

    # ========================================
    # Stage 2: Vectorize
    # ========================================

    async def vectorize(self, record: SermonProcessing) -> StageResult:
        """
        Chunk the text, embed each batch concurrently and persist it.

        Batches run strictly in sequence. Each one is committed before the
        next starts, so a crash keeps completed batches. A retry first
        clears chunks left behind by the failed attempt.

        Raises:
            InvalidStateError: record not `parsed`
            EmbeddingError / RateLimitError: embedding failure
        """
        self.check_state(record, Stage.VECTORIZE)

        chunk_count = 0
        try:
            if record.sermon_id is None:
                raise SermonVaultError("Processing record has no sermon to vectorize")

            await self.db.execute(
                delete(SermonChunk).where(SermonChunk.sermon_id == record.sermon_id)
            )

            chunks = self.chunker.iter_chunks(record.raw_text or "")
            for batch in batched(chunks, self.embedder.batch_size):
                vectors = await self.embedder.embed_batch([chunk.text for chunk in batch])
                self.db.add_all([
                    SermonChunk(
                        sermon_id=record.sermon_id,
                        chunk_index=chunk.index,
                        content=chunk.text,
                        chunk_type=CHUNK_TYPE_CONTENT,
                        embedding=vector,
                    )
                    for chunk, vector in zip(batch, vectors)
                ])
                await self.db.commit()
                chunk_count += len(batch)
                logger.info(
                    "embedding_batch_persisted",
                    processing_id=record.id,
                    sermon_id=record.sermon_id,
                    batch_size=len(batch),
                    total=chunk_count,
                )

            if chunk_count == 0:
                raise EmbeddingError("Sermon text produced no chunks")

        except Exception as e:
            await self._fail(record, Stage.VECTORIZE, e)
            raise

        status = await self._advance(record, Stage.VECTORIZE)
        return StageResult(
            record=record,
            status=status,
            next_step=NEXT_STEP[Stage.VECTORIZE],
            chunk_count=chunk_count,
        )

    # ========================================
    # Stage 3: Store
    # ========================================

    async def store(
        self,
        record: SermonProcessing,
        file_name: str,
        content: bytes,
        content_type: str = "application/pdf",
    ) -> StageResult:
        """
        Upload the original PDF and finalize the sermon's file reference.

        Raises:
            InvalidStateError: record not `vectorized`
            StorageError: upload failed
        """
        self.check_state(record, Stage.STORE)

        try:
            sermon = await self.db.get(Sermon, record.sermon_id) if record.sermon_id else None
            if sermon is None or sermon.user_id != record.user_id:
                raise SermonVaultError("Sermon for this processing record no longer exists")

            key = build_object_key(record.user_id, sermon.id, file_name)
            await self.storage.upload(key, content, content_type)

            sermon.file_path = key
            sermon.public_url = self.storage.public_url(key)
            sermon.file_name = file_name
            sermon.file_size = len(content)
            sermon.file_type = content_type
            sermon.file_pages = record.page_count

        except Exception as e:
            await self._fail(record, Stage.STORE, e)
            raise

        status = await self._advance(record, Stage.STORE)
        return StageResult(
            record=record,
            status=status,
            next_step=NEXT_STEP[Stage.STORE],
            file_path=sermon.file_path,
            public_url=sermon.public_url,
        )
