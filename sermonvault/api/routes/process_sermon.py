"""
Pipeline stage endpoints.

    POST /api/process-sermon/{id}/parse       uploaded   → parsed
    POST /api/process-sermon/{id}/vectorize   parsed     → vectorized
    POST /api/process-sermon/{id}/store       vectorized → completed   (multipart file)
    GET  /api/process-sermon/{id}             current status

Error bodies:
-------------
400 {"error": "Invalid state for <stage>. Current state: X", "currentStatus", "expectedStatus"}
422 {"error": "...", "reason": "..."}        document is not a sermon
429 {"error": "...", "step": "<stage>"}      provider quota exhausted
500 {"error": "Failed to <stage> sermon", "step": "<stage>"}

Internal details stay in the logs and in the record's error_message.
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse

from sermonvault.api.deps import get_pipeline
from sermonvault.api.routes.upload import PDF_CONTENT_TYPE, read_pdf_upload
from sermonvault.core.auth import get_current_active_user
from sermonvault.core.errors import InvalidStateError, NotASermonError, RateLimitError
from sermonvault.core.logging import get_logger
from sermonvault.models.sermon import SermonProcessing
from sermonvault.models.user import User
from sermonvault.schemas.sermon import ProcessingStatusResponse, StageResponse
from sermonvault.services.pipeline import SermonPipeline, Stage, StageResult

logger = get_logger(__name__)

router = APIRouter(prefix="/process-sermon", tags=["processing"])


async def _load_record(pipeline: SermonPipeline, processing_id: int, user: User) -> SermonProcessing:
    record = await pipeline.get_record(processing_id, user.id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Processing record not found"
        )
    return record


def stage_error_response(stage: Stage, processing_id: int, error: Exception) -> JSONResponse:
    """Translate a stage failure into its HTTP error body."""
    if isinstance(error, InvalidStateError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": error.message,
                "currentStatus": error.actual,
                "expectedStatus": error.expected,
            },
        )

    logger.error(
        "stage_request_failed",
        stage=stage.value,
        processing_id=processing_id,
        error=str(error),
        error_type=type(error).__name__,
    )

    if isinstance(error, NotASermonError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Document does not appear to be a sermon", "reason": error.reason},
        )
    if isinstance(error, RateLimitError):
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": "Service temporarily unavailable", "step": stage.value},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": f"Failed to {stage.value} sermon", "step": stage.value},
    )


def _stage_response(result: StageResult) -> StageResponse:
    return StageResponse(
        processing_id=result.record.id,
        sermon_id=result.record.sermon_id,
        status=result.status.value,
        next_step=result.next_step,
        chunk_count=result.chunk_count,
        file_path=result.file_path,
        public_url=result.public_url,
    )


@router.get("/{processing_id}", response_model=ProcessingStatusResponse)
async def get_processing_status(
    processing_id: int,
    current_user: User = Depends(get_current_active_user),
    pipeline: SermonPipeline = Depends(get_pipeline),
):
    """Current pipeline state of an upload."""
    record = await _load_record(pipeline, processing_id, current_user)
    return ProcessingStatusResponse(
        processing_id=record.id,
        status=record.status,
        sermon_id=record.sermon_id,
        file_name=record.file_name,
        page_count=record.page_count,
        error_message=record.error_message,
        failed_stage=record.failed_stage,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@router.post("/{processing_id}/parse", response_model=StageResponse, response_model_exclude_none=True)
async def parse_sermon(
    processing_id: int,
    current_user: User = Depends(get_current_active_user),
    pipeline: SermonPipeline = Depends(get_pipeline),
):
    """
    Extract metadata and create the sermon.

    Returns:
        {"processingId", "sermonId", "status": "parsed", "nextStep": "vectorize"}
    """
    record = await _load_record(pipeline, processing_id, current_user)
    try:
        result = await pipeline.parse(record)
    except Exception as e:
        return stage_error_response(Stage.PARSE, processing_id, e)
    return _stage_response(result)


@router.post("/{processing_id}/vectorize", response_model=StageResponse, response_model_exclude_none=True)
async def vectorize_sermon(
    processing_id: int,
    current_user: User = Depends(get_current_active_user),
    pipeline: SermonPipeline = Depends(get_pipeline),
):
    """
    Chunk and embed the sermon text.

    Returns:
        {"processingId", "sermonId", "status": "vectorized", "chunkCount", "nextStep": "store"}
    """
    record = await _load_record(pipeline, processing_id, current_user)
    try:
        result = await pipeline.vectorize(record)
    except Exception as e:
        return stage_error_response(Stage.VECTORIZE, processing_id, e)
    return _stage_response(result)


@router.post("/{processing_id}/store", response_model=StageResponse, response_model_exclude_none=True)
async def store_sermon(
    processing_id: int,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user),
    pipeline: SermonPipeline = Depends(get_pipeline),
):
    """
    Upload the original PDF to object storage and complete the pipeline.

    Returns:
        {"processingId", "sermonId", "status": "completed", "filePath", "publicUrl"}
    """
    record = await _load_record(pipeline, processing_id, current_user)
    content = await read_pdf_upload(file)
    try:
        result = await pipeline.store(
            record,
            file_name=file.filename,
            content=content,
            content_type=file.content_type or PDF_CONTENT_TYPE,
        )
    except Exception as e:
        return stage_error_response(Stage.STORE, processing_id, e)
    return _stage_response(result)
