"""
Upload endpoint.

POST /api/upload accepts one PDF, extracts its text and creates a
processing record in the `uploaded` state. The client then drives the
pipeline through /api/process-sermon/{id}/parse, /vectorize and /store.
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from sermonvault.core.auth import get_current_active_user
from sermonvault.core.config import settings
from sermonvault.core.errors import ExtractionError
from sermonvault.core.logging import get_logger
from sermonvault.api.deps import get_pipeline
from sermonvault.models.user import User
from sermonvault.schemas.sermon import UploadResponse
from sermonvault.services.pipeline import SermonPipeline

logger = get_logger(__name__)

router = APIRouter(tags=["upload"])

PDF_CONTENT_TYPE = "application/pdf"


def is_pdf(file: UploadFile) -> bool:
    """PDF by content type or by extension."""
    return file.content_type == PDF_CONTENT_TYPE or (file.filename or "").lower().endswith(".pdf")


async def read_pdf_upload(file: UploadFile) -> bytes:
    """
    Read and check an uploaded PDF.

    Raises:
        HTTPException 400: not a PDF, or empty
        HTTPException 413: larger than MAX_UPLOAD_BYTES
    """
    if not file.filename or not is_pdf(file):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF files are accepted"
        )

    content = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty"
        )
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB limit"
        )
    return content


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_sermon(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user),
    pipeline: SermonPipeline = Depends(get_pipeline),
):
    """
    Upload a sermon PDF.

    Returns:
        {"processingId": ..., "status": "uploaded"}

    Raises:
        HTTPException 400: invalid or empty file
        HTTPException 413: file too large
        HTTPException 422: PDF text could not be extracted
    """
    content = await read_pdf_upload(file)

    try:
        record = await pipeline.create_record(
            user_id=current_user.id,
            file_name=file.filename,
            file_type=file.content_type or PDF_CONTENT_TYPE,
            content=content,
        )
    except ExtractionError as e:
        logger.warning("upload_extraction_failed", user_id=current_user.id, file_name=file.filename, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Could not extract text from the PDF"
        )

    return UploadResponse(processing_id=record.id, status=record.status)
