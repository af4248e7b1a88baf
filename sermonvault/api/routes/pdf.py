"""
PDF viewing endpoint.

GET /api/pdf?path={user_id}/{sermon_id}/{file_name} returns a presigned
URL valid for one hour. Paths outside the caller's own prefix are refused.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sermonvault.api.deps import get_storage_service
from sermonvault.core.auth import get_current_active_user
from sermonvault.core.errors import StorageError
from sermonvault.core.logging import get_logger
from sermonvault.models.user import User
from sermonvault.schemas.sermon import SignedUrlResponse
from sermonvault.services.storage import SermonStorage

logger = get_logger(__name__)

router = APIRouter(tags=["files"])


def is_owned_path(path: str, user_id: int) -> bool:
    """True when path sits under {user_id}/ and has no traversal segments."""
    segments = path.split("/")
    return (
        path.startswith(f"{user_id}/")
        and len(segments) > 1
        and all(segment not in ("", ".", "..") for segment in segments)
    )


@router.get("/pdf", response_model=SignedUrlResponse)
async def get_pdf_url(
    path: Optional[str] = Query(None, description="Storage key of the PDF"),
    current_user: User = Depends(get_current_active_user),
    storage: SermonStorage = Depends(get_storage_service),
):
    """
    Presigned URL for a stored sermon PDF.

    Raises:
        HTTPException 400: path missing
        HTTPException 403: path not owned by the caller
        HTTPException 500: signing failed
    """
    if not path:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing path parameter"
        )

    if not is_owned_path(path, current_user.id):
        logger.warning("pdf_access_denied", user_id=current_user.id, path=path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )

    try:
        url = await storage.generate_signed_url(path)
    except StorageError as e:
        logger.error("pdf_signing_failed", user_id=current_user.id, path=path, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate file URL"
        )

    return SignedUrlResponse(url=url)
