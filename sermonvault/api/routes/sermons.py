"""
Sermon endpoints.

All endpoints are owner-scoped: another user's sermon is a 404.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from sermonvault.api.deps import get_sermon_service
from sermonvault.core.auth import get_current_active_user
from sermonvault.core.logging import get_logger
from sermonvault.models.sermon import Sermon
from sermonvault.models.user import User
from sermonvault.schemas.sermon import SermonResponse, SermonUpdate
from sermonvault.services.sermon_service import SermonService, with_confidence

logger = get_logger(__name__)

router = APIRouter(prefix="/sermons", tags=["sermons"])


async def _get_owned(service: SermonService, sermon_id: int, user: User) -> Sermon:
    sermon = await service.get_sermon(sermon_id, user.id)
    if sermon is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sermon not found"
        )
    return sermon


@router.get("", response_model=List[SermonResponse])
async def list_sermons(
    current_user: User = Depends(get_current_active_user),
    service: SermonService = Depends(get_sermon_service),
):
    """The caller's sermons, newest first."""
    sermons = await service.list_sermons(current_user.id)
    return [SermonResponse.model_validate(s) for s in sermons]


@router.get("/{sermon_id}", response_model=None)
async def get_sermon(
    sermon_id: int,
    confidence: bool = Query(False, description="Wrap each metadata field as {value, confidence}"),
    current_user: User = Depends(get_current_active_user),
    service: SermonService = Depends(get_sermon_service),
):
    """
    One sermon.

    With ?confidence=true every metadata field is returned as
    {"value": ..., "confidence": ...}, confidence defaulting to 0.
    """
    sermon = await _get_owned(service, sermon_id, current_user)
    if confidence:
        return with_confidence(sermon)
    return SermonResponse.model_validate(sermon)


@router.patch("/{sermon_id}", response_model=SermonResponse)
async def update_sermon(
    sermon_id: int,
    update: SermonUpdate,
    current_user: User = Depends(get_current_active_user),
    service: SermonService = Depends(get_sermon_service),
):
    """
    Partially update a sermon's metadata.

    Raises:
        HTTPException 404: not found / not owned
        HTTPException 422: unknown sermon_type or tags (handled by Pydantic)
    """
    sermon = await _get_owned(service, sermon_id, current_user)
    sermon = await service.update_sermon(sermon, update.changes())
    return SermonResponse.model_validate(sermon)


@router.delete("/{sermon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_sermon(
    sermon_id: int,
    current_user: User = Depends(get_current_active_user),
    service: SermonService = Depends(get_sermon_service),
):
    """Delete a sermon, its chunks and its stored file."""
    sermon = await _get_owned(service, sermon_id, current_user)
    await service.delete_sermon(sermon)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
