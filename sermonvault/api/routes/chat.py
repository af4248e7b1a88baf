"""
Chat API Route

POST /api/chat streams an answer about the caller's own sermons.

Classification, analytics and retrieval all run before the response
starts, so quota errors still become a proper 429. The body is then
streamed as text/event-stream and, when sermons were used, ends with:

    <<<SERMON_REFERENCES>>>[{"id": 1, "title": "...", "date": "..."}]<<<END_SERMON_REFERENCES>>>
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from sermonvault.api.deps import get_chat_router
from sermonvault.core.auth import get_current_active_user
from sermonvault.core.errors import EmbeddingError, LLMError, RateLimitError
from sermonvault.core.logging import get_logger
from sermonvault.models.user import User
from sermonvault.schemas.chat import ChatRequest
from sermonvault.services.chat.router import ChatRouter

logger = get_logger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat")
async def chat(
    request: ChatRequest,
    current_user: User = Depends(get_current_active_user),
    chat_router: ChatRouter = Depends(get_chat_router),
):
    """
    Ask a question, optionally with recent conversation history.

    Raises:
        HTTPException 429: model or embedding quota exhausted
        HTTPException 502: model or embedding call failed
    """
    try:
        plan = await chat_router.prepare(
            user_id=current_user.id,
            message=request.message,
            history=request.messages,
        )
    except HTTPException:
        raise
    except RateLimitError as e:
        logger.warning("chat_rate_limited", user_id=current_user.id, provider=e.provider_name)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Service temporarily unavailable"
        )
    except (LLMError, EmbeddingError) as e:
        logger.error("chat_model_failed", user_id=current_user.id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to process request"
        )

    return StreamingResponse(
        chat_router.stream(plan),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
