"""API endpoints for the Fliplet app assistant."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, status

from app import __version__
from app.api.dependencies import enforce_chat_rate_limit, get_session_registry
from app.models.conversation import (
    ChatRequest,
    ChatResponse,
    HealthResponse,
    ResetRequest,
    ResetResponse,
)
from app.services.session_manager import SessionRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


@router.post(
    "/chat",
    response_model=ChatResponse,
    tags=["Conversation"],
    dependencies=[Depends(enforce_chat_rate_limit)],
)
async def chat(request: ChatRequest, registry: SessionRegistry = Depends(get_session_registry)) -> ChatResponse:
    """Send a message and return the assistant's answer.

    A new session is created when no session_id is given or when the given
    session has expired.
    """
    session_id = request.session_id or registry.new_id()
    session = registry.resolve_session(session_id)

    try:
        # One turn at a time per session
        async with session.lock:
            logger.info(f"Processing message for session {session_id}: {request.message[:50]}...")
            response_text = await session.engine.chat(request.message)
    except Exception as e:
        logger.error(f"Conversation processing error for session {session_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e

    return ChatResponse(response=response_text, session_id=session_id)


@router.post("/reset", response_model=ResetResponse, tags=["Conversation"])
async def reset(request: ResetRequest, registry: SessionRegistry = Depends(get_session_registry)) -> ResetResponse:
    """Clear the conversation history of a session."""
    if registry.exists(request.session_id):
        session = registry.resolve_session(request.session_id)
        async with session.lock:
            session.engine.reset()
        logger.info(f"Reset session {request.session_id}")

    return ResetResponse(success=True)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(registry: SessionRegistry = Depends(get_session_registry)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC),
        version=__version__,
        active_sessions=registry.count,
    )
