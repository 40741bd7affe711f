"""Shared FastAPI dependencies."""

from fastapi import HTTPException, Request, status
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from app.services.session_manager import SessionRegistry

DEFAULT_CHAT_RATE_LIMIT = "30/minute"


class ClientRateLimiter:
    """Per-client request limiter for the chat endpoint."""

    def __init__(self, rate: str = DEFAULT_CHAT_RATE_LIMIT):
        self.limit = parse(rate)
        self.limiter = MovingWindowRateLimiter(MemoryStorage())

    def hit(self, identifier: str) -> bool:
        """Record one request and return whether it is allowed."""
        return self.limiter.hit(self.limit, "chat", identifier)


def get_session_registry(request: Request) -> SessionRegistry:
    """Return the registry created during application startup."""
    registry = getattr(request.app.state, "session_registry", None)
    if registry is None:
        raise RuntimeError("SessionRegistry not initialized.")
    return registry


def enforce_chat_rate_limit(request: Request) -> None:
    """Reject clients that exceed the chat rate limit with 429."""
    limiter: ClientRateLimiter | None = getattr(request.app.state, "chat_rate_limiter", None)
    if limiter is None:
        return

    client_id = request.client.host if request.client else "unknown"
    if not limiter.hit(client_id):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please slow down.",
        )
