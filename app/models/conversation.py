"""Request and response models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

MAX_MESSAGE_CHARS = 4000
SESSION_ID_PATTERN = r"^[A-Za-z0-9_-]{1,128}$"


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""

    message: str = Field(..., max_length=MAX_MESSAGE_CHARS)
    session_id: str | None = Field(None, pattern=SESSION_ID_PATTERN)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        """Strip surrounding whitespace and reject empty messages."""
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty or whitespace only")
        return v


class ChatResponse(BaseModel):
    """Response model for the chat endpoint."""

    response: str
    session_id: str


class ResetRequest(BaseModel):
    """Request model for the reset endpoint."""

    session_id: str = Field(..., pattern=SESSION_ID_PATTERN)


class ResetResponse(BaseModel):
    """Response model for the reset endpoint."""

    success: bool = True


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
    active_sessions: int
