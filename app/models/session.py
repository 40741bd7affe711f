"""Session state for per-user conversations."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.services.chat_engine import ChatEngine


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class Session:
    """A session owns exactly one conversation engine.

    ``lock`` serializes turns on the engine; callers hold it around chat()
    and reset() so concurrent requests for one session run one at a time.
    """

    session_id: str
    engine: "ChatEngine"
    created_at: datetime = field(default_factory=_utcnow)
    last_accessed_at: datetime = field(default_factory=_utcnow)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def as_dict(self) -> dict[str, Any]:
        """Return the session metadata as a dictionary."""
        return {
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "last_accessed_at": self.last_accessed_at.isoformat(),
        }

    def touch(self, now: datetime | None = None) -> None:
        """Update the last access timestamp."""
        self.last_accessed_at = now or _utcnow()

    def idle_for(self, now: datetime) -> float:
        """Seconds since the session was last accessed."""
        return (now - self.last_accessed_at).total_seconds()
