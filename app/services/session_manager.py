"""In-memory session registry mapping session ids to chat engines."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from cuid2 import cuid_wrapper

from app.models.session import Session
from app.services.chat_engine import ChatEngine
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

DEFAULT_MAX_SESSIONS = 100
DEFAULT_SESSION_TTL_MINUTES = 30
DEFAULT_CLEANUP_INTERVAL_MINUTES = 5


class SessionRegistry:
    """Per-user conversation state with capacity and idle-time eviction.

    Every mutation of the session map is a synchronous block with no await
    inside it, so resolve(), destroy() and the periodic sweep are serialized
    by the event loop and never interleave. Each Session also carries a lock
    that the HTTP layer holds for a whole chat turn, so requests for one
    session are processed sequentially.
    """

    def __init__(
        self,
        engine_factory: Callable[[], ChatEngine],
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        session_ttl_minutes: float = DEFAULT_SESSION_TTL_MINUTES,
        cleanup_interval_minutes: float = DEFAULT_CLEANUP_INTERVAL_MINUTES,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize session registry.

        Args:
            engine_factory: Called with no arguments to build a fresh engine per session
            max_sessions: Maximum number of live sessions before the oldest is evicted
            session_ttl_minutes: Minutes of inactivity before a session expires
            cleanup_interval_minutes: Minutes between background expiry sweeps
            clock: Source of the current time (defaults to UTC wall clock)
        """
        if engine_factory is None:
            raise ValueError("SessionRegistry requires a factory function to create chat engines")
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")

        self._factory = engine_factory
        self._sessions: dict[str, Session] = {}
        self.max_sessions = max_sessions
        self.session_ttl = timedelta(minutes=session_ttl_minutes)
        self.cleanup_interval = timedelta(minutes=cleanup_interval_minutes)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._cleanup_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    @property
    def count(self) -> int:
        """Current number of live sessions."""
        return len(self._sessions)

    def resolve_session(self, session_id: str) -> Session:
        """Get the session record, creating the session if it is unknown.

        Args:
            session_id: Session identifier

        Returns:
            The Session, whose engine and lock stay the same for its lifetime
        """
        now = self._clock()

        session = self._sessions.get(session_id)
        if session is not None:
            session.touch(now)
            return session

        if len(self._sessions) >= self.max_sessions:
            self._evict_least_recently_used()

        session = Session(session_id=session_id, engine=self._factory(), created_at=now, last_accessed_at=now)
        self._sessions[session_id] = session
        logger.info(f"Created session {session.as_dict()} ({len(self._sessions)}/{self.max_sessions})")
        return session

    def resolve(self, session_id: str) -> ChatEngine:
        """Get the engine for a session, creating the session if it is unknown."""
        return self.resolve_session(session_id).engine

    def exists(self, session_id: str) -> bool:
        """Check if a session exists."""
        return session_id in self._sessions

    def destroy(self, session_id: str) -> None:
        """Destroy a session. Unknown ids are ignored."""
        if self._sessions.pop(session_id, None) is not None:
            logger.info(f"Destroyed session {session_id}")

    def new_id(self) -> str:
        """Generate a new CUID-based session ID."""
        return cuid()

    def sweep(self) -> int:
        """Remove every session idle for longer than the TTL.

        Returns:
            Number of sessions removed
        """
        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.idle_for(now) > self.session_ttl.total_seconds()
        ]

        for session_id in expired:
            del self._sessions[session_id]

        if expired:
            logger.info(f"Expired {len(expired)} idle sessions, {len(self._sessions)} remaining")
        return len(expired)

    def _evict_least_recently_used(self) -> None:
        oldest = min(self._sessions.values(), key=lambda session: session.last_accessed_at)
        del self._sessions[oldest.session_id]
        logger.info(f"Session capacity {self.max_sessions} reached, evicted {oldest.as_dict()}")

    async def start_cleanup(self) -> None:
        """Start the periodic expiry sweep."""
        if self._cleanup_task is not None:
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop(), name="session-cleanup")
        logger.info(
            f"Session cleanup started (ttl={self.session_ttl}, interval={self.cleanup_interval}, "
            f"max_sessions={self.max_sessions})"
        )

    async def stop_cleanup(self) -> None:
        """Stop the periodic expiry sweep."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.cleanup_interval.total_seconds())
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Session cleanup sweep failed")
