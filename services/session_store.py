"""Session store — registry of active learning/story sessions.

Provides an abstract interface with an in-memory implementation.  The
store owns session objects for their lifetime; only the Interaction
Processor mutates them, and only while holding the session's lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod

from models.session import LearningSession, LeveledState, LinearState
from models.template import LinearTemplate
from services.template_catalog import TemplateCatalog, get_template_catalog

logger = logging.getLogger(__name__)


# ── Abstract Interface ───────────────────────────────────────


class SessionStore(ABC):
    """Abstract session store — implement for different backends."""

    def __init__(self, catalog: TemplateCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> TemplateCatalog:
        return self._catalog

    def new_session(self, participant_id: str, template_id: str) -> LearningSession:
        """Build a session whose state variant matches the template kind.

        Raises :class:`TemplateNotFound` if the template is unknown.
        """
        template = self._catalog.require_template(template_id)
        state = LinearState() if isinstance(template, LinearTemplate) else LeveledState()
        return LearningSession(
            participant_id=participant_id,
            template_id=template_id,
            state=state,
        )

    async def create(self, participant_id: str, template_id: str) -> LearningSession:
        """Create and register a new session."""
        session = self.new_session(participant_id, template_id)
        await self.save(session)
        logger.info(
            "Session created: %s participant=%s template=%s",
            session.id, participant_id, template_id,
        )
        return session

    @abstractmethod
    async def get(self, session_id: str) -> LearningSession | None:
        """Retrieve a session by ID.  Returns None if not found or expired."""
        ...

    @abstractmethod
    async def save(self, session: LearningSession) -> None:
        """Persist a session (create or update)."""
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Remove a session."""
        ...

    @abstractmethod
    def lock(self, session_id: str) -> asyncio.Lock:
        """Per-session lock serializing turns on one session."""
        ...

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """Remove all expired sessions.  Returns count removed."""
        ...


# ── In-Memory Implementation ────────────────────────────────


class InMemorySessionStore(SessionStore):
    """Single-process store with inactivity TTL and a session cap.

    When ``max_sessions`` is exceeded the least recently saved session is
    evicted.  Suitable for single-worker deployments.
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        ttl_seconds: int = 7200,
        max_sessions: int = 1000,
    ) -> None:
        super().__init__(catalog)
        self._store: dict[str, LearningSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._ttl = ttl_seconds
        self._max_sessions = max_sessions

    def _is_expired(self, session: LearningSession) -> bool:
        return (time.time() - session.updated_at) > self._ttl

    def _evict(self, session_id: str) -> None:
        self._store.pop(session_id, None)
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    async def get(self, session_id: str) -> LearningSession | None:
        session = self._store.get(session_id)
        if session is None:
            return None
        if self._is_expired(session):
            self._evict(session_id)
            logger.debug("Session expired: %s", session_id)
            return None
        return session

    async def save(self, session: LearningSession) -> None:
        # Re-insert so dict order tracks recency for cap eviction
        self._store.pop(session.id, None)
        self._store[session.id] = session
        while len(self._store) > self._max_sessions:
            oldest_id = next(iter(self._store))
            self._evict(oldest_id)
            logger.info("Session cap reached (%d) — evicted %s", self._max_sessions, oldest_id)

    async def delete(self, session_id: str) -> None:
        self._evict(session_id)

    def lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    async def cleanup_expired(self) -> int:
        now = time.time()
        expired = [
            sid for sid, s in self._store.items()
            if (now - s.updated_at) > self._ttl
        ]
        for sid in expired:
            self._evict(sid)
        if expired:
            logger.info("Cleaned up %d expired sessions", len(expired))
        return len(expired)

    @property
    def size(self) -> int:
        """Number of sessions currently stored (may include expired)."""
        return len(self._store)


# ── Module-level Singleton ───────────────────────────────────

_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Get the singleton session store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        _store = InMemorySessionStore(
            catalog=get_template_catalog(),
            ttl_seconds=settings.session_ttl,
            max_sessions=settings.session_max,
        )
        logger.info(
            "Initialized InMemorySessionStore (TTL=%ds, max=%d)",
            settings.session_ttl, settings.session_max,
        )
    return _store


# ── Background Cleanup Task ──────────────────────────────────


async def periodic_cleanup(store: SessionStore, interval_seconds: int = 300) -> None:
    """Background task that periodically evicts expired sessions.

    Started as an ``asyncio.Task`` in the FastAPI lifespan.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await store.cleanup_expired()
        except Exception:
            logger.exception("Session store cleanup failed")
