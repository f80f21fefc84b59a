"""In-memory pipeline sessions keyed by an id kept in the signed session cookie."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request

from ..agents.orchestrator import PipelineSession
from ..config.settings import settings

logger = logging.getLogger(__name__)

SESSION_KEY = "pipeline_id"


class SessionStore:
    """Holds one PipelineSession per browser session. One active run per session.

    A session not touched for ``max_age`` seconds is evicted, matching the
    lifetime of the signed cookie that carries its id.
    """

    def __init__(self, max_age: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_age = max_age
        self._clock = clock
        self._sessions: dict[str, PipelineSession] = {}
        self._last_seen: dict[str, float] = {}

    def get_or_create(self, session_id: str) -> PipelineSession:
        now = self._clock()
        self.evict_expired(now)
        session = self._sessions.get(session_id)
        if session is None:
            session = PipelineSession()
            self._sessions[session_id] = session
            logger.info("Created pipeline session %s", session_id)
        self._last_seen[session_id] = now
        return session

    def evict_expired(self, now: float) -> int:
        expired = [sid for sid, seen in self._last_seen.items() if now - seen > self.max_age]
        for session_id in expired:
            self.discard(session_id)
        if expired:
            logger.info("Evicted %d expired pipeline sessions", len(expired))
        return len(expired)

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


session_store = SessionStore(max_age=settings.session_max_age)


def get_session_store() -> SessionStore:
    return session_store


def session_id_for(request: Request) -> str:
    """Return the pipeline id stored in the request's session, creating one if needed."""
    session_id = request.session.get(SESSION_KEY)
    if not session_id:
        session_id = uuid.uuid4().hex
        request.session[SESSION_KEY] = session_id
    return session_id
