from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

from plant_doctor.core.errors import SessionNotFoundError
from plant_doctor.diagnosis.base import DiagnosisClient
from plant_doctor.preprocessing.validation import MAX_IMAGE_BYTES
from plant_doctor.session.analysis_session import AnalysisSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    In-memory map of live sessions for the HTTP layer.

    Nothing is persisted. All sessions share one diagnosis client; each owns
    its own state and preview handle.

    Memory is bounded two ways, both checked when a session is created:
    - sessions idle for longer than ttl_seconds are evicted
    - past max_sessions, the least recently used sessions are evicted
    Eviction goes through reset() so the preview is released. A session that
    is Analyzing is never evicted, so the cap can be exceeded while every
    session is busy.
    """

    def __init__(
        self,
        client: DiagnosisClient,
        *,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        max_sessions: int = 100,
        ttl_seconds: Optional[float] = 30 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._client = client
        self._max_image_bytes = max_image_bytes
        self._max_sessions = max_sessions
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, AnalysisSession] = {}
        self._last_seen: Dict[str, float] = {}

    def create(self) -> AnalysisSession:
        self._evict_expired()
        self._evict_over_capacity(room_for=1)

        session = AnalysisSession(self._client, max_image_bytes=self._max_image_bytes)
        self._sessions[session.session_id] = session
        self._last_seen[session.session_id] = self._clock()
        logger.info("session_created session_id=%s live=%d", session.session_id, len(self._sessions))
        return session

    def get(self, session_id: str) -> AnalysisSession:
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None
        self._last_seen[session_id] = self._clock()
        return session

    def discard(self, session_id: str) -> None:
        """Reset (releasing its preview) and forget the session."""
        session = self.get(session_id)
        session.reset()
        self._forget(session_id)
        logger.info("session_discarded session_id=%s", session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    # -----------------------------
    # Eviction
    # -----------------------------

    def _evict_expired(self) -> None:
        if self._ttl_seconds is None:
            return
        cutoff = self._clock() - self._ttl_seconds
        for sid in [sid for sid, seen in self._last_seen.items() if seen <= cutoff]:
            self._evict(sid, reason="expired")

    def _evict_over_capacity(self, room_for: int) -> None:
        excess = len(self._sessions) + room_for - self._max_sessions
        if excess <= 0:
            return

        # oldest first; dicts keep insertion order, so ties go to the older session
        by_age = sorted(self._last_seen, key=self._last_seen.__getitem__)
        for sid in by_age:
            if excess <= 0:
                break
            if self._evict(sid, reason="capacity"):
                excess -= 1

        if excess > 0:
            logger.warning("session_cap_exceeded live=%d max=%d", len(self._sessions), self._max_sessions)

    def _evict(self, session_id: str, *, reason: str) -> bool:
        session = self._sessions[session_id]
        if session.is_busy:
            return False
        session.reset()
        self._forget(session_id)
        logger.info("session_evicted session_id=%s reason=%s", session_id, reason)
        return True

    def _forget(self, session_id: str) -> None:
        del self._sessions[session_id]
        del self._last_seen[session_id]
