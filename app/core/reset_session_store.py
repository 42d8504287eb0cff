"""In-memory store of reset workflows keyed by session id.

One ResetWorkflow per browser session. Requests of the same session are
serialized by a per-session lock; different sessions run in parallel.
Idle sessions are evicted by sweep_idle() (called from the lifespan task).
"""

from __future__ import annotations

import secrets
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from app.application.services.reset_workflow import ResetWorkflow
from app.shared.telemetry.logging import get_logger
from app.shared.utils.clock import Clock, utc_now

logger = get_logger(__name__)

SESSION_ID_BYTES = 32


@dataclass
class _SessionEntry:
    workflow: ResetWorkflow
    last_seen: datetime
    lock: threading.Lock = field(default_factory=threading.Lock)
    in_use: int = 0


class ResetSessionStore:
    """Session id -> ResetWorkflow, with idle eviction."""

    def __init__(
        self,
        workflow_factory: Callable[[], ResetWorkflow],
        idle_timeout: timedelta,
        *,
        clock: Clock = utc_now,
    ) -> None:
        if idle_timeout <= timedelta(0):
            raise ValueError("idle_timeout must be positive")
        self._workflow_factory = workflow_factory
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: dict[str, _SessionEntry] = {}

    @contextmanager
    def checkout(self, session_id: str | None) -> Iterator[tuple[str, ResetWorkflow]]:
        """Yield (session_id, workflow) while holding the session's lock.

        Unknown or missing ids start a new session under a freshly generated
        id; client-chosen ids are never adopted.
        """
        with self._lock:
            entry = self._sessions.get(session_id) if session_id else None
            if entry is None:
                session_id = secrets.token_urlsafe(SESSION_ID_BYTES)
                entry = _SessionEntry(
                    workflow=self._workflow_factory(), last_seen=self._clock()
                )
                self._sessions[session_id] = entry
                logger.debug("Started reset session")
            entry.in_use += 1

        try:
            with entry.lock:
                yield session_id, entry.workflow
        finally:
            with self._lock:
                entry.in_use -= 1
                entry.last_seen = self._clock()

    def sweep_idle(self) -> int:
        """Evict sessions idle for longer than the timeout. Returns the count removed."""
        now = self._clock()
        with self._lock:
            idle = [
                sid
                for sid, entry in self._sessions.items()
                if entry.in_use == 0 and now - entry.last_seen > self._idle_timeout
            ]
            for sid in idle:
                del self._sessions[sid]
        if idle:
            logger.info("Evicted %d idle reset session(s)", len(idle))
        return len(idle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
