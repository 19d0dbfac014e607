"""
In-memory table of in-flight chunked transfers.

The table is owned by a single SessionReassembler and guarded by one lock.
Expired sessions are swept synchronously by collect_expired(), which the
reassembler calls on every submission; there is no background thread, so an
idle table keeps expired entries until the next submission arrives.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from jxscout_relay.config import config
from jxscout_relay.models import Session

logger = logging.getLogger(__name__)


class SessionTable:
    """
    Maps session_id -> Session.

    Callers must hold `lock` while reading or mutating the table; the
    methods here do not take it themselves so that a lookup, an order
    check and an append can run as one critical section.
    """

    def __init__(
        self,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout if timeout is not None else config.SESSION_TIMEOUT
        self.clock = clock
        self.lock = threading.Lock()
        self._sessions: dict[str, Session] = {}

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def create(self, session_id: str, total_chunks: int, url: str = "") -> Session:
        session = Session(
            session_id=session_id,
            total_chunks=total_chunks,
            last_activity=self.clock(),
            url=url,
        )
        self._sessions[session_id] = session
        return session

    def remove(self, session_id: str) -> Session | None:
        return self._sessions.pop(session_id, None)

    def collect_expired(self) -> int:
        """Evict every session idle for longer than the staleness window."""
        now = self.clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_activity > self.timeout
        ]
        for session_id in expired:
            session = self._sessions.pop(session_id)
            logger.info(
                f"Evicted stale session {session_id} "
                f"({session.received_chunks}/{session.total_chunks} chunks, url={session.url or '?'})"
            )
        return len(expired)

    def clear(self) -> None:
        with self.lock:
            if self._sessions:
                logger.info(f"Dropping {len(self._sessions)} in-flight session(s)")
            self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
