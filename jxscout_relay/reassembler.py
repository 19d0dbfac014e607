"""
Session reassembler: folds chunks into sessions and forwards completed ones.

Per submission:
1. Sweep expired sessions
2. Find the session (only chunk 0 may create one)
3. Enforce strict index order
4. Append the pieces
5. On completion, remove the session and forward the rebuilt artifact once
"""

from __future__ import annotations

import logging

from jxscout_relay.forwarder import IngestionForwarder
from jxscout_relay.models import Artifact
from jxscout_relay.models import Chunk
from jxscout_relay.models import Response
from jxscout_relay.sessions import SessionTable

logger = logging.getLogger(__name__)


class SessionReassembler:
    """Accumulates chunks per session and hands complete artifacts to the forwarder."""

    def __init__(self, table: SessionTable, forwarder: IngestionForwarder):
        self.table = table
        self.forwarder = forwarder

    def submit(self, chunk: Chunk) -> Response[dict]:
        """
        Apply one chunk.

        Returns:
            {"complete": False} while chunks are outstanding, {"complete": True}
            once the artifact was forwarded, or a failure for protocol
            violations and forwarding errors.
        """
        completed: Artifact | None = None

        with self.table.lock:
            self.table.collect_expired()

            session = self.table.get(chunk.session_id)
            if session is None:
                if chunk.index != 0:
                    logger.warning(
                        f"Chunk {chunk.index} for unknown session {chunk.session_id}"
                    )
                    return Response.failure(
                        "Session not found. Must start with chunk 0.", kind="protocol"
                    )
                session = self.table.create(
                    chunk.session_id, chunk.total_chunks, url=chunk.url or ""
                )
                logger.debug(
                    f"Started session {chunk.session_id} ({chunk.total_chunks} chunks)"
                )

            if chunk.index != session.received_chunks:
                logger.warning(
                    f"Out-of-order chunk for session {chunk.session_id}: "
                    f"expected {session.received_chunks}, got {chunk.index}"
                )
                return Response.failure(
                    f"Expected chunk {session.received_chunks}, got {chunk.index}",
                    kind="protocol",
                )

            session.append(chunk, self.table.clock())
            logger.debug(
                f"Session {chunk.session_id}: {session.received_chunks}/{session.total_chunks}"
            )

            if session.complete:
                # Removed before forwarding: a session is never retried
                self.table.remove(chunk.session_id)
                completed = session.to_artifact()

        if completed is None:
            return Response.ok({"complete": False})

        result = self.forwarder.forward(completed)
        if not result.success:
            return Response.failure(
                result.error or "Failed to send to jxscout",
                kind=result.kind or "transport",
            )

        logger.info(f"Reassembled and forwarded {completed.url} ({completed.total_size} chars)")
        return Response.ok({"complete": True})
