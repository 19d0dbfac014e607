"""
Chunk sender: one "send this artifact" call regardless of size.

Artifacts that fit under the chunk threshold go out in a single direct call.
Larger ones get a fresh session id; request and response are split
independently and the chunks are sent strictly one after another.
"""

from __future__ import annotations

import logging

from jxscout_relay.config import config
from jxscout_relay.models import Artifact
from jxscout_relay.models import Chunk
from jxscout_relay.models import generate_session_id
from jxscout_relay.models import Response
from jxscout_relay.transport import ChunkTransport

logger = logging.getLogger(__name__)


def split_payload(text: str, size: int) -> list[str]:
    """Split text into consecutive pieces of at most `size` characters."""
    if size < 1:
        raise ValueError(f"Chunk size must be >= 1, got {size}")
    return [text[i : i + size] for i in range(0, len(text), size)]


def build_chunks(artifact: Artifact, session_id: str, chunk_size: int) -> list[Chunk]:
    """
    Partition an artifact into chunks.

    Request and response are split on their own boundaries, so one stream
    may run out before the other; total_chunks is the longer of the two.
    """
    request_pieces = split_payload(artifact.request, chunk_size)
    response_pieces = split_payload(artifact.response, chunk_size)
    total_chunks = max(len(request_pieces), len(response_pieces), 1)

    chunks = []
    for index in range(total_chunks):
        chunks.append(
            Chunk(
                session_id=session_id,
                index=index,
                total_chunks=total_chunks,
                url=artifact.url if index == 0 else None,
                request_piece=request_pieces[index] if index < len(request_pieces) else None,
                response_piece=response_pieces[index] if index < len(response_pieces) else None,
            )
        )
    return chunks


class ChunkSender:
    """Sends artifacts over a size-limited transport."""

    def __init__(self, transport: ChunkTransport, chunk_size: int | None = None):
        self.transport = transport
        self.chunk_size = chunk_size if chunk_size is not None else config.CHUNK_SIZE
        if self.chunk_size < 1:
            raise ValueError(f"Chunk size must be >= 1, got {self.chunk_size}")

    def send(self, artifact: Artifact) -> Response[None]:
        if artifact.total_size <= self.chunk_size:
            logger.debug(f"Sending {artifact.url} directly ({artifact.total_size} chars)")
            return self.transport.send_direct(artifact)

        session_id = generate_session_id()
        chunks = build_chunks(artifact, session_id, self.chunk_size)
        logger.info(
            f"Sending {artifact.url} in {len(chunks)} chunks "
            f"({artifact.total_size} chars, session {session_id})"
        )

        for chunk in chunks:
            # Each call must finish before the next: the receiver enforces order
            result = self.transport.send_chunk(chunk)
            if not result.success:
                logger.error(
                    f"Chunk {chunk.index + 1}/{chunk.total_chunks} of {artifact.url} failed: {result.error}"
                )
                return Response.failure(result.error or "Chunk send failed", kind=result.kind or "transport")

            if result.data and result.data.get("complete"):
                return Response.ok(None)

        logger.error(f"Session {session_id} never reported completion")
        return Response.failure("Not all chunks were processed", kind="protocol")
