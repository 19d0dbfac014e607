"""
Transport between the chunk sender and the relay backend.

The sender only needs two synchronous calls: a direct submission for small
artifacts and a per-chunk submission. LocalTransport binds them to an
in-process RelayBackend.
"""

from __future__ import annotations

from typing import Protocol
from typing import TYPE_CHECKING

from jxscout_relay.models import Artifact
from jxscout_relay.models import Chunk
from jxscout_relay.models import Response

if TYPE_CHECKING:
    from jxscout_relay.api import RelayBackend


class ChunkTransport(Protocol):
    def send_direct(self, artifact: Artifact) -> Response[None]: ...

    def send_chunk(self, chunk: Chunk) -> Response[dict]: ...


class LocalTransport:
    """Calls straight into a RelayBackend living in the same process."""

    def __init__(self, backend: RelayBackend):
        self.backend = backend

    def send_direct(self, artifact: Artifact) -> Response[None]:
        return self.backend.send_to_jxscout(artifact.url, artifact.request, artifact.response)

    def send_chunk(self, chunk: Chunk) -> Response[dict]:
        return self.backend.send_to_jxscout_chunk(
            chunk.session_id,
            chunk.index,
            chunk.total_chunks,
            chunk.url,
            chunk.request_piece,
            chunk.response_piece,
        )
