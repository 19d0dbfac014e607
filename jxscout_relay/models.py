"""
Core type definitions for the jxscout relay.

Wire shapes mirror what the jxscout server and the chunk submission call
expect:
- Artifact.to_dict() is the ingestion body {requestUrl, request, response}
- Response.to_dict() is the {success, data} / {success, error} envelope
- Settings.to_dict() is the persisted settings JSON
"""

from __future__ import annotations

import random
import time
import uuid
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Generic
from typing import Literal
from typing import TypeVar

T = TypeVar("T")

ErrorKind = Literal["transport", "protocol", "config"]


# =============================================================================
# Result envelope
# =============================================================================


@dataclass
class Response(Generic[T]):
    """
    Tagged success/failure result returned by every public operation.

    `kind` classifies failures (transport, protocol, config) for callers;
    it is not part of the wire envelope.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: Any = None) -> Response:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, message: str, kind: ErrorKind = "transport") -> Response:
        return cls(success=False, error=message, kind=kind)

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


# =============================================================================
# Artifact / Chunk / Session
# =============================================================================


@dataclass(frozen=True)
class Artifact:
    """A captured (URL, raw request, raw response) triple."""

    url: str
    request: str
    response: str

    @property
    def total_size(self) -> int:
        return len(self.request) + len(self.response)

    def to_dict(self) -> dict:
        return {
            "requestUrl": self.url,
            "request": self.request,
            "response": self.response,
        }


@dataclass(frozen=True)
class Chunk:
    """
    One bounded-size fragment of an artifact plus session metadata.

    The URL travels only on the first chunk.
    """

    session_id: str
    index: int
    total_chunks: int
    url: str | None = None
    request_piece: str | None = None
    response_piece: str | None = None

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Chunk index must be >= 0, got {self.index}")
        if self.total_chunks < 1:
            raise ValueError(f"total_chunks must be >= 1, got {self.total_chunks}")
        if self.url is not None and self.index != 0:
            raise ValueError(f"URL is only allowed on chunk 0, got it on chunk {self.index}")


@dataclass
class Session:
    """Reassembly state for one in-flight chunked transfer."""

    session_id: str
    total_chunks: int
    last_activity: float
    url: str = ""
    received_chunks: int = 0
    request_pieces: list[str] = field(default_factory=list)
    response_pieces: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.received_chunks >= self.total_chunks

    def append(self, chunk: Chunk, now: float) -> None:
        """Fold a chunk into the buffers. Caller has already checked ordering."""
        if chunk.index == 0 and chunk.url:
            self.url = chunk.url
        if chunk.request_piece:
            self.request_pieces.append(chunk.request_piece)
        if chunk.response_piece:
            self.response_pieces.append(chunk.response_piece)
        self.received_chunks += 1
        self.last_activity = now

    def to_artifact(self) -> Artifact:
        return Artifact(
            url=self.url,
            request="".join(self.request_pieces),
            response="".join(self.response_pieces),
        )


# =============================================================================
# Settings
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """User-configurable relay settings (persisted as JSON)."""

    port: int = 3333
    host: str = "localhost"
    filter_in_scope: bool = True
    enabled: bool = True

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "host": self.host,
            "filterInScope": self.filter_in_scope,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Settings:
        """Build from the JSON shape; missing keys take the defaults."""
        defaults = cls()
        return cls(
            port=data.get("port", defaults.port),
            host=data.get("host", defaults.host),
            filter_in_scope=data.get("filterInScope", defaults.filter_in_scope),
            enabled=data.get("enabled", defaults.enabled),
        )


DEFAULT_SETTINGS = Settings()


# =============================================================================
# Session identifiers
# =============================================================================


def generate_session_id() -> str:
    """Generate a UUID v7 (millisecond timestamp + 74 random bits)."""
    timestamp_ms = int(time.time() * 1000) & ((1 << 48) - 1)
    rand_bits = random.SystemRandom().getrandbits(74)

    uuid_int = (
        (timestamp_ms << 80)
        | (0x7 << 76)  # version 7
        | ((rand_bits >> 62) << 64)
        | (0b10 << 62)  # RFC 4122 variant
        | (rand_bits & ((1 << 62) - 1))
    )
    return str(uuid.UUID(int=uuid_int))
