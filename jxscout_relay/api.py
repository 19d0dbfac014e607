"""
Relay backend: the public operations behind the chunk transport.

Every operation returns a Response. Unexpected exceptions are caught here,
logged, and converted to failures; nothing raises past this boundary.
"""

from __future__ import annotations

import functools
import logging
from typing import Any
from typing import Callable

from jxscout_relay.fetcher import fetch_url
from jxscout_relay.forwarder import IngestionForwarder
from jxscout_relay.models import Artifact
from jxscout_relay.models import Chunk
from jxscout_relay.models import Response
from jxscout_relay.models import Settings
from jxscout_relay.reassembler import SessionReassembler
from jxscout_relay.schema_validator import validate_chunk
from jxscout_relay.schema_validator import validate_settings
from jxscout_relay.sessions import SessionTable
from jxscout_relay.settings import SettingsStore

logger = logging.getLogger(__name__)


def _boundary(description: str) -> Callable:
    """Convert any exception escaping an operation into a failure Response."""

    def decorator(func: Callable[..., Response]) -> Callable[..., Response]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Response:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{description}: {e}", exc_info=True)
                return Response.failure(f"{description}: {e}")

        return wrapper

    return decorator


class RelayBackend:
    """
    Owns the relay state (settings store, session table) and exposes the
    operations the sender and the addon call.
    """

    def __init__(
        self,
        settings: SettingsStore,
        table: SessionTable | None = None,
        forwarder: IngestionForwarder | None = None,
        fetch_timeout: float | None = None,
    ):
        self.settings = settings
        self.table = table or SessionTable()
        self.forwarder = forwarder or IngestionForwarder(settings)
        self.reassembler = SessionReassembler(self.table, self.forwarder)
        self.fetch_timeout = fetch_timeout

        # Operation name -> handler, as registered with the transport
        self.operations: dict[str, Callable[..., Response]] = {
            "getSettings": self.get_settings,
            "saveSettings": self.save_settings,
            "sendToJxscout": self.send_to_jxscout,
            "sendToJxscoutChunk": self.send_to_jxscout_chunk,
            "fetchUrl": self.fetch_url,
        }

    def call(self, name: str, *args: Any, **kwargs: Any) -> Response:
        """Dispatch an operation by its registered name."""
        handler = self.operations.get(name)
        if handler is None:
            logger.warning(f"Unknown relay operation: {name}")
            return Response.failure(f"Unknown operation: {name}", kind="protocol")
        return handler(*args, **kwargs)

    @_boundary("Failed to load settings")
    def get_settings(self) -> Response[Settings]:
        return self.settings.load()

    @_boundary("Failed to save settings")
    def save_settings(self, document: dict) -> Response[Settings]:
        merged = {**self.settings.current().to_dict(), **document}
        result = validate_settings(merged)
        if not result.valid:
            return Response.failure(f"Invalid settings: {'; '.join(result.errors)}", kind="config")
        return self.settings.save(Settings.from_dict(merged))

    @_boundary("Failed to send request to jxscout")
    def send_to_jxscout(self, url: str, request_raw: str, response_raw: str) -> Response[None]:
        return self.forwarder.forward(Artifact(url=url, request=request_raw, response=response_raw))

    @_boundary("Failed to process chunk")
    def send_to_jxscout_chunk(
        self,
        session_id: str,
        chunk_index: int,
        total_chunks: int,
        request_url: str | None,
        request_chunk: str | None,
        response_chunk: str | None,
    ) -> Response[dict]:
        payload = {
            "sessionId": session_id,
            "chunkIndex": chunk_index,
            "totalChunks": total_chunks,
            "requestUrl": request_url,
            "requestChunk": request_chunk,
            "responseChunk": response_chunk,
        }
        result = validate_chunk(payload)
        if not result.valid:
            return Response.failure(f"Malformed chunk: {'; '.join(result.errors)}", kind="protocol")

        chunk = Chunk(
            session_id=session_id,
            index=chunk_index,
            total_chunks=total_chunks,
            # Only the first chunk may carry the URL
            url=request_url if chunk_index == 0 else None,
            request_piece=request_chunk,
            response_piece=response_chunk,
        )
        return self.reassembler.submit(chunk)

    @_boundary("Failed to fetch URL")
    def fetch_url(self, url: str) -> Response[dict]:
        return fetch_url(url, timeout=self.fetch_timeout)

    def shutdown(self) -> None:
        """Drop all in-flight sessions."""
        self.table.clear()
