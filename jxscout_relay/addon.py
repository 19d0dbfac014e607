"""
mitmproxy addon that relays captured HTTP traffic to jxscout.

Every completed response that passes the enabled/scope checks is sent to the
jxscout ingestion endpoint. Large request/response pairs are split into
chunks, reassembled by the relay backend and forwarded exactly once.
"""

import logging
import sys
import threading
import time
from collections.abc import Sequence
from typing import Callable

from mitmproxy import command
from mitmproxy import ctx
from mitmproxy import flow
from mitmproxy import http
from mitmproxy.log import ALERT
from mitmproxy.net.http.http1.assemble import assemble_request
from mitmproxy.net.http.http1.assemble import assemble_response

from jxscout_relay.api import RelayBackend
from jxscout_relay.config import config
from jxscout_relay.models import Artifact
from jxscout_relay.models import Response
from jxscout_relay.scope import Scope
from jxscout_relay.sender import ChunkSender
from jxscout_relay.sessions import SessionTable
from jxscout_relay.settings import SettingsStore
from jxscout_relay.transport import LocalTransport

logging.basicConfig(
    level=logging.INFO,
    format="[%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


def _as_text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def artifact_from_flow(f: http.HTTPFlow) -> Artifact:
    """
    Build an artifact from a completed flow.

    Bodies are content-decoded on copies so the flow itself is untouched.

    Raises:
        ValueError: if the flow has no response or its content was streamed
    """
    if f.response is None:
        raise ValueError("Flow has no response")

    request = f.request.copy()
    request.decode(strict=False)
    response = f.response.copy()
    response.decode(strict=False)

    return Artifact(
        url=f.request.pretty_url,
        request=_as_text(assemble_request(request)),
        response=_as_text(assemble_response(response)),
    )


class JxscoutAddon:
    """
    Relays captured traffic to a jxscout server.

    Usage:
        mitmdump -s path/to/jxscout_relay/__init__.py --set jxscout_scope=example.com

    Settings (host, port, enabled, filterInScope) live in the JSON file named
    by the jxscout_settings option.
    """

    def __init__(self):
        self._settings: SettingsStore | None = None
        self._backend: RelayBackend | None = None
        self._sender: ChunkSender | None = None
        self._scope = Scope()
        self._workers: set[threading.Thread] = set()
        self._workers_lock = threading.Lock()

    def load(self, loader) -> None:
        """Register addon options."""
        loader.add_option(
            name="jxscout_settings",
            typespec=str,
            default=str(config.SETTINGS_PATH),
            help="Path of the jxscout relay settings JSON file",
        )
        loader.add_option(
            name="jxscout_scope",
            typespec=Sequence[str],
            default=[],
            help="Host or URL glob patterns that are in scope (empty: everything)",
        )
        loader.add_option(
            name="jxscout_chunk_size",
            typespec=int,
            default=config.CHUNK_SIZE,
            help="Largest request+response size sent in one call; bigger pairs are chunked",
        )
        loader.add_option(
            name="jxscout_session_timeout",
            typespec=int,
            default=int(config.SESSION_TIMEOUT),
            help="Seconds an incomplete chunked transfer may stay idle before it is dropped",
        )
        loader.add_option(
            name="jxscout_verbose",
            typespec=bool,
            default=False,
            help="Enable debug logging for the jxscout relay",
        )

    def configure(self, updated: set[str]) -> None:
        """Handle configuration changes."""
        if "jxscout_verbose" in updated:
            level = logging.DEBUG if ctx.options.jxscout_verbose else logging.INFO
            logging.getLogger("jxscout_relay").setLevel(level)

        if "jxscout_scope" in updated:
            self._scope = Scope(ctx.options.jxscout_scope)

        relevant_options = {"jxscout_settings", "jxscout_chunk_size", "jxscout_session_timeout"}
        if not relevant_options.intersection(updated):
            return

        # In-flight relays keep the previous backend until they finish
        self._settings = SettingsStore(ctx.options.jxscout_settings)
        self._backend = RelayBackend(
            self._settings,
            table=SessionTable(timeout=ctx.options.jxscout_session_timeout),
        )
        self._sender = ChunkSender(
            LocalTransport(self._backend),
            chunk_size=ctx.options.jxscout_chunk_size,
        )

        settings = self._settings.current()
        logger.info(
            f"jxscout relay -> http://{settings.host}:{settings.port}{config.INGEST_PATH} "
            f"(enabled={settings.enabled}, filterInScope={settings.filter_in_scope})"
        )

    @property
    def backend(self) -> RelayBackend | None:
        return self._backend

    def _should_relay(self, f: http.HTTPFlow) -> bool:
        if self._settings is None:
            return False

        settings = self._settings.current()
        if not settings.enabled:
            return False

        if settings.filter_in_scope and not self._scope.in_scope(f.request.pretty_url):
            logger.debug(f"Out of scope: {f.request.pretty_url}")
            return False

        return True

    def relay(self, artifact: Artifact) -> Response[None]:
        """Send one artifact through the chunk sender."""
        if self._sender is None:
            return Response.failure("jxscout relay is not configured", kind="config")

        result = self._sender.send(artifact)
        if result.success:
            logger.debug(f"Relayed {artifact.url}")
        else:
            logger.warning(f"Failed to relay {artifact.url}: {result.error}")
        return result

    def response(self, f: http.HTTPFlow) -> None:
        """Relay completed responses without holding the flow."""
        if not self._should_relay(f):
            return

        try:
            artifact = artifact_from_flow(f)
        except ValueError as e:
            logger.debug(f"Skipping {f.request.pretty_url}: {e}")
            return

        self._spawn(self.relay, artifact)

    def _spawn(self, target: Callable[..., object], *args: object) -> None:
        def run() -> None:
            try:
                target(*args)
            finally:
                with self._workers_lock:
                    self._workers.discard(threading.current_thread())

        worker = threading.Thread(target=run, name="jxscout-relay", daemon=True)
        with self._workers_lock:
            self._workers.add(worker)
        worker.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for in-flight relays. Returns False if some are still running."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._workers_lock:
            workers = list(self._workers)

        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)

        with self._workers_lock:
            return not self._workers

    def _send_flows(self, flows: Sequence[flow.Flow]) -> None:
        sent = failed = 0
        for f in flows:
            if not isinstance(f, http.HTTPFlow) or f.response is None:
                continue
            try:
                artifact = artifact_from_flow(f)
            except ValueError as e:
                logger.debug(f"Skipping {f.request.pretty_url}: {e}")
                failed += 1
                continue

            if self.relay(artifact).success:
                sent += 1
            else:
                failed += 1

        if failed:
            logger.log(ALERT, f"jxscout: sent {sent} flow(s), {failed} failed")
        else:
            logger.log(ALERT, f"jxscout: sent {sent} flow(s)")

    def _fetch_and_relay(self, url: str) -> None:
        if self._backend is None:
            logger.log(ALERT, "jxscout relay is not configured")
            return

        fetched = self._backend.fetch_url(url)
        if not fetched.success or not fetched.data:
            logger.log(ALERT, f"jxscout: {fetched.error}")
            return

        result = self.relay(
            Artifact(
                url=url,
                request=fetched.data["requestRaw"],
                response=fetched.data["responseRaw"],
            )
        )
        if result.success:
            logger.log(ALERT, f"jxscout: fetched and sent {url}")
        else:
            logger.log(ALERT, f"jxscout: failed to send {url}: {result.error}")

    @command.command("jxscout.send")
    def send(self, flows: Sequence[flow.Flow]) -> None:
        """Send flows to jxscout regardless of the enabled and scope settings."""
        self._spawn(self._send_flows, list(flows))

    @command.command("jxscout.fetch")
    def fetch(self, url: str) -> None:
        """Fetch a URL and send the request/response pair to jxscout."""
        self._spawn(self._fetch_and_relay, url)

    def done(self) -> None:
        if not self.join(config.SHUTDOWN_TIMEOUT):
            logger.warning("Shutting down with jxscout relays still in flight")
        if self._backend is not None:
            self._backend.shutdown()
