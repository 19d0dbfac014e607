"""Shared fixtures: a local ingestion sink, settings pointing at it, fakes."""

from __future__ import annotations

import json
import threading
import time
from http.server import BaseHTTPRequestHandler
from http.server import ThreadingHTTPServer

import pytest

from jxscout_relay.models import Artifact
from jxscout_relay.models import Response
from jxscout_relay.settings import SettingsStore


class Sink:
    """Records ingestion POSTs received by the local test server."""

    def __init__(self):
        self.requests: list[dict] = []
        self.status = 200
        self.delay = 0.0
        self.host = "127.0.0.1"
        self.port = 0

    @property
    def bodies(self) -> list[dict]:
        return [r["body"] for r in self.requests]


@pytest.fixture
def sink():
    state = Sink()

    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            time.sleep(state.delay)
            length = int(self.headers.get("Content-Length", 0))
            body = self.rfile.read(length)
            state.requests.append(
                {
                    "path": self.path,
                    "content_type": self.headers.get("Content-Type"),
                    "body": json.loads(body),
                }
            )
            self.send_response(state.status)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def log_message(self, format, *args):  # noqa: A002
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    state.host, state.port = server.server_address[:2]
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield state

    server.shutdown()
    server.server_close()


@pytest.fixture
def settings_path(tmp_path, sink):
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "host": sink.host,
                "port": sink.port,
                "filterInScope": False,
                "enabled": True,
            }
        )
    )
    return path


@pytest.fixture
def settings_store(settings_path):
    return SettingsStore(settings_path)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class FakeForwarder:
    """Records forwarded artifacts and returns a configurable result."""

    def __init__(self, result: Response | None = None):
        self.forwarded: list[Artifact] = []
        self.result = result or Response.ok(None)

    def forward(self, artifact: Artifact) -> Response[None]:
        self.forwarded.append(artifact)
        return self.result


@pytest.fixture
def forwarder():
    return FakeForwarder()
