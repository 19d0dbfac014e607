"""
Ingestion forwarder: delivers one complete artifact to the jxscout server.

A single POST of {requestUrl, request, response} to the configured
host/port. No retry and no backoff; callers decide what to do with a
failure.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from jxscout_relay.config import config
from jxscout_relay.models import Artifact
from jxscout_relay.models import Response
from jxscout_relay.settings import SettingsStore

logger = logging.getLogger(__name__)

# Opener that ignores system proxy settings. The relay usually runs inside
# the proxy that the system points at, so going through it would loop.
_no_proxy_opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))


class IngestionForwarder:
    """Posts complete artifacts to the ingestion endpoint."""

    def __init__(
        self,
        settings: SettingsStore,
        path: str | None = None,
        timeout: float | None = None,
    ):
        self._settings = settings
        self.path = path or config.INGEST_PATH
        self.timeout = timeout if timeout is not None else config.FORWARD_TIMEOUT

    def endpoint(self) -> str:
        settings = self._settings.current()
        return f"http://{settings.host}:{settings.port}{self.path}"

    def forward(self, artifact: Artifact) -> Response[None]:
        url = self.endpoint()
        payload = json.dumps(artifact.to_dict())

        req = urllib.request.Request(
            url,
            data=payload.encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with _no_proxy_opener.open(req, timeout=self.timeout) as resp:
                resp.read()
                status = resp.status
        except urllib.error.HTTPError as e:
            logger.error(f"jxscout rejected {artifact.url}: HTTP {e.code}")
            return Response.failure(f"Failed to send request to jxscout: HTTP {e.code} {e.reason}")
        except (urllib.error.URLError, OSError) as e:
            logger.error(f"Failed to send request to jxscout: {e}")
            return Response.failure(f"Failed to send request to jxscout: {e}")

        logger.debug(
            f"Forwarded {artifact.url} ({artifact.total_size} chars) to {url} -> {status}"
        )
        return Response.ok(None)
