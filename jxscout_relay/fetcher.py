"""
Fetch a referenced resource (JS, CSS, ...) so it can be relayed.

Performs a single GET and returns both the raw request text that was sent
and the raw response text (status line, headers, decoded body).
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from urllib.parse import urlsplit

from mitmproxy.net.encoding import decode as decode_content_encoding

from jxscout_relay.config import config
from jxscout_relay.forwarder import _no_proxy_opener
from jxscout_relay.models import Response

logger = logging.getLogger(__name__)

FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:145.0) Gecko/20100101 Firefox/145.0",
    "Accept": "*/*",
    "Accept-Language": "fr,fr-FR;q=0.8,en-US;q=0.5,en;q=0.3",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

# Dropped from the raw response once the body has been decoded
_HOP_HEADERS = {"content-encoding", "transfer-encoding", "content-length"}


def build_raw_request(url: str) -> str:
    """Render the GET request for `url` as raw HTTP/1.1 text."""
    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"

    host = parts.hostname or ""
    if parts.port and parts.port not in (80, 443):
        host = f"{host}:{parts.port}"

    lines = [f"GET {path} HTTP/1.1", f"Host: {host}"]
    lines.extend(f"{name}: {value}" for name, value in FETCH_HEADERS.items())
    return "\r\n".join(lines) + "\r\n\r\n"


def build_raw_response(status: int, reason: str, headers: list[tuple[str, str]], body: bytes) -> str:
    """
    Render a response as raw HTTP/1.1 text.

    The body is decoded according to Content-Encoding; when that succeeds the
    encoding headers are replaced by a Content-Length matching the decoded body.
    """
    encoding = ""
    for name, value in headers:
        if name.lower() == "content-encoding":
            encoding = value.strip().lower()

    decoded = body
    if encoding and encoding != "identity":
        try:
            decoded = decode_content_encoding(body, encoding)
        except ValueError as e:
            logger.debug(f"Could not decode {encoding} body, keeping raw bytes: {e}")

    if decoded is not body or encoding in ("", "identity"):
        headers = [(n, v) for n, v in headers if n.lower() not in _HOP_HEADERS]
        headers.append(("Content-Length", str(len(decoded))))

    lines = [f"HTTP/1.1 {status} {reason}".rstrip()]
    lines.extend(f"{name}: {value}" for name, value in headers)
    return "\r\n".join(lines) + "\r\n\r\n" + decoded.decode("utf-8", errors="replace")


def fetch_url(url: str, timeout: float | None = None) -> Response[dict]:
    """
    GET `url` and return {"requestRaw", "responseRaw"}.

    HTTP error statuses are still responses and are returned as such; only
    unusable URLs and network failures produce a failure.
    """
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return Response.failure(f"Failed to fetch URL: unsupported URL {url!r}")

    request_raw = build_raw_request(url)
    req = urllib.request.Request(url, headers=FETCH_HEADERS, method="GET")

    try:
        with _no_proxy_opener.open(req, timeout=timeout or config.FETCH_TIMEOUT) as resp:
            status, reason = resp.status, resp.reason
            headers = list(resp.headers.items())
            body = resp.read()
    except urllib.error.HTTPError as e:
        status, reason = e.code, e.reason
        headers = list(e.headers.items()) if e.headers else []
        body = e.read()
    except (urllib.error.URLError, OSError) as e:
        logger.error(f"Failed to fetch URL {url}: {e}")
        return Response.failure(f"Failed to fetch URL: {e}")

    logger.debug(f"Fetched {url} -> {status} ({len(body)} bytes)")
    response_raw = build_raw_response(status, str(reason or ""), headers, body)
    return Response.ok({"requestRaw": request_raw, "responseRaw": response_raw})
