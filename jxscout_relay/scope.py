"""
Scope filter for automatically relayed traffic.

Patterns use glob syntax:
- ** matches anything, including / and .
- * matches any characters except /
- ? matches a single character except /

Patterns starting with http:// or https:// match the full URL without its
query string; all other patterns match the request host.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Convert a scope glob into a compiled, anchored, case-insensitive regex."""
    regex_parts = []
    i = 0
    pattern_len = len(pattern)
    while i < pattern_len:
        if pattern[i : i + 2] == "**":
            regex_parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            regex_parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            regex_parts.append("[^/]")
            i += 1
        else:
            regex_parts.append(re.escape(pattern[i]))
            i += 1

    return re.compile("^" + "".join(regex_parts) + "$", re.IGNORECASE)


class Scope:
    """A set of include patterns; empty means everything is in scope."""

    def __init__(self, patterns: Iterable[str] = ()):
        self.patterns = [p.strip() for p in patterns if p.strip()]
        self._url_regexes: list[re.Pattern[str]] = []
        self._host_regexes: list[re.Pattern[str]] = []

        for pattern in self.patterns:
            if pattern.startswith(("http://", "https://")):
                self._url_regexes.append(glob_to_regex(pattern))
            else:
                self._host_regexes.append(glob_to_regex(pattern))

        if self.patterns:
            logger.debug(f"Scope patterns: {self.patterns}")

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def in_scope(self, url: str) -> bool:
        if not self.patterns:
            return True

        parts = urlsplit(url)
        host = parts.hostname or ""
        url_without_query = url.split("?", 1)[0]

        if any(r.match(host) for r in self._host_regexes):
            return True
        return any(r.match(url_without_query) for r in self._url_regexes)
