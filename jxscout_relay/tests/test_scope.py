"""Tests for scope glob matching."""

from __future__ import annotations

import pytest

from jxscout_relay.scope import glob_to_regex
from jxscout_relay.scope import Scope


def test_empty_scope_matches_everything():
    scope = Scope([])

    assert not scope
    assert scope.in_scope("https://anything.test/x")


@pytest.mark.parametrize(
    "pattern,host,expected",
    [
        ("example.com", "example.com", True),
        ("example.com", "www.example.com", False),
        ("*.example.com", "cdn.example.com", True),
        ("*.example.com", "example.com", False),
        ("**example.com", "example.com", True),
        ("api?.example.com", "api2.example.com", True),
        ("EXAMPLE.com", "example.COM", True),
    ],
)
def test_host_patterns(pattern, host, expected):
    assert Scope([pattern]).in_scope(f"https://{host}/static/app.js") is expected


def test_url_pattern_ignores_query():
    scope = Scope(["https://example.com/static/**"])

    assert scope.in_scope("https://example.com/static/js/app.js?v=1")
    assert not scope.in_scope("https://example.com/api/users")
    assert not scope.in_scope("http://example.com/static/app.js")


def test_single_star_stops_at_slash():
    regex = glob_to_regex("https://a.test/*.js")

    assert regex.match("https://a.test/app.js")
    assert not regex.match("https://a.test/dir/app.js")


def test_any_pattern_matches():
    scope = Scope(["a.test", " ", "https://b.test/**"])

    assert scope.patterns == ["a.test", "https://b.test/**"]
    assert scope.in_scope("http://a.test:8080/")
    assert scope.in_scope("https://b.test/x/y")
    assert not scope.in_scope("https://c.test/")
