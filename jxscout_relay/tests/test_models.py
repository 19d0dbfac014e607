"""Tests for core models."""

from __future__ import annotations

import uuid

import pytest

from jxscout_relay.models import Artifact
from jxscout_relay.models import Chunk
from jxscout_relay.models import generate_session_id
from jxscout_relay.models import Response
from jxscout_relay.models import Session
from jxscout_relay.models import Settings


class TestChunk:
    def test_url_only_on_first_chunk(self):
        with pytest.raises(ValueError):
            Chunk(session_id="s", index=1, total_chunks=2, url="https://a.test/")

    def test_negative_index(self):
        with pytest.raises(ValueError):
            Chunk(session_id="s", index=-1, total_chunks=2)

    def test_zero_total(self):
        with pytest.raises(ValueError):
            Chunk(session_id="s", index=0, total_chunks=0)


class TestSession:
    def test_buffers_accumulate_in_order(self):
        session = Session(session_id="s", total_chunks=3, last_activity=0.0)

        session.append(Chunk("s", 0, 3, url="https://a.test/", request_piece="ab", response_piece="x"), 1.0)
        session.append(Chunk("s", 1, 3, request_piece="cd"), 2.0)
        assert not session.complete
        session.append(Chunk("s", 2, 3, response_piece="yz"), 3.0)

        assert session.complete
        assert session.last_activity == 3.0
        assert session.to_artifact() == Artifact(url="https://a.test/", request="abcd", response="xyz")


class TestResponse:
    def test_ok_envelope(self):
        assert Response.ok({"complete": True}).to_dict() == {"success": True, "data": {"complete": True}}

    def test_failure_envelope_hides_kind(self):
        result = Response.failure("Expected chunk 1, got 2", kind="protocol")

        assert result.kind == "protocol"
        assert result.to_dict() == {"success": False, "error": "Expected chunk 1, got 2"}


def test_artifact_wire_shape():
    artifact = Artifact(url="u", request="req", response="resp")

    assert artifact.total_size == 7
    assert artifact.to_dict() == {"requestUrl": "u", "request": "req", "response": "resp"}


def test_settings_from_partial_dict():
    assert Settings.from_dict({"host": "jx"}) == Settings(host="jx")


def test_session_ids_are_uuid7_and_unique():
    ids = {generate_session_id() for _ in range(1000)}

    assert len(ids) == 1000
    assert all(uuid.UUID(i).version == 7 for i in ids)
