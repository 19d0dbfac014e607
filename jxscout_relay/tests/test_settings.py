"""Tests for SettingsStore load/save/cache behaviour."""

from __future__ import annotations

import json
from unittest.mock import patch

from jxscout_relay.models import DEFAULT_SETTINGS
from jxscout_relay.models import Settings
from jxscout_relay.settings import SettingsStore


class TestLoad:
    def test_missing_file_returns_defaults(self, tmp_path):
        store = SettingsStore(tmp_path / "nope" / "settings.json")

        result = store.load()

        assert result.success
        assert result.data == DEFAULT_SETTINGS
        assert result.data.to_dict() == {
            "port": 3333,
            "host": "localhost",
            "filterInScope": True,
            "enabled": True,
        }

    def test_unparsable_file_returns_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")

        result = SettingsStore(path).load()

        assert result.success
        assert result.data == DEFAULT_SETTINGS

    def test_non_object_returns_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2, 3]")

        assert SettingsStore(path).load().data == DEFAULT_SETTINGS

    def test_schema_violation_returns_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"port": "eighty", "host": "h", "filterInScope": True, "enabled": True}))

        assert SettingsStore(path).load().data == DEFAULT_SETTINGS

    def test_partial_file_merged_with_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"port": 4444, "enabled": False}))

        result = SettingsStore(path).load()

        assert result.data == Settings(port=4444, host="localhost", filter_in_scope=True, enabled=False)

    def test_full_file_loaded(self, settings_store, sink):
        result = settings_store.load()

        assert result.data == Settings(port=sink.port, host=sink.host, filter_in_scope=False, enabled=True)


class TestSave:
    def test_save_writes_json_and_updates_cache(self, tmp_path):
        path = tmp_path / "conf" / "settings.json"
        store = SettingsStore(path)
        settings = Settings(port=9000, host="jx.local", filter_in_scope=False, enabled=True)

        result = store.save(settings)

        assert result.success
        assert json.loads(path.read_text()) == {
            "port": 9000,
            "host": "jx.local",
            "filterInScope": False,
            "enabled": True,
        }
        assert store.current() == settings
        assert [p.name for p in path.parent.iterdir()] == ["settings.json"]

    def test_save_then_load_round_trip(self, tmp_path):
        path = tmp_path / "settings.json"
        settings = Settings(port=1234, host="127.0.0.1", filter_in_scope=True, enabled=False)

        SettingsStore(path).save(settings)

        assert SettingsStore(path).load().data == settings

    def test_invalid_settings_rejected(self, tmp_path):
        path = tmp_path / "settings.json"
        store = SettingsStore(path)

        result = store.save(Settings(port=70000))

        assert not result.success
        assert result.kind == "config"
        assert "port" in result.error
        assert not path.exists()

    def test_write_failure_surfaced(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")

        with patch("jxscout_relay.settings.os.replace", side_effect=OSError("disk full")):
            result = store.save(Settings(port=4000))

        assert not result.success
        assert result.kind == "config"
        assert "disk full" in result.error
        assert list(tmp_path.iterdir()) == []

    def test_failed_write_keeps_previous_file(self, tmp_path):
        path = tmp_path / "settings.json"
        store = SettingsStore(path)
        store.save(Settings(port=4000))

        with patch("jxscout_relay.settings.os.replace", side_effect=OSError("disk full")):
            store.save(Settings(port=5000))

        assert json.loads(path.read_text())["port"] == 4000
        assert [p.name for p in tmp_path.iterdir()] == ["settings.json"]


class TestCurrent:
    def test_lazily_loaded_once(self, settings_store):
        with patch.object(settings_store, "load", wraps=settings_store.load) as load:
            first = settings_store.current()
            second = settings_store.current()

        assert first is second
        assert load.call_count == 1

    def test_invalidate_reloads(self, settings_path, settings_store):
        settings_store.current()
        settings_path.write_text(json.dumps({"port": 5555}))

        settings_store.invalidate()

        assert settings_store.current().port == 5555
