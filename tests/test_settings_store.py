"""Tests for the local settings store."""

import json

from explore_assistant.integrations.local import LocalSettingsStore


def test_memory_store_round_trip():
    store = LocalSettingsStore()
    store.set("llm_model", "gpt-4o")
    assert store.get("llm_model") == "gpt-4o"

    store.set("llm_model", "")
    assert store.get("llm_model") is None
    assert store.all() == {}


def test_file_store_persists_between_instances(tmp_path):
    path = tmp_path / "settings" / "assistant.json"
    LocalSettingsStore(path).set("gemini_api_key", "abc")

    assert json.loads(path.read_text()) == {"gemini_api_key": "abc"}
    assert LocalSettingsStore(path).get("gemini_api_key") == "abc"


def test_delete_removes_key(tmp_path):
    store = LocalSettingsStore(tmp_path / "s.json")
    store.set("a", "1")
    store.set("b", "2")
    store.delete("a")
    assert store.all() == {"b": "2"}


def test_unreadable_file_falls_back_to_memory(tmp_path, caplog):
    path = tmp_path / "s.json"
    path.write_text("[not, an, object")
    store = LocalSettingsStore(path)

    assert store.get("llm_model") is None
    store.set("llm_model", "gemini-2.5-pro")

    assert store.get("llm_model") == "gemini-2.5-pro"
    assert path.read_text() == "[not, an, object"
    assert "keeping settings in memory" in caplog.text
