"""Tests for loading and persisting the user settings record."""

from __future__ import annotations

import json
from pathlib import Path

from tapspeak.schemas.settings import DEFAULT_VOICES, TapSpeakSettingsUpdate
from tapspeak.services.settings_store import (
    SETTINGS_KEY,
    FileKeyValueStore,
    MemoryKeyValueStore,
    SettingsService,
)


def test_defaults_when_nothing_stored() -> None:
    settings = SettingsService(MemoryKeyValueStore()).load()
    assert settings.active_provider == "openai"
    assert settings.split_delimiter == "period_newline"
    assert settings.voice_settings.vertex == DEFAULT_VOICES["vertex"]
    assert settings.api_keys.openai == ""


def test_missing_voice_settings_keep_defaults() -> None:
    stored = {
        "apiKeys": {"openai": "sk-test", "elevenlabs": "", "vertex": ""},
        "activeProvider": "elevenlabs",
        "splitDelimiter": "newline",
    }
    store = MemoryKeyValueStore({SETTINGS_KEY: json.dumps(stored)})

    settings = SettingsService(store).load()

    assert settings.voice_settings.openai == "alloy"
    assert settings.voice_settings.elevenlabs == "21m00Tcm4TlvDq8ikWAM"
    assert settings.voice_settings.vertex == "en-US-Neural2-A"
    assert settings.api_keys.openai == "sk-test"
    assert settings.active_provider == "elevenlabs"
    assert settings.split_delimiter == "newline"


def test_partial_nested_record_merges_with_defaults() -> None:
    stored = {"voiceSettings": {"openai": "nova"}, "splitDelimiter": None}
    store = MemoryKeyValueStore({SETTINGS_KEY: json.dumps(stored)})

    settings = SettingsService(store).load()

    assert settings.voice_settings.openai == "nova"
    assert settings.voice_settings.vertex == DEFAULT_VOICES["vertex"]
    assert settings.split_delimiter == "period_newline"


def test_corrupt_record_falls_back_to_defaults() -> None:
    store = MemoryKeyValueStore({SETTINGS_KEY: "{not json"})
    settings = SettingsService(store).load()
    assert settings.active_provider == "openai"


def test_invalid_values_fall_back_to_defaults() -> None:
    store = MemoryKeyValueStore({SETTINGS_KEY: json.dumps({"activeProvider": "polly"})})
    settings = SettingsService(store).load()
    assert settings.active_provider == "openai"


def test_updates_persist_full_record_and_leave_old_snapshot_untouched() -> None:
    store = MemoryKeyValueStore()
    service = SettingsService(store)
    before = service.get_settings()

    after = service.update_api_key("elevenlabs", "xi-key")
    service.update_voice("elevenlabs", "voice-123")
    service.update_split_delimiter("period")
    service.update_settings(TapSpeakSettingsUpdate(active_provider="elevenlabs"))

    assert before.api_keys.elevenlabs == ""
    assert after.api_keys.elevenlabs == "xi-key"

    saved = json.loads(store.data[SETTINGS_KEY])
    assert saved["apiKeys"]["elevenlabs"] == "xi-key"
    assert saved["voiceSettings"]["elevenlabs"] == "voice-123"
    assert saved["voiceSettings"]["openai"] == "alloy"
    assert saved["splitDelimiter"] == "period"
    assert saved["activeProvider"] == "elevenlabs"


def test_reset_restores_defaults() -> None:
    store = MemoryKeyValueStore()
    service = SettingsService(store)
    service.update_api_key("openai", "sk-test")

    settings = service.reset_to_defaults()

    assert settings.api_keys.openai == ""
    assert json.loads(store.data[SETTINGS_KEY])["apiKeys"]["openai"] == ""


def test_file_store_survives_restart(tmp_path: Path) -> None:
    directory = tmp_path / "data"
    SettingsService(FileKeyValueStore(directory)).update_voice("openai", "shimmer")

    assert (directory / f"{SETTINGS_KEY}.json").exists()
    reloaded = SettingsService(FileKeyValueStore(directory)).load()
    assert reloaded.voice_settings.openai == "shimmer"


def test_null_nested_key_keeps_the_rest_of_the_record() -> None:
    stored = {"apiKeys": {"openai": None, "elevenlabs": "el-key"}, "activeProvider": "elevenlabs"}
    store = MemoryKeyValueStore({SETTINGS_KEY: json.dumps(stored)})

    settings = SettingsService(store).load()

    assert settings.api_keys.openai == ""
    assert settings.api_keys.elevenlabs == "el-key"
    assert settings.active_provider == "elevenlabs"


def test_one_invalid_field_does_not_discard_the_others() -> None:
    stored = {
        "apiKeys": {"openai": "sk-test"},
        "activeProvider": "polly",
        "voiceSettings": ["not", "an", "object"],
        "splitDelimiter": "newline",
    }
    store = MemoryKeyValueStore({SETTINGS_KEY: json.dumps(stored)})

    settings = SettingsService(store).load()

    assert settings.api_keys.openai == "sk-test"
    assert settings.active_provider == "openai"
    assert settings.voice_settings.openai == DEFAULT_VOICES["openai"]
    assert settings.split_delimiter == "newline"


def test_non_object_record_falls_back_to_defaults() -> None:
    store = MemoryKeyValueStore({SETTINGS_KEY: json.dumps(["openai"])})
    settings = SettingsService(store).load()
    assert settings.active_provider == "openai"
    assert settings.api_keys.openai == ""
