"""Settings service: load once over defaults, re-persist on every update."""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from tapspeak.schemas.settings import (
    DelimiterMode,
    ProviderId,
    TapSpeakSettings,
    TapSpeakSettingsUpdate,
)

logger = logging.getLogger(__name__)

SETTINGS_KEY = "tapspeak_settings"


class KeyValueStore(Protocol):
    """Durable string store keyed by name."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class FileKeyValueStore:
    """Stores each key as `<directory>/<key>.json`."""

    def __init__(self, directory: Path):
        self._dir = directory

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")


class MemoryKeyValueStore:
    """In-process store, used by tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


def _usable_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Keep the stored fields that validate on their own.

    Null or empty values, and null or non-string entries inside the nested
    key/voice maps, are dropped so they keep their defaults. A field that is
    still invalid is dropped whole; the rest of the record survives.
    """
    usable: dict[str, Any] = {}
    for name, field in TapSpeakSettings.model_fields.items():
        alias = field.alias or to_camel(name)
        value = data.get(alias, data.get(name))
        if value is None or value == "":
            continue
        if isinstance(value, dict):
            value = {k: v for k, v in value.items() if isinstance(v, str)}
        try:
            TapSpeakSettings.model_validate({alias: value})
        except ValidationError as e:
            logger.warning(f"Ignoring stored {alias!r}: {e.errors()[0]['msg']}")
            continue
        usable[alias] = value
    return usable


class SettingsService:
    """Service for managing the user settings record.

    Snapshots are immutable; every update builds a new one, persists the whole
    record and replaces the cached snapshot.
    """

    def __init__(self, store: KeyValueStore, key: str = SETTINGS_KEY):
        self._store = store
        self._key = key
        self._cached: Optional[TapSpeakSettings] = None

    def load(self) -> TapSpeakSettings:
        """Read the stored record merged over defaults.

        Missing keys keep their defaults, and so does any field whose stored
        value is invalid. Only unparseable data, or a record that is not a JSON
        object, falls back to defaults entirely.
        """
        raw = self._store.get(self._key)
        if raw is None:
            logger.info("Using default TapSpeak settings")
            self._cached = TapSpeakSettings()
            return self._cached

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            self._cached = TapSpeakSettings.model_validate(_usable_fields(data))
            logger.info(f"Loaded TapSpeak settings from key {self._key!r}")
        except (ValueError, ValidationError) as e:
            logger.warning(f"Failed to load TapSpeak settings: {e}, using defaults")
            self._cached = TapSpeakSettings()
        return self._cached

    def get_settings(self) -> TapSpeakSettings:
        if self._cached is None:
            return self.load()
        return self._cached

    def update_settings(self, update: TapSpeakSettingsUpdate) -> TapSpeakSettings:
        """Apply non-None top-level fields and persist."""
        update_data = update.model_dump(exclude_none=True)
        return self._save(self.get_settings().model_copy(update=update_data))

    def update_api_key(self, provider: ProviderId, key: str) -> TapSpeakSettings:
        current = self.get_settings()
        api_keys = current.api_keys.model_copy(update={provider: key})
        return self._save(current.model_copy(update={"api_keys": api_keys}))

    def update_voice(self, provider: ProviderId, voice_id: str) -> TapSpeakSettings:
        current = self.get_settings()
        voices = current.voice_settings.model_copy(update={provider: voice_id})
        return self._save(current.model_copy(update={"voice_settings": voices}))

    def update_split_delimiter(self, delimiter: DelimiterMode) -> TapSpeakSettings:
        return self._save(
            self.get_settings().model_copy(update={"split_delimiter": delimiter})
        )

    def reset_to_defaults(self) -> TapSpeakSettings:
        return self._save(TapSpeakSettings())

    def _save(self, settings: TapSpeakSettings) -> TapSpeakSettings:
        """Persist the full record."""
        self._store.set(self._key, settings.model_dump_json(by_alias=True))
        self._cached = settings
        logger.info(f"Saved TapSpeak settings (active provider: {settings.active_provider})")
        return settings


__all__ = [
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SETTINGS_KEY",
    "SettingsService",
]
