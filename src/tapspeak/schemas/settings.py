"""User settings schema: credentials, active provider, voices and split mode."""

from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ProviderId = Literal["openai", "elevenlabs", "vertex"]
DelimiterMode = Literal["period_newline", "period", "newline"]

PROVIDER_IDS: tuple[ProviderId, ...] = get_args(ProviderId)
DELIMITER_MODES: tuple[DelimiterMode, ...] = get_args(DelimiterMode)

DEFAULT_DELIMITER: DelimiterMode = "period_newline"

# Fallback voice per provider when none has been selected
DEFAULT_VOICES: dict[ProviderId, str] = {
    "openai": "alloy",
    "elevenlabs": "21m00Tcm4TlvDq8ikWAM",  # Rachel
    "vertex": "en-US-Neural2-A",
}


class _Frozen(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ProviderKeys(_Frozen):
    """Credential per provider. Vertex holds a service-account JSON document."""

    openai: str = ""
    elevenlabs: str = ""
    vertex: str = ""

    def get(self, provider: ProviderId) -> str:
        return getattr(self, provider)


class VoiceSettings(_Frozen):
    """Selected voice id per provider."""

    openai: str = DEFAULT_VOICES["openai"]
    elevenlabs: str = DEFAULT_VOICES["elevenlabs"]
    vertex: str = DEFAULT_VOICES["vertex"]

    def get(self, provider: ProviderId) -> str:
        return getattr(self, provider)


class TapSpeakSettings(_Frozen):
    """The full persisted settings record.

    Nested models carry their own defaults, so a stored record that is missing
    a key (at any depth) loads with the default for that key.
    """

    api_keys: ProviderKeys = Field(default_factory=ProviderKeys)
    active_provider: ProviderId = Field(default="openai")
    voice_settings: VoiceSettings = Field(default_factory=VoiceSettings)
    split_delimiter: DelimiterMode = Field(default=DEFAULT_DELIMITER)

    def credential(self, provider: ProviderId | None = None) -> str:
        return self.api_keys.get(provider or self.active_provider)

    def voice(self, provider: ProviderId | None = None) -> str:
        return self.voice_settings.get(provider or self.active_provider)


class TapSpeakSettingsUpdate(BaseModel):
    """Partial update - all fields optional."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    active_provider: ProviderId | None = None
    split_delimiter: DelimiterMode | None = None


class ApiKeyUpdate(BaseModel):
    key: str


class VoiceUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    voice_id: str


class DelimiterUpdate(BaseModel):
    delimiter: DelimiterMode


class ProviderKeyStatus(_Frozen):
    """Masked view of credentials; secrets never leave the service."""

    openai: bool
    elevenlabs: bool
    vertex: bool


class TapSpeakSettingsView(_Frozen):
    api_keys: ProviderKeyStatus
    active_provider: ProviderId
    voice_settings: VoiceSettings
    split_delimiter: DelimiterMode

    @classmethod
    def from_settings(cls, settings: TapSpeakSettings) -> "TapSpeakSettingsView":
        return cls(
            api_keys=ProviderKeyStatus(
                **{p: bool(settings.api_keys.get(p).strip()) for p in PROVIDER_IDS}
            ),
            active_provider=settings.active_provider,
            voice_settings=settings.voice_settings,
            split_delimiter=settings.split_delimiter,
        )


__all__ = [
    "ApiKeyUpdate",
    "DEFAULT_DELIMITER",
    "DEFAULT_VOICES",
    "DELIMITER_MODES",
    "DelimiterMode",
    "DelimiterUpdate",
    "PROVIDER_IDS",
    "ProviderId",
    "ProviderKeyStatus",
    "ProviderKeys",
    "TapSpeakSettings",
    "TapSpeakSettingsUpdate",
    "TapSpeakSettingsView",
    "VoiceSettings",
    "VoiceUpdate",
]
