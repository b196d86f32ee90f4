"""Provider registry: one shared, stateless instance per provider id."""

from tapspeak.schemas.settings import ProviderId

from .base import TTSProvider
from .elevenlabs import ElevenLabsProvider
from .openai import OpenAIProvider
from .vertex import VertexProvider

_PROVIDERS: dict[ProviderId, TTSProvider] = {
    "openai": OpenAIProvider(),
    "elevenlabs": ElevenLabsProvider(),
    "vertex": VertexProvider(),
}


def get_provider(provider_id: ProviderId) -> TTSProvider:
    """Return the shared provider instance for `provider_id`."""
    return _PROVIDERS[provider_id]


__all__ = ["get_provider"]
