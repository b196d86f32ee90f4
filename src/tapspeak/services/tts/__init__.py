"""
TTS provider package.

Every backend implements the TTSProvider contract (speak / stream /
list_voices) and is looked up by provider id through get_provider():

    openai      OpenAIProvider      bearer token, fixed voice list
    elevenlabs  ElevenLabsProvider  API key header, voice catalog endpoint
    vertex      VertexProvider      service account, via the trusted intermediary

Failures surface as the exceptions in `errors`.
"""

from .base import TTSProvider, filter_voices
from .errors import (
    AuthError,
    DecodeError,
    NetworkError,
    PlaybackError,
    SynthesisError,
    TTSError,
    ValidationError,
)
from .factory import get_provider

__all__ = [
    "AuthError",
    "DecodeError",
    "NetworkError",
    "PlaybackError",
    "SynthesisError",
    "TTSError",
    "TTSProvider",
    "ValidationError",
    "filter_voices",
    "get_provider",
]
