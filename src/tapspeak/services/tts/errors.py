"""Error taxonomy shared by providers, the audio pipeline and the routes."""

from typing import Optional


class TTSError(Exception):
    """Base class; `message` is the text shown to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(TTSError):
    """Missing or malformed credential. Raised before any network call."""


class NetworkError(TTSError):
    """Transport failure or timeout. The user may retry."""


class SynthesisError(TTSError):
    """The backend rejected the request; carries the backend's message."""


class DecodeError(TTSError):
    """The payload could not be interpreted as audio."""


class ValidationError(TTSError):
    """Text exceeds a provider's character or sentence budget."""


class PlaybackError(TTSError):
    """The audio output device could not be opened or started."""


__all__ = [
    "AuthError",
    "DecodeError",
    "NetworkError",
    "PlaybackError",
    "SynthesisError",
    "TTSError",
    "ValidationError",
]
