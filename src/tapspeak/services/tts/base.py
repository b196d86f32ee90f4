"""Provider contract shared by every TTS backend."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional

import httpx

from tapspeak.config import get_settings
from tapspeak.schemas.settings import DEFAULT_VOICES, ProviderId
from tapspeak.schemas.tts import Voice

from .errors import AuthError, NetworkError, SynthesisError

logger = logging.getLogger(__name__)


class TTSProvider(ABC):
    """
    Uniform interface over heterogeneous TTS backends.

    - speak() fully buffers the encoded audio (used for playback and export)
    - stream() yields encoded audio chunks as they arrive
    - list_voices() returns the voices available to the credential

    The credential is opaque at this boundary; each provider parses and
    validates its own shape in parse_credential() and raises AuthError before
    any network call when it is missing or malformed.

    Uses a singleton httpx.AsyncClient for connection pooling across requests.
    """

    provider_id: ProviderId
    name: str

    # Singleton HTTP client for connection pooling
    _http_client: Optional[httpx.AsyncClient] = None

    @property
    def default_voice(self) -> str:
        return DEFAULT_VOICES[self.provider_id]

    @classmethod
    def get_http_client(cls) -> httpx.AsyncClient:
        """Get singleton HTTP client for connection pooling."""
        if TTSProvider._http_client is None:
            timeout = httpx.Timeout(get_settings().request_timeout, connect=10.0)
            TTSProvider._http_client = httpx.AsyncClient(timeout=timeout)
            logger.info("Created singleton httpx.AsyncClient for TTS")
        return TTSProvider._http_client

    @classmethod
    async def close_http_client(cls) -> None:
        """Close the singleton HTTP client. Call on app shutdown."""
        if TTSProvider._http_client is not None:
            await TTSProvider._http_client.aclose()
            TTSProvider._http_client = None
            logger.info("Closed TTS HTTP client")

    def parse_credential(self, credential: Optional[str]) -> str:
        """Return the usable secret, or raise AuthError."""
        if not credential or not credential.strip():
            raise AuthError(f"Please set an API key for {self.provider_id} in settings.")
        return credential.strip()

    @abstractmethod
    async def speak(
        self, text: str, credential: str, voice_id: Optional[str] = None
    ) -> bytes:
        """Synthesize `text` and return the fully buffered encoded audio."""

    @abstractmethod
    async def list_voices(self, credential: str) -> list[Voice]:
        """Return the voices the credential can use."""

    async def stream(
        self,
        text: str,
        credential: str,
        voice_id: Optional[str] = None,
        chunk_size: int = 32 * 1024,
    ) -> AsyncIterator[bytes]:
        """Fallback streaming by chunking a full synthesis response."""
        audio = await self.speak(text, credential, voice_id)
        for i in range(0, len(audio), chunk_size):
            yield audio[i:i + chunk_size]

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        client = self.get_http_client()
        try:
            response = await client.post(url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"{self.name} request failed: {exc}")
            raise NetworkError(f"{self.name} request failed: {exc}") from exc
        self._raise_for_status(response)
        return response

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        client = self.get_http_client()
        try:
            response = await client.get(url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"{self.name} request failed: {exc}")
            raise NetworkError(f"{self.name} request failed: {exc}") from exc
        self._raise_for_status(response)
        return response

    async def _stream_post(self, url: str, **kwargs: Any) -> AsyncIterator[bytes]:
        client = self.get_http_client()
        try:
            async with client.stream("POST", url, **kwargs) as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._raise_for_status(response)
                async for chunk in response.aiter_bytes():
                    if chunk:
                        yield chunk
        except httpx.HTTPError as exc:
            logger.error(f"{self.name} streaming TTS error: {exc}")
            raise NetworkError(f"{self.name} request failed: {exc}") from exc

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        detail = self._extract_error_detail(response)
        logger.error(f"{self.name} error response ({response.status_code}): {detail}")
        if response.status_code in (401, 403):
            raise AuthError(f"{self.name} rejected the credential: {detail}", response.status_code)
        raise SynthesisError(f"{self.name} Error: {detail}", response.status_code)

    @staticmethod
    def _extract_error_detail(response: httpx.Response) -> str:
        """Pull a readable message out of the vendors' assorted error bodies."""
        try:
            body = response.json()
        except ValueError:
            text = response.text.strip()
            return text or response.reason_phrase or f"HTTP {response.status_code}"

        if isinstance(body, dict):
            for key in ("error", "detail"):
                value = body.get(key)
                if isinstance(value, dict):
                    message = value.get("message") or value.get("status")
                    if message:
                        return str(message)
                elif value:
                    return str(value)
            if body.get("message"):
                return str(body["message"])
        return json.dumps(body)


def filter_voices(voices: list[Voice], query: Optional[str] = None) -> list[Voice]:
    """Sort voices by name; keep those whose name or id contains `query`.

    Matching ignores case. A blank query keeps every voice.
    """
    ordered = sorted(voices, key=lambda v: v.name.lower())
    needle = (query or "").strip().lower()
    if not needle:
        return ordered
    return [v for v in ordered if needle in v.name.lower() or needle in v.id.lower()]


__all__ = ["TTSProvider", "filter_voices"]
