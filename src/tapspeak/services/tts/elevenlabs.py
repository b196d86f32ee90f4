"""ElevenLabs speech synthesis: API key header, dynamic voice catalog."""

import logging
from typing import Any, AsyncIterator, Optional

from tapspeak.config import get_settings
from tapspeak.schemas.tts import Voice

from .base import TTSProvider

logger = logging.getLogger(__name__)


def normalize_voice(raw: dict[str, Any]) -> Voice:
    """Map a catalog entry to a Voice.

    The API and its SDKs disagree on the id field name (`voice_id` vs
    `voiceId`); fall back to the display name when neither is present.
    """
    name = raw.get("name") or "Unknown Voice"
    voice_id = raw.get("voice_id") or raw.get("voiceId") or raw.get("name") or name
    return Voice(id=voice_id, name=name)


class ElevenLabsProvider(TTSProvider):
    provider_id = "elevenlabs"
    name = "ElevenLabs"

    model_id = "eleven_monolingual_v1"
    output_format = "mp3_44100_128"

    @property
    def _base_url(self) -> str:
        return str(get_settings().elevenlabs_base_url).rstrip("/")

    def _request(self, text: str, api_key: str) -> dict:
        return {
            "params": {"output_format": self.output_format},
            "headers": {
                "xi-api-key": api_key,
                "Content-Type": "application/json",
            },
            "json": {"text": text, "model_id": self.model_id},
        }

    async def speak(
        self, text: str, credential: str, voice_id: Optional[str] = None
    ) -> bytes:
        api_key = self.parse_credential(credential)
        url = f"{self._base_url}/text-to-speech/{voice_id or self.default_voice}"
        response = await self._post(url, **self._request(text, api_key))
        audio_data = response.content
        logger.info(f"ElevenLabs TTS synthesized {len(audio_data)} bytes for text: {text[:50]}...")
        return audio_data

    async def stream(
        self,
        text: str,
        credential: str,
        voice_id: Optional[str] = None,
        chunk_size: int = 32 * 1024,
    ) -> AsyncIterator[bytes]:
        api_key = self.parse_credential(credential)
        # Use the streaming endpoint
        url = f"{self._base_url}/text-to-speech/{voice_id or self.default_voice}/stream"
        async for chunk in self._stream_post(url, **self._request(text, api_key)):
            yield chunk

    async def list_voices(self, credential: str) -> list[Voice]:
        api_key = self.parse_credential(credential)
        response = await self._get(
            f"{self._base_url}/voices",
            headers={"xi-api-key": api_key},
        )
        voices = response.json().get("voices") or []
        logger.info(f"ElevenLabs returned {len(voices)} voices")
        return [normalize_voice(v) for v in voices if isinstance(v, dict)]


__all__ = ["ElevenLabsProvider", "normalize_voice"]
