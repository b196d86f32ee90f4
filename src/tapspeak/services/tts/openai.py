"""OpenAI speech synthesis: bearer token, fixed voice catalog."""

import logging
from typing import AsyncIterator, Optional

from tapspeak.config import get_settings
from tapspeak.schemas.tts import Voice

from .base import TTSProvider

logger = logging.getLogger(__name__)

# OpenAI has fixed voices; there is no listing endpoint
OPENAI_VOICES: list[Voice] = [
    Voice(id="alloy", name="Alloy"),
    Voice(id="echo", name="Echo"),
    Voice(id="fable", name="Fable"),
    Voice(id="onyx", name="Onyx"),
    Voice(id="nova", name="Nova"),
    Voice(id="shimmer", name="Shimmer"),
]


class OpenAIProvider(TTSProvider):
    provider_id = "openai"
    name = "OpenAI"

    @property
    def _speech_url(self) -> str:
        return f"{str(get_settings().openai_base_url).rstrip('/')}/audio/speech"

    def _request(self, text: str, api_key: str, voice_id: Optional[str]) -> dict:
        return {
            "headers": {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            "json": {
                "model": "tts-1",       # Use tts-1 for speed, tts-1-hd for quality
                "input": text,
                "voice": voice_id or self.default_voice,
                "response_format": "mp3",
            },
        }

    async def speak(
        self, text: str, credential: str, voice_id: Optional[str] = None
    ) -> bytes:
        api_key = self.parse_credential(credential)
        response = await self._post(self._speech_url, **self._request(text, api_key, voice_id))
        audio_data = response.content
        logger.info(f"OpenAI TTS synthesized {len(audio_data)} bytes for text: {text[:50]}...")
        return audio_data

    async def stream(
        self,
        text: str,
        credential: str,
        voice_id: Optional[str] = None,
        chunk_size: int = 32 * 1024,
    ) -> AsyncIterator[bytes]:
        api_key = self.parse_credential(credential)
        async for chunk in self._stream_post(
            self._speech_url, **self._request(text, api_key, voice_id)
        ):
            yield chunk

    async def list_voices(self, credential: str) -> list[Voice]:
        return list(OPENAI_VOICES)


__all__ = ["OPENAI_VOICES", "OpenAIProvider"]
