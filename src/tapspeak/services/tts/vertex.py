"""Google Cloud (Vertex AI) speech synthesis through the trusted intermediary.

The service-account document carries a private key, so this provider never
talks to Google itself. It checks the document's shape locally and forwards
the request to the intermediary routes in `tapspeak.routers.vertex`, which
hold the credential only for the duration of the call.
"""

import json
import logging
from typing import Any, Optional

from tapspeak.config import get_settings
from tapspeak.schemas.tts import Voice

from .base import TTSProvider
from .errors import AuthError

logger = logging.getLogger(__name__)

REQUIRED_CREDENTIAL_FIELDS = ("project_id", "private_key", "client_email")


def parse_service_account(credential: Any) -> dict[str, Any]:
    """Parse a service-account document given as JSON text or a mapping."""
    if isinstance(credential, str):
        if not credential.strip():
            raise AuthError("Please set an API key for vertex in settings.")
        try:
            document = json.loads(credential)
        except json.JSONDecodeError as exc:
            raise AuthError(f"Vertex credential is not valid JSON: {exc.msg}") from exc
    elif credential is None:
        raise AuthError("Please set an API key for vertex in settings.")
    else:
        document = credential

    if not isinstance(document, dict):
        raise AuthError("Vertex credential must be a service-account JSON object.")
    missing = [key for key in REQUIRED_CREDENTIAL_FIELDS if not document.get(key)]
    if missing:
        raise AuthError(f"Vertex credential is missing: {', '.join(missing)}")
    return document


def normalize_voice(raw: dict[str, Any]) -> Voice:
    name = raw["name"]
    gender = raw.get("ssmlGender")
    language_codes = raw.get("languageCodes") or []
    return Voice(
        id=name,
        name=f"{name} ({gender})",
        language_code=language_codes[0] if language_codes else None,
        gender=gender,
    )


class VertexProvider(TTSProvider):
    provider_id = "vertex"
    name = "Vertex AI"

    @property
    def _proxy_url(self) -> str:
        return f"{str(get_settings().vertex_proxy_url).rstrip('/')}/api/tts/vertex"

    def parse_credential(self, credential: Optional[str]) -> str:
        parse_service_account(credential)
        return credential.strip()  # type: ignore[union-attr]

    async def speak(
        self, text: str, credential: str, voice_id: Optional[str] = None
    ) -> bytes:
        document = self.parse_credential(credential)
        response = await self._post(
            self._proxy_url,
            json={
                "text": text,
                "voiceId": voice_id or self.default_voice,
                "credentials": document,  # JSON string; the intermediary parses it
            },
        )
        audio_data = response.content
        logger.info(f"Vertex AI TTS synthesized {len(audio_data)} bytes for text: {text[:50]}...")
        return audio_data

    async def list_voices(self, credential: str) -> list[Voice]:
        document = self.parse_credential(credential)
        response = await self._post(
            f"{self._proxy_url}/voices",
            json={"credentials": document},
        )
        voices = response.json().get("voices") or []
        return [normalize_voice(v) for v in voices if isinstance(v, dict) and v.get("name")]


__all__ = [
    "REQUIRED_CREDENTIAL_FIELDS",
    "VertexProvider",
    "normalize_voice",
    "parse_service_account",
]
