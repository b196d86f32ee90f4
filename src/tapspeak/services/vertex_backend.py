"""Server-side Google Cloud Text-to-Speech calls for the Vertex intermediary.

Only this module ever sees a parsed service-account document. The embedded
`project_id` is used as the quota project for every call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import texttospeech
from google.oauth2 import service_account

from tapspeak.services.tts.errors import AuthError, SynthesisError
from tapspeak.services.tts.vertex import parse_service_account

logger = logging.getLogger(__name__)


def load_credentials(credential: Any) -> service_account.Credentials:
    """Build scoped credentials from a JSON string or mapping."""
    info = parse_service_account(credential)
    try:
        credentials = service_account.Credentials.from_service_account_info(info)
    except (ValueError, KeyError) as exc:
        raise AuthError(f"Invalid service account credentials: {exc}") from exc
    return credentials.with_quota_project(info["project_id"])


def build_client(credential: Any) -> texttospeech.TextToSpeechClient:
    return texttospeech.TextToSpeechClient(credentials=load_credentials(credential))


def language_code_for(voice_id: str) -> str:
    """`en-US-Neural2-A` -> `en-US`."""
    return "-".join(voice_id.split("-")[:2])


def _synthesize_sync(text: str, voice_id: str, credential: Any) -> bytes:
    client = build_client(credential)
    response = client.synthesize_speech(
        input=texttospeech.SynthesisInput(text=text),
        voice=texttospeech.VoiceSelectionParams(
            language_code=language_code_for(voice_id),
            name=voice_id,
        ),
        audio_config=texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.MP3,
        ),
    )
    if not response.audio_content:
        raise SynthesisError("No audio content received")
    return response.audio_content


def _list_voices_sync(credential: Any) -> list[dict[str, Any]]:
    response = build_client(credential).list_voices()
    return [
        {
            "name": voice.name,
            "ssmlGender": texttospeech.SsmlVoiceGender(voice.ssml_gender).name,
            "languageCodes": list(voice.language_codes),
        }
        for voice in response.voices
    ]


async def _call(fn, *args: Any) -> Any:
    # The Google client is blocking; keep it off the event loop.
    try:
        return await asyncio.to_thread(fn, *args)
    except auth_exceptions.GoogleAuthError as exc:
        raise AuthError(f"Google rejected the credentials: {exc}") from exc
    except google_exceptions.GoogleAPIError as exc:
        message = getattr(exc, "message", None) or str(exc)
        raise SynthesisError(message, getattr(exc, "code", None)) from exc


async def synthesize(text: str, voice_id: str, credential: Any) -> bytes:
    audio = await _call(_synthesize_sync, text, voice_id, credential)
    logger.info(f"Google TTS synthesized {len(audio)} bytes with voice {voice_id}")
    return audio


async def list_voices(credential: Any) -> list[dict[str, Any]]:
    voices = await _call(_list_voices_sync, credential)
    logger.info(f"Google TTS returned {len(voices)} voices")
    return voices


__all__ = [
    "build_client",
    "language_code_for",
    "list_voices",
    "load_credentials",
    "synthesize",
]
