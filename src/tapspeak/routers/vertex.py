"""Trusted intermediary for Google Cloud TTS.

Clients forward the service-account document here instead of calling Google
directly, so the private key never has to be used from an untrusted context.
Errors are returned as `{"error": message}`.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

from ..schemas.settings import DEFAULT_VOICES
from ..schemas.tts import VertexSynthesizeRequest, VertexVoicesRequest, VertexVoicesResponse
from ..services import vertex_backend
from ..services.tts.errors import AuthError, TTSError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/tts/vertex", tags=["vertex"])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("")
async def synthesize(payload: VertexSynthesizeRequest) -> Response:
    if not payload.text or not payload.credentials:
        return _error("Missing text or credentials", 400)

    voice_id = payload.voice_id or DEFAULT_VOICES["vertex"]
    try:
        audio = await vertex_backend.synthesize(payload.text, voice_id, payload.credentials)
    except AuthError as exc:
        logger.warning(f"Vertex AI TTS auth failure: {exc.message}")
        return _error(exc.message, 401)
    except TTSError as exc:
        logger.error(f"Vertex AI TTS Error: {exc.message}")
        return _error(exc.message or "Internal Server Error", 500)

    return Response(content=audio, media_type="audio/mpeg")


@router.post("/voices")
async def list_voices(payload: VertexVoicesRequest) -> Response:
    if not payload.credentials:
        return _error("Missing credentials", 400)

    try:
        voices = await vertex_backend.list_voices(payload.credentials)
    except AuthError as exc:
        logger.warning(f"Vertex AI voices auth failure: {exc.message}")
        return _error(exc.message, 401)
    except TTSError as exc:
        logger.error(f"Vertex AI Voices Error: {exc.message}")
        return _error(exc.message or "Internal Server Error", 500)

    body = VertexVoicesResponse.model_validate({"voices": voices})
    return JSONResponse(body.model_dump(by_alias=True))


__all__ = ["router"]
