"""TTS API router: segmentation, validation, voices, synthesis and export."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response, StreamingResponse

from ..schemas.settings import ProviderId, TapSpeakSettings
from ..schemas.tts import (
    ExportRequest,
    SegmentItem,
    SegmentsRequest,
    SegmentsResponse,
    SegmentValidationItem,
    SpeakRequest,
    ValidateRequest,
    ValidateResponse,
    VoicesResponse,
)
from ..services.audio_pipeline import AudioPipeline
from ..services.limits import check_segment, check_text, uses_segment_validation, validate_text
from ..services.settings_store import SettingsService
from ..services.text_segmenter import segment
from ..services.tts import filter_voices, get_provider
from ..services.tts.errors import (
    AuthError,
    DecodeError,
    NetworkError,
    SynthesisError,
    TTSError,
    ValidationError,
)
from .settings import get_settings_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/tts", tags=["tts"])

_STATUS_CODES: dict[type[TTSError], int] = {
    ValidationError: 400,
    AuthError: 401,
    DecodeError: 422,
    SynthesisError: 502,
    NetworkError: 503,
}


def _http_error(exc: TTSError) -> HTTPException:
    status_code = next(
        (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    return HTTPException(status_code=status_code, detail=exc.message)


def get_audio_pipeline(request: Request) -> AudioPipeline:
    pipeline = getattr(request.app.state, "audio_pipeline", None)
    if pipeline is None:  # pragma: no cover
        raise RuntimeError("Audio pipeline is not configured")
    return pipeline


def _preflight(text: str, provider: ProviderId, settings: TapSpeakSettings) -> None:
    mode = settings.split_delimiter
    if uses_segment_validation(mode):
        check_segment(text, provider, mode)
    else:
        check_text(text, provider)


@router.post("/segments", response_model=SegmentsResponse)
async def split_segments(
    payload: SegmentsRequest,
    service: SettingsService = Depends(get_settings_service),
) -> SegmentsResponse:
    mode = payload.mode or service.get_settings().split_delimiter
    return SegmentsResponse(
        segments=[SegmentItem(index=s.index, text=s.text) for s in segment(payload.text, mode)]
    )


@router.post("/validate", response_model=ValidateResponse)
async def validate(
    payload: ValidateRequest,
    service: SettingsService = Depends(get_settings_service),
) -> ValidateResponse:
    settings = service.get_settings()
    provider = payload.provider or settings.active_provider
    mode = payload.mode or settings.split_delimiter
    result = validate_text(payload.text, segment(payload.text, mode), provider, mode)
    return ValidateResponse(
        provider=result.provider,
        mode=result.mode,
        character_limit=result.character_limit,
        current_length=result.current_length,
        is_over_limit=result.is_over_limit,
        characters_over=result.characters_over,
        invalid_segment_count=result.invalid_segment_count,
        has_sentence_issues=result.has_sentence_issues,
        segments=[
            SegmentValidationItem(
                index=s.index,
                text=s.text,
                length=s.length,
                is_valid=s.is_valid,
                sentence_issue=s.sentence_issue,
            )
            for s in result.segments
        ],
    )


@router.get("/voices", response_model=VoicesResponse)
async def list_voices(
    provider: Optional[ProviderId] = None,
    query: Optional[str] = Query(None, alias="filter"),
    service: SettingsService = Depends(get_settings_service),
) -> VoicesResponse:
    """List voices sorted by name, optionally narrowed by name or id."""
    settings = service.get_settings()
    provider_id = provider or settings.active_provider
    try:
        voices = await get_provider(provider_id).list_voices(settings.credential(provider_id))
    except TTSError as exc:
        logger.error(f"Failed to fetch voices for {provider_id}: {exc.message}")
        raise _http_error(exc) from exc
    return VoicesResponse(voices=filter_voices(voices, query))


@router.post("/speak")
async def speak(
    payload: SpeakRequest,
    service: SettingsService = Depends(get_settings_service),
) -> Response:
    settings = service.get_settings()
    provider_id = payload.provider or settings.active_provider
    try:
        _preflight(payload.text, provider_id, settings)
        audio = await get_provider(provider_id).speak(
            payload.text,
            settings.credential(provider_id),
            payload.voice_id or settings.voice(provider_id),
        )
    except TTSError as exc:
        raise _http_error(exc) from exc
    return Response(content=audio, media_type="audio/mpeg")


@router.post("/stream")
async def stream(
    payload: SpeakRequest,
    service: SettingsService = Depends(get_settings_service),
) -> StreamingResponse:
    settings = service.get_settings()
    provider_id = payload.provider or settings.active_provider
    chunks = get_provider(provider_id).stream(
        payload.text,
        settings.credential(provider_id),
        payload.voice_id or settings.voice(provider_id),
    )

    # Pull the first chunk up front so auth and backend errors become a
    # proper status code instead of a truncated 200.
    try:
        _preflight(payload.text, provider_id, settings)
        first = await anext(chunks, b"")
    except TTSError as exc:
        raise _http_error(exc) from exc

    async def _body() -> AsyncIterator[bytes]:
        if first:
            yield first
        try:
            async for chunk in chunks:
                yield chunk
        except TTSError as exc:
            logger.error(f"{provider_id} streaming TTS error: {exc.message}")

    return StreamingResponse(_body(), media_type="audio/mpeg")


@router.post("/export")
async def export_wav(
    payload: ExportRequest,
    service: SettingsService = Depends(get_settings_service),
    pipeline: AudioPipeline = Depends(get_audio_pipeline),
) -> Response:
    try:
        exported = await pipeline.export(payload.text, service.get_settings())
    except TTSError as exc:
        raise _http_error(exc) from exc
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


__all__ = ["get_audio_pipeline", "router"]
