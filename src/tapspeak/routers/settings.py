"""API routes for the persisted user settings."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from ..schemas.settings import (
    ApiKeyUpdate,
    DelimiterUpdate,
    ProviderId,
    TapSpeakSettingsUpdate,
    TapSpeakSettingsView,
    VoiceUpdate,
)
from ..services.settings_store import SettingsService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/settings", tags=["settings"])


def get_settings_service(request: Request) -> SettingsService:
    service = getattr(request.app.state, "settings_service", None)
    if service is None:  # pragma: no cover
        raise RuntimeError("Settings service is not configured")
    return service


@router.get("", response_model=TapSpeakSettingsView)
async def read_settings(
    service: SettingsService = Depends(get_settings_service),
) -> TapSpeakSettingsView:
    return TapSpeakSettingsView.from_settings(service.get_settings())


@router.put("", response_model=TapSpeakSettingsView)
async def update_settings(
    payload: TapSpeakSettingsUpdate,
    service: SettingsService = Depends(get_settings_service),
) -> TapSpeakSettingsView:
    settings = service.update_settings(payload)
    logger.info(f"Updated settings: provider={settings.active_provider}, split={settings.split_delimiter}")
    return TapSpeakSettingsView.from_settings(settings)


@router.put("/api-keys/{provider}", response_model=TapSpeakSettingsView)
async def update_api_key(
    provider: ProviderId,
    payload: ApiKeyUpdate,
    service: SettingsService = Depends(get_settings_service),
) -> TapSpeakSettingsView:
    settings = service.update_api_key(provider, payload.key)
    logger.info(f"Updated credential for {provider}")
    return TapSpeakSettingsView.from_settings(settings)


@router.put("/voices/{provider}", response_model=TapSpeakSettingsView)
async def update_voice(
    provider: ProviderId,
    payload: VoiceUpdate,
    service: SettingsService = Depends(get_settings_service),
) -> TapSpeakSettingsView:
    settings = service.update_voice(provider, payload.voice_id)
    logger.info(f"Selected voice {payload.voice_id} for {provider}")
    return TapSpeakSettingsView.from_settings(settings)


@router.put("/split-delimiter", response_model=TapSpeakSettingsView)
async def update_split_delimiter(
    payload: DelimiterUpdate,
    service: SettingsService = Depends(get_settings_service),
) -> TapSpeakSettingsView:
    settings = service.update_split_delimiter(payload.delimiter)
    return TapSpeakSettingsView.from_settings(settings)


@router.post("/reset", response_model=TapSpeakSettingsView)
async def reset_settings(
    service: SettingsService = Depends(get_settings_service),
) -> TapSpeakSettingsView:
    settings = service.reset_to_defaults()
    logger.info("Reset settings to defaults")
    return TapSpeakSettingsView.from_settings(settings)


__all__ = ["get_settings_service", "router"]
