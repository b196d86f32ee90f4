"""Application factory for the TapSpeak service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings, settings_directory
from .routers.settings import router as settings_router
from .routers.tts import router as tts_router
from .routers.vertex import router as vertex_router
from .services.audio_pipeline import AudioPipeline
from .services.settings_store import FileKeyValueStore, KeyValueStore, SettingsService
from .services.tts import TTSProvider


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger("tapspeak").setLevel(log_level)
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Quiet noisy HTTP client libraries unless debugging
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    else:
        logging.getLogger("httpx").setLevel(log_level)
        logging.getLogger("httpcore").setLevel(log_level)


def create_app(
    store: Optional[KeyValueStore] = None,
    pipeline: Optional[AudioPipeline] = None,
) -> FastAPI:
    _configure_logging()

    settings = get_settings()

    if store is None:
        store = FileKeyValueStore(settings_directory(settings))
    settings_service = SettingsService(store)
    audio_pipeline = pipeline or AudioPipeline()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings_service.load()
        try:
            yield
        finally:
            await TTSProvider.close_http_client()

    app = FastAPI(
        title="TapSpeak",
        version="0.1.0",
        description="Tap a sentence, hear it spoken. Multi-provider TTS backend.",
        lifespan=lifespan,
    )

    app.state.settings_service = settings_service
    app.state.audio_pipeline = audio_pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(settings_router)
    app.include_router(tts_router)
    app.include_router(vertex_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        current = settings_service.get_settings()
        return {
            "status": "ok",
            "active_provider": current.active_provider,
            "split_delimiter": current.split_delimiter,
        }

    return app


__all__ = ["create_app"]
