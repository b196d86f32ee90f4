"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directory holding the persisted user settings record
    settings_dir: Path = Field(
        default_factory=lambda: Path("data"),
        validation_alias=AliasChoices("SETTINGS_DIR", "settings_dir"),
    )
    request_timeout: float = Field(
        default=30.0,
        validation_alias=AliasChoices("TTS_REQUEST_TIMEOUT", "request_timeout"),
        ge=1,
    )

    # Trusted intermediary that holds Google service-account credentials
    vertex_proxy_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("http://localhost:8000"),
        validation_alias=AliasChoices("VERTEX_PROXY_URL", "vertex_proxy_url"),
    )
    openai_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://api.openai.com/v1"),
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
    )
    elevenlabs_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://api.elevenlabs.io/v1"),
        validation_alias=AliasChoices("ELEVENLABS_BASE_URL", "elevenlabs_base_url"),
    )

    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("TAPSPEAK_HOST", "host"),
    )
    port: int = Field(
        default=8000,
        validation_alias=AliasChoices("TAPSPEAK_PORT", "port"),
        ge=1,
        le=65535,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


def resolve_under(base: Path, p: Path) -> Path:
    """Resolve `p` against `base`; relative paths may not escape it."""
    # Allow absolute paths as-is (useful for tests and external mounts).
    if p.is_absolute():
        return p.resolve()
    resolved = (base / p).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(f"Configured path {resolved} escapes project root {base}")
    return resolved


def settings_directory(settings: Optional[Settings] = None) -> Path:
    """Directory of the persisted user settings record."""
    return resolve_under(PROJECT_ROOT, (settings or get_settings()).settings_dir)


__all__ = ["PROJECT_ROOT", "Settings", "get_settings", "resolve_under", "settings_directory"]
