"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str
    request_timeout_seconds: float = 15.0
    session_dir: str = ".prison_console/sessions"
    session_idle_timeout_seconds: float = 8 * 3600.0
    session_cookie_secure: bool = False
    draft_idle_timeout_seconds: float = 3600.0
    default_page_size: int = 10
    max_page_size: int = 1000
    allow_origin: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="PRISON_CONSOLE_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_allowed_origins(raw: str | None) -> list[str] | None:
    """Parse allowed CORS origins from env."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    origins: list[str] = []
    for chunk in cleaned.split(","):
        value = chunk.strip().rstrip("/")
        if value and value not in origins:
            origins.append(value)
    return origins or None
