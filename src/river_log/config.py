"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    api_base_url: str = "http://localhost:8080/api/v1"
    request_timeout_seconds: float = 15.0
    search_debounce_seconds: float = 0.3
    trip_schema: Literal["free_text", "catalog_ref"] = "free_text"
    keyring_service: str = "river-log"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def normalize_base_url(raw: str) -> str:
    """Strip trailing slashes so paths can be appended verbatim."""
    cleaned = raw.strip()
    while cleaned.endswith("/"):
        cleaned = cleaned[:-1]
    return cleaned
