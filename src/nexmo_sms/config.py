from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, field_validator


class Settings(BaseModel):
    # Project root (repo root in local dev, /app in Docker)
    project_root: Path = Path(__file__).resolve().parents[2]

    # --- Nexmo REST API ---
    nexmo_api_key: str | None = os.getenv("NEXMO_API_KEY")
    nexmo_api_secret: str | None = os.getenv("NEXMO_API_SECRET")

    # "json" or "xml"; selects the sms endpoint suffix and the Accept header
    nexmo_format: str = os.getenv("NEXMO_FORMAT", "json")

    # Seconds before an outbound call is abandoned
    nexmo_timeout: float = float(os.getenv("NEXMO_TIMEOUT", "60"))

    # Seconds a cached account query (pricing, number search, message search) stays valid
    nexmo_cache_ttl: float = float(os.getenv("NEXMO_CACHE_TTL", "300"))

    # Database URL for stored webhook records:
    # - Default for local dev: sqlite file in the project root (nexmo_sms.db)
    # - Override in Docker / production using the DATABASE_URL env var
    database_url: str = os.getenv(
        "DATABASE_URL",
        f"sqlite:///{(Path(__file__).resolve().parents[2] / 'nexmo_sms.db')}",
    )

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @field_validator("nexmo_format")
    @classmethod
    def normalise_format(cls, value: str) -> str:
        value = value.strip().lower()
        return value if value in ("json", "xml") else "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
