from __future__ import annotations

from functools import lru_cache

import httpx
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings validated via Pydantic.

    Values are loaded from ``TRIMMER_*`` environment variables and/or a .env file.
    """

    # Remote processing service
    api_url: str = "http://localhost:8080"

    # Request timeouts (seconds)
    scan_timeout: float = 60.0  # ffprobe on a network share can be slow
    submit_timeout: float = 30.0
    status_timeout: float = 10.0

    # Progress polling
    poll_interval_seconds: float = 2.0
    max_poll_failures: int = 5  # consecutive failures before giving up; 0 = never

    log_level: str = "INFO"

    model_config = {"env_prefix": "TRIMMER_", "env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


def build_http_client(settings: Settings | None = None) -> httpx.AsyncClient:
    """Create the shared async HTTP client pointed at the processing service."""
    settings = settings or get_settings()
    return httpx.AsyncClient(base_url=settings.api_url)
