"""Environment-backed settings for the Cantina queue."""
from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    env_mode: str = "DEV"
    app_brand: str = "Cantina"

    api_host: str = "127.0.0.1"
    api_port: int = 8788
    api_url: str | None = None

    queue_visible_limit: int = 5
    queue_poll_interval_ms: int = 3000
    seed_sample_orders: bool = True
    display_timezone: str = "UTC"

    def base_url(self) -> str:
        """Return the URL clients should use to reach the API."""

        if self.api_url:
            return self.api_url.rstrip("/")
        return f"http://{self.api_host}:{self.api_port}"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of application settings."""

    return AppSettings()
