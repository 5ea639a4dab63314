"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = "Carpool Coordinator"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8080

    database_url: str = "sqlite+aiosqlite:///./carpool.db"

    redis_url: str = "redis://localhost:6379/0"

    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Geocoding (OpenStreetMap Nominatim)
    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_user_agent: str = "carpool-coordinator/1.0"
    geocoder_timeout_seconds: float = 10.0
    geocoder_email: Optional[str] = None

    # Defaults applied when set-office creates a user's first schedule
    default_schedule_start: str = "09:00"
    default_schedule_end: str = "17:00"
    default_schedule_days: str = "1,2,3,4,5"

    # Notifications
    notifier_backend: Literal["redis", "log"] = "redis"
    notification_inbox_max_items: int = 100
    notification_ttl_hours: int = 168

    admin_role: str = "pool-admin"


@lru_cache
def get_settings() -> Settings:
    return Settings()
