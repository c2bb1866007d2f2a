"""Application configuration management."""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    PROJECT_NAME: str = "Chat Notify"
    API_PREFIX: str = "/api"
    APP_BASE_URL: str = Field("/", description="URL opened when a notification is clicked")
    DEFAULT_ICON: str = Field("/icons/icon-192x192.png", description="Fallback notification icon")

    BACKEND_CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost", "http://localhost:3000"],
        description="Allowed CORS origins",
    )

    VAPID_PUBLIC_KEY: Optional[str] = Field(None, description="Base64url VAPID application server key")
    VAPID_PRIVATE_KEY: Optional[str] = None
    VAPID_SUBJECT: str = Field("mailto:admin@example.com", description="VAPID contact claim")

    FIREBASE_DATABASE_URL: Optional[str] = Field(
        None, description="Realtime database URL; the in-memory store is used when unset"
    )
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None
    FIREBASE_CREDENTIALS_JSON: Optional[str] = None

    REDIS_URL: Optional[AnyUrl] = Field(
        None, description="Redis connection string for the profile cache"
    )
    SENDER_PROFILE_CACHE_SECONDS: int = 300

    RELAY_BASE_URL: str = Field("https://push.foo", description="Polling relay service base URL")
    RELAY_POLL_INTERVAL_SECONDS: float = Field(30.0, gt=0)
    PRESENCE_HEARTBEAT_SECONDS: float = Field(300.0, gt=0)
    HTTP_TIMEOUT_SECONDS: float = Field(10.0, description="Timeout for outbound HTTP calls")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def push_configured(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY) and bool(self.VAPID_PRIVATE_KEY)


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


settings = get_settings()
