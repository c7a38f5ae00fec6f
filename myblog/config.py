"""
Configuration and settings for the blog backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )
    log_level: str = Field(default="INFO")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    # Token -> uid table for the static verifier used without Firebase.
    dev_tokens: dict[str, str] = Field(default_factory=dict)

    # Record store
    database_url: Optional[str] = Field(default=None)
    store_timeout_seconds: float = Field(default=5.0)

    # Firebase (Auth + Firestore)
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_client_email: Optional[str] = Field(default=None)
    firebase_private_key: Optional[str] = Field(default=None)
    firebase_use_default_credentials: bool = Field(default=False)

    # Principals allowed on admin endpoints; empty means any signed-in user.
    admin_uids: list[str] = Field(default_factory=list)

    # Telegram support forwarding
    telegram_bot_token: Optional[str] = Field(default=None)
    telegram_chat_id: Optional[str] = Field(default=None)
    telegram_timeout_seconds: float = Field(default=5.0)

    # Media storage (local disk or S3-compatible bucket)
    media_dir: str = Field(default="uploads")
    media_bucket: Optional[str] = Field(default=None)
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    media_max_files: int = Field(default=10)
    media_max_file_bytes: int = Field(default=50 * 1024 * 1024)

    @property
    def firebase_configured(self) -> bool:
        return bool(self.firebase_project_id) or self.firebase_use_default_credentials


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
