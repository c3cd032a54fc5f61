"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    storage_url: str | None = None
    storage_api_key: str | None = None
    storage_email: str | None = None
    storage_password: str | None = None
    storage_bucket: str = "department-images"
    storage_account_id: str | None = None
    upload_max_attempts: int = 3
    upload_base_delay_seconds: float = 1.0
    upload_max_delay_seconds: float = 10.0
    connect_timeout_seconds: float = 30.0
    upload_timeout_seconds: float = 30.0
    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_image_types: str = "image/jpeg,image/jpg,image/png,image/gif,image/webp"
    department_cache_ttl_seconds: int = 300
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_allowed_image_types(raw: str | None) -> frozenset[str]:
    """Parse the comma-separated mime type allow-list from env."""
    if raw is None:
        return frozenset()
    types: set[str] = set()
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        if value:
            types.add(value)
    return frozenset(types)
