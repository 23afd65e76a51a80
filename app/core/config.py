from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.services.access import AccessLevel


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    storage_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("APP_STORAGE_API_KEY", "WHOP_API_KEY"),
    )
    storage_base_url: str = "https://storage.api.whop.com/api"
    storage_bucket_id: str = "video-experience-data"
    storage_timeout_seconds: float = 10.0
    access_check_url: str | None = None
    user_token_header: str = "x-whop-user-token"
    dev_access_level: AccessLevel = AccessLevel.NO_ACCESS
    save_debounce_seconds: float = 1.0
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env", env_prefix="APP_", env_file_encoding="utf-8")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


settings = get_settings()
