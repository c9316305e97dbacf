"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Lumiere", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_url: HttpUrl = Field(
        default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_URL"
    )
    tmdb_language: str = Field(default="pt-BR", alias="TMDB_LANGUAGE")
    request_timeout_seconds: float = Field(
        default=10.0, alias="REQUEST_TIMEOUT", gt=0, le=120
    )

    min_vote_count: int = Field(default=100, alias="MIN_VOTE_COUNT", ge=0)

    pool_page_cap: int = Field(default=50, alias="POOL_PAGE_CAP", ge=1, le=500)
    pool_batch_size: int = Field(default=5, alias="POOL_BATCH_SIZE", ge=1, le=20)
    pool_initial_retries: int = Field(
        default=1, alias="POOL_INITIAL_RETRIES", ge=0, le=5
    )
    pool_retry_backoff_seconds: float = Field(
        default=0.5, alias="POOL_RETRY_BACKOFF", ge=0, le=30
    )
    max_sessions: int = Field(default=256, alias="MAX_SESSIONS", ge=1, le=100_000)

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_api_key", mode="before")
    @classmethod
    def _strip_blank_key(cls, value: object) -> object:
        """Treat whitespace-only keys as missing."""

        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("tmdb_language")
    @classmethod
    def _validate_language(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("TMDB_LANGUAGE must not be empty")
        return cleaned

    @property
    def has_tmdb_credentials(self) -> bool:
        return bool(self.tmdb_api_key)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
