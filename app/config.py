"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="AnimePool", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=5072, alias="PORT")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./animepool.db", alias="DATABASE_URL"
    )

    anilist_api_url: str = Field(
        default="https://graphql.anilist.co", alias="ANILIST_API_URL"
    )
    bangumi_api_url: str = Field(
        default="https://api.bgm.tv", alias="BANGUMI_API_URL"
    )
    jikan_api_url: str = Field(
        default="https://api.jikan.moe/v4", alias="JIKAN_API_URL"
    )
    tmdb_api_url: str = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_base_url: str = Field(
        default="https://image.tmdb.org/t/p/", alias="TMDB_IMAGE_BASE_URL"
    )
    tmdb_access_token: str | None = Field(default=None, alias="TMDB_ACCESS_TOKEN")
    token_file: str = Field(default="./tokens.json", alias="TOKEN_FILE")

    request_timeout_seconds: float = Field(
        default=30.0, alias="REQUEST_TIMEOUT", ge=1, le=300
    )

    pool_builder_enabled: bool = Field(default=True, alias="POOL_BUILDER_ENABLED")
    pool_startup_delay_seconds: float = Field(
        default=5.0, alias="POOL_STARTUP_DELAY", ge=0
    )
    pool_rebuild_interval_seconds: int = Field(
        default=86_400, alias="POOL_REBUILD_INTERVAL", ge=60
    )
    enrichment_delay_seconds: float = Field(
        default=0.15, alias="ENRICHMENT_DELAY", ge=0
    )
    jikan_page_delay_seconds: float = Field(
        default=0.4, alias="JIKAN_PAGE_DELAY", ge=0
    )
    pool_save_batch_size: int = Field(
        default=50, alias="POOL_SAVE_BATCH", ge=1, le=1_000
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_access_token", mode="before")
    @classmethod
    def _strip_blank_token(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator(
        "anilist_api_url",
        "bangumi_api_url",
        "jikan_api_url",
        "tmdb_api_url",
        mode="after",
    )
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        """Base URLs are joined with relative paths, so drop trailing slashes."""

        return value.strip().rstrip("/")

    @field_validator("tmdb_image_base_url", mode="after")
    @classmethod
    def _ensure_image_slash(cls, value: str) -> str:
        value = value.strip()
        return value if value.endswith("/") else f"{value}/"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
