"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.config import Settings


def test_defaults_match_pool_schedule() -> None:
    """Default settings should mirror the daily rebuild schedule."""

    settings = Settings(_env_file=None)

    assert settings.pool_rebuild_interval_seconds == 86_400
    assert settings.pool_startup_delay_seconds == 5
    assert settings.pool_save_batch_size == 50
    assert settings.enrichment_delay_seconds == pytest.approx(0.15)
    assert settings.jikan_page_delay_seconds == pytest.approx(0.4)
    assert settings.tmdb_access_token is None


def test_blank_tmdb_token_is_treated_as_missing() -> None:
    settings = Settings(_env_file=None, TMDB_ACCESS_TOKEN="   ")

    assert settings.tmdb_access_token is None


def test_base_urls_are_normalised() -> None:
    settings = Settings(
        _env_file=None,
        JIKAN_API_URL="https://jikan.example.com/v4/",
        TMDB_IMAGE_BASE_URL="https://images.example.com/t/p",
    )

    assert settings.jikan_api_url == "https://jikan.example.com/v4"
    assert settings.tmdb_image_base_url == "https://images.example.com/t/p/"


def test_rebuild_interval_has_lower_bound() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, POOL_REBUILD_INTERVAL=10)


def test_save_batch_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, POOL_SAVE_BATCH=0)
