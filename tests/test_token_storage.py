"""Tests for the JSON token file storage."""

from __future__ import annotations

import json

import pytest

from app.config import Settings
from app.services.token_storage import TokenStorage


@pytest.mark.anyio("asyncio")
async def test_missing_file_falls_back_to_environment_token(tmp_path) -> None:
    settings = Settings(_env_file=None, TMDB_ACCESS_TOKEN="env-token")
    storage = TokenStorage(settings, tmp_path / "tokens.json")

    assert await storage.get_tmdb_token() == "env-token"
    assert await storage.get_bangumi_token() is None


@pytest.mark.anyio("asyncio")
async def test_saved_tokens_take_precedence(tmp_path) -> None:
    settings = Settings(_env_file=None, TMDB_ACCESS_TOKEN="env-token")
    path = tmp_path / "tokens.json"
    storage = TokenStorage(settings, path)

    await storage.save_tokens(" bgm ", "file-token")

    assert await storage.get_tmdb_token() == "file-token"
    assert await storage.get_bangumi_token() == "bgm"
    stored = json.loads(path.read_text("utf-8"))
    assert stored["tmdb_token"] == "file-token"
    assert "updated_at" in stored


@pytest.mark.anyio("asyncio")
async def test_unreadable_file_is_treated_as_empty(tmp_path) -> None:
    path = tmp_path / "tokens.json"
    path.write_text("{not json", "utf-8")
    storage = TokenStorage(Settings(_env_file=None), path)

    assert await storage.get_tmdb_token() is None
