"""Persistent storage for upstream API tokens."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from ..config import Settings

logger = logging.getLogger(__name__)


class TokenStorage:
    """Reads and writes API tokens from a JSON file next to the service.

    The TMDB token falls back to ``TMDB_ACCESS_TOKEN`` when the file has none.
    """

    def __init__(self, settings: Settings, path: str | Path | None = None):
        self._settings = settings
        self._path = Path(path or settings.token_file)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get_tmdb_token(self) -> str | None:
        tokens = await self._read_tokens()
        token = self._clean(tokens.get("tmdb_token"))
        return token or self._settings.tmdb_access_token

    async def get_bangumi_token(self) -> str | None:
        tokens = await self._read_tokens()
        return self._clean(tokens.get("bangumi_token"))

    async def save_tokens(self, bangumi_token: str | None, tmdb_token: str | None) -> None:
        payload = {
            "bangumi_token": self._clean(bangumi_token),
            "tmdb_token": self._clean(tmdb_token),
            "updated_at": datetime.utcnow().isoformat(),
        }
        async with self._lock:
            await asyncio.to_thread(
                self._path.write_text, json.dumps(payload, indent=2), "utf-8"
            )
        logger.info("Tokens saved to %s", self._path)

    async def _read_tokens(self) -> dict[str, Any]:
        if not self._path.exists():
            logger.debug("Token file not found: %s", self._path)
            return {}
        try:
            raw = await asyncio.to_thread(self._path.read_text, "utf-8")
            data = json.loads(raw)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read token file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Unexpected token file structure in %s", self._path)
            return {}
        return data

    @staticmethod
    def _clean(value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        return value.strip() or None
