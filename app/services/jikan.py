"""Utilities for paging through MyAnimeList top charts via the Jikan API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JikanAnime:
    """Normalized view of a Jikan anime entry."""

    mal_id: int
    url: str
    title: str
    title_japanese: str | None = None
    title_english: str | None = None
    synopsis: str | None = None
    score: float | None = None
    image_url: str = ""


class JikanClient:
    """Client for Jikan's ranked anime pages (rate limited to ~3 req/s upstream)."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def fetch_page(self, page_number: int, page_size: int = 25) -> list[JikanAnime]:
        """Fetch one page of the MAL top anime chart."""

        params = {
            "page": max(1, int(page_number)),
            "limit": max(1, min(int(page_size or 25), 25)),
        }
        response = await self._client.get(
            "/top/anime",
            params=params,
            headers={
                "Accept": "application/json",
                "User-Agent": f"{self._settings.app_name} (animepool)",
            },
        )
        if response.status_code >= 400:
            logger.warning(
                "Jikan top anime page %s failed with status %s: %s",
                page_number,
                response.status_code,
                response.text,
            )
            return []

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON Jikan response for page %s", page_number)
            return []

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            logger.warning("Jikan API returned null data for page %s", page_number)
            return []

        results = [anime for anime in map(self._parse_anime, data) if anime is not None]
        logger.info("Retrieved %d anime from Jikan page %s", len(results), page_number)
        return results

    @staticmethod
    def _parse_anime(entry: Any) -> JikanAnime | None:
        if not isinstance(entry, dict):
            return None
        mal_id = entry.get("mal_id")
        if not isinstance(mal_id, int):
            return None

        images = entry.get("images")
        images = images if isinstance(images, dict) else {}
        jpg = images.get("jpg")
        jpg = jpg if isinstance(jpg, dict) else {}
        webp = images.get("webp")
        webp = webp if isinstance(webp, dict) else {}
        image_url = (
            jpg.get("large_image_url")
            or jpg.get("image_url")
            or webp.get("large_image_url")
            or ""
        )

        score = entry.get("score")
        return JikanAnime(
            mal_id=mal_id,
            url=entry.get("url") or "",
            title=entry.get("title") or "",
            title_japanese=entry.get("title_japanese") or None,
            title_english=entry.get("title_english") or None,
            synopsis=entry.get("synopsis") or None,
            score=float(score) if isinstance(score, (int, float)) else None,
            image_url=image_url,
        )
