"""Utilities for querying ranked anime listings from the AniList GraphQL API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)

SORT_TRENDING = "TRENDING_DESC"
SORT_POPULARITY = "POPULARITY_DESC"
SORT_SCORE = "SCORE_DESC"

RANKED_QUERY = """
query ($perPage: Int, $sort: [MediaSort]) {
    Page(perPage: $perPage) {
        media(sort: $sort, type: ANIME) {
            id
            title {
                romaji
                native
                english
            }
            description
            averageScore
            coverImage {
                large
                extraLarge
            }
            bannerImage
            siteUrl
        }
    }
}
"""


@dataclass(slots=True)
class AniListMedia:
    """Normalized view of an AniList media entry."""

    anilist_id: str
    english_title: str
    native_title: str
    description: str
    score: str
    cover_url: str
    banner_image: str
    site_url: str


class AniListClient:
    """Thin wrapper around the AniList GraphQL endpoint."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": f"{self._settings.app_name} (animepool)",
        }

    async def fetch_ranked(self, sort_key: str, limit: int = 50) -> list[AniListMedia]:
        """Fetch up to ``limit`` anime ordered by ``sort_key``.

        HTTP error statuses and malformed payloads yield an empty list;
        transport failures propagate to the caller.
        """

        payload = {
            "query": RANKED_QUERY,
            "variables": {"perPage": max(1, min(int(limit or 50), 50)), "sort": [sort_key]},
        }
        logger.info("Fetching %s %s anime from AniList", limit, sort_key)
        response = await self._client.post("", json=payload, headers=self._headers())
        if response.status_code >= 400:
            logger.warning(
                "AniList %s query failed with status %s: %s",
                sort_key,
                response.status_code,
                response.text,
            )
            return []

        try:
            data = response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON AniList response for %s", sort_key)
            return []

        page = data.get("data") if isinstance(data, dict) else None
        page = page.get("Page") if isinstance(page, dict) else None
        entries = page.get("media") if isinstance(page, dict) else None
        if not isinstance(entries, list):
            logger.warning("Invalid AniList response format for %s query", sort_key)
            return []

        results: list[AniListMedia] = []
        for entry in entries:
            parsed = self._parse_media(entry)
            if parsed is not None:
                results.append(parsed)

        logger.info("Retrieved %d %s anime from AniList", len(results), sort_key)
        return results

    @staticmethod
    def _parse_media(entry: Any) -> AniListMedia | None:
        if not isinstance(entry, dict) or entry.get("id") is None:
            return None

        title = entry.get("title")
        if not isinstance(title, dict):
            title = {}
        english_title = title.get("english") or title.get("romaji") or ""
        native_title = title.get("native") or ""

        average = entry.get("averageScore")
        score = f"{average / 10:.1f}" if isinstance(average, (int, float)) else "0"

        cover = entry.get("coverImage")
        if not isinstance(cover, dict):
            cover = {}
        cover_url = cover.get("extraLarge") or cover.get("large") or ""

        return AniListMedia(
            anilist_id=str(entry["id"]),
            english_title=english_title,
            native_title=native_title,
            description=entry.get("description") or "",
            score=score,
            cover_url=cover_url,
            banner_image=entry.get("bannerImage") or "",
            site_url=entry.get("siteUrl") or "",
        )
