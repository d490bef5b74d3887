"""Utilities for resolving supplementary metadata from The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..models import EnrichmentMatch
from ..utils import extract_year, remove_season_suffix

logger = logging.getLogger(__name__)

ANIMATION_GENRE_ID = 16
SITE_URL = "https://www.themoviedb.org/{media_type}/{media_id}"


class TMDBClient:
    """Client responsible for finding the TMDB entry that best matches an anime title."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._image_base_url = settings.tmdb_image_base_url
        self._token: str | None = None

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def set_token(self, token: str | None) -> None:
        """Set the bearer token used for subsequent lookups."""

        cleaned = (token or "").strip()
        if not cleaned:
            logger.info("TMDB token not provided, enrichment will be skipped")
            self._token = None
            return
        self._token = cleaned

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def lookup(
        self, search_term: str, date_hint: str | None = None
    ) -> EnrichmentMatch | None:
        """Return the best TMDB match for ``search_term`` or ``None``.

        Search falls back in three layers: the original title with the year
        from ``date_hint``, the season-stripped title with the year, then the
        title without any year filter.
        """

        title = (search_term or "").strip()
        if not title:
            return None
        if not self._token:
            logger.debug("TMDB token not set, skipping search for %r", title)
            return None

        year = extract_year(date_hint)
        cleaned_title, was_cleaned = remove_season_suffix(title)

        result = await self._search(title, year)
        if result is None and was_cleaned:
            logger.info(
                "No results for %r, trying cleaned title %r", title, cleaned_title
            )
            result = await self._search(cleaned_title, year)
        if result is None and year is not None:
            fallback_title = cleaned_title if was_cleaned else title
            logger.info("No results with year filter, trying %r without year", fallback_title)
            result = await self._search(fallback_title, None)

        if result is None:
            logger.info("No TMDB results found for %r", title)
            return None

        candidate, media_type = result
        try:
            media_id = int(candidate.get("id") or 0)
        except (TypeError, ValueError):
            media_id = 0

        title_key = "title" if media_type == "movie" else "name"
        english_title = str(candidate.get(title_key) or "")
        english_summary = str(candidate.get("overview") or "")
        backdrop_url = self._build_image_url(candidate.get("backdrop_path"))

        if not backdrop_url and media_id > 0:
            backdrop_url = await self._fetch_backdrop(media_type, media_id)

        chinese_title = ""
        chinese_summary = ""
        if media_id > 0:
            translations = await self._fetch_translations(media_type, media_id)
            english = self._pick_translation(translations, "en")
            chinese = self._pick_translation(translations, "zh", preferred_region="CN")
            if english:
                english_title = english.get(title_key) or english_title
                english_summary = english.get("overview") or english_summary
            if chinese:
                chinese_title = chinese.get(title_key) or ""
                chinese_summary = chinese.get("overview") or ""

        logger.info("Found TMDB %s info for %r (ID: %s)", media_type, title, media_id)
        return EnrichmentMatch(
            tmdb_id=str(media_id),
            english_title=english_title,
            chinese_title=chinese_title,
            english_summary=english_summary,
            chinese_summary=chinese_summary,
            backdrop_url=backdrop_url,
            site_url=(
                SITE_URL.format(media_type=media_type, media_id=media_id)
                if media_id > 0
                else ""
            ),
        )

    async def _search(
        self, query: str, year: int | None
    ) -> tuple[dict[str, Any], str] | None:
        """Search TV first, then movies for theatrical releases."""

        for media_type in ("tv", "movie"):
            match = await self._search_by_type(query, year, media_type)
            if match is not None:
                return match, media_type
        return None

    async def _search_by_type(
        self, query: str, year: int | None, media_type: str
    ) -> dict[str, Any] | None:
        params: dict[str, Any] = {
            "query": query,
            "language": "en-US",
            "page": 1,
            "include_adult": "false",
        }
        if year is not None:
            year_param = "first_air_date_year" if media_type == "tv" else "primary_release_year"
            params[year_param] = year

        response = await self._client.get(
            f"/search/{media_type}", params=params, headers=self._headers()
        )
        if response.status_code >= 400:
            logger.warning(
                "TMDB %s search for %r failed: %s", media_type, query, response.text
            )
            return None
        results = response.json().get("results") or []
        if not isinstance(results, list) or not results:
            return None
        return self._select_best_match(results)

    @staticmethod
    def _select_best_match(results: list[Any]) -> dict[str, Any] | None:
        """Prefer Japanese animation, then any animation, then the first result."""

        candidates = [entry for entry in results if isinstance(entry, dict)]
        if not candidates:
            return None

        animation_match: dict[str, Any] | None = None
        for candidate in candidates:
            genres = candidate.get("genre_ids") or []
            if ANIMATION_GENRE_ID not in genres:
                continue
            if "JP" in (candidate.get("origin_country") or []):
                return candidate
            if animation_match is None:
                animation_match = candidate

        return animation_match or candidates[0]

    async def _fetch_backdrop(self, media_type: str, media_id: int) -> str:
        try:
            response = await self._client.get(
                f"/{media_type}/{media_id}", headers=self._headers()
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Failed to fetch %s details for backdrop (ID: %s): %s",
                media_type,
                media_id,
                exc,
            )
            return ""
        if response.status_code >= 400:
            return ""
        return self._build_image_url(response.json().get("backdrop_path"))

    async def _fetch_translations(
        self, media_type: str, media_id: int
    ) -> list[dict[str, Any]]:
        response = await self._client.get(
            f"/{media_type}/{media_id}/translations", headers=self._headers()
        )
        if response.status_code >= 400:
            logger.debug(
                "TMDB translations fetch failed for %s %s: %s",
                media_type,
                media_id,
                response.text,
            )
            return []
        translations = response.json().get("translations") or []
        return [entry for entry in translations if isinstance(entry, dict)]

    @staticmethod
    def _pick_translation(
        translations: list[dict[str, Any]],
        language: str,
        *,
        preferred_region: str | None = None,
    ) -> dict[str, Any] | None:
        fallback: dict[str, Any] | None = None
        for entry in translations:
            if entry.get("iso_639_1") != language:
                continue
            data = entry.get("data")
            if not isinstance(data, dict):
                continue
            if preferred_region is None or entry.get("iso_3166_1") == preferred_region:
                return data
            if fallback is None:
                fallback = data
        return fallback

    def _build_image_url(self, path: Any) -> str:
        if not isinstance(path, str) or not path.strip():
            return ""
        if path.startswith("http"):
            return path
        return f"{self._image_base_url}original{path}"
