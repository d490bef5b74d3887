"""Helper client for Bangumi's ranked subject search."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)

ANIME_SUBJECT_TYPE = 2
SUBJECT_URL = "https://bgm.tv/subject/{id}"


@dataclass(slots=True)
class BangumiSubject:
    """Represents the useful fields of a Bangumi subject."""

    id: int
    name: str
    name_cn: str = ""
    air_date: str | None = None
    image_url: str = ""
    score: float | None = None

    @property
    def site_url(self) -> str:
        return SUBJECT_URL.format(id=self.id)


class BangumiClient:
    """Wrapper around the Bangumi v0 subject search endpoint."""

    _SEARCH_PATH = "/v0/search/subjects"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._token: str | None = None

    def set_token(self, token: str | None) -> None:
        """Attach an optional access token to subsequent requests."""

        self._token = (token or "").strip() or None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"{self._settings.app_name} (animepool)",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def fetch_ranked(
        self, sort_key: str = "rank", limit: int = 50
    ) -> list[BangumiSubject]:
        """Return anime subjects ordered by ``sort_key`` (Bangumi rank by default)."""

        body = {
            "keyword": "",
            "sort": sort_key,
            "filter": {"type": [ANIME_SUBJECT_TYPE], "nsfw": False},
        }
        params = {"limit": max(1, min(int(limit or 50), 50)), "offset": 0}
        response = await self._client.post(
            self._SEARCH_PATH, json=body, params=params, headers=self._headers()
        )
        if response.status_code >= 400:
            logger.warning(
                "Bangumi %s search failed with status %s: %s",
                sort_key,
                response.status_code,
                response.text,
            )
            return []

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON Bangumi search response")
            return []

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            logger.warning("Unexpected Bangumi search response structure")
            return []

        subjects: list[BangumiSubject] = []
        for entry in data:
            subject = self._parse_subject(entry)
            if subject is not None:
                subjects.append(subject)
        logger.info("Retrieved %d ranked subjects from Bangumi", len(subjects))
        return subjects

    @staticmethod
    def _parse_subject(entry: Any) -> BangumiSubject | None:
        if not isinstance(entry, dict):
            return None
        try:
            subject_id = int(entry.get("id") or 0)
        except (TypeError, ValueError):
            return None
        if subject_id == 0:
            return None

        images = entry.get("images") or {}
        image_url = images.get("large") if isinstance(images, dict) else None

        rating = entry.get("rating") or {}
        score = entry.get("score")
        if score is None and isinstance(rating, dict):
            score = rating.get("score")

        return BangumiSubject(
            id=subject_id,
            name=str(entry.get("name") or ""),
            name_cn=str(entry.get("name_cn") or ""),
            air_date=entry.get("date") or None,
            image_url=image_url or "",
            score=float(score) if isinstance(score, (int, float)) else None,
        )
