"""Tests for the TMDB enrichment client."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from app.config import Settings
from app.services.tmdb import TMDBClient


def build_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[arg-type]


def translations_payload() -> dict[str, Any]:
    return {
        "translations": [
            {
                "iso_639_1": "zh",
                "iso_3166_1": "TW",
                "data": {"name": "進擊的巨人", "overview": "繁體簡介"},
            },
            {
                "iso_639_1": "zh",
                "iso_3166_1": "CN",
                "data": {"name": "进击的巨人", "overview": "简体简介"},
            },
            {
                "iso_639_1": "en",
                "iso_3166_1": "US",
                "data": {"name": "Attack on Titan", "overview": ""},
            },
        ]
    }


@pytest.mark.anyio("asyncio")
async def test_lookup_without_token_makes_no_requests() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"results": []})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(
        transport=transport, base_url="https://tmdb.example.com/3"
    ) as http_client:
        client = TMDBClient(build_settings(), http_client)
        client.set_token("   ")
        result = await client.lookup("進撃の巨人", "2013-04-07")

    assert result is None
    assert client.has_token is False
    assert requests == []


@pytest.mark.anyio("asyncio")
async def test_lookup_prefers_japanese_animation_and_simplified_chinese() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path == "/3/search/tv":
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"id": 1, "name": "Live Action", "genre_ids": [18], "origin_country": ["JP"]},
                        {"id": 2, "name": "US Cartoon", "genre_ids": [16], "origin_country": ["US"]},
                        {
                            "id": 1429,
                            "name": "Attack on Titan",
                            "overview": "Humanity fights titans.",
                            "genre_ids": [16, 10759],
                            "origin_country": ["JP"],
                            "backdrop_path": "/backdrop.jpg",
                        },
                    ]
                },
            )
        if path == "/3/tv/1429/translations":
            return httpx.Response(200, json=translations_payload())
        return httpx.Response(404, json={})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(
        transport=transport, base_url="https://tmdb.example.com/3"
    ) as http_client:
        client = TMDBClient(build_settings(), http_client)
        client.set_token("tmdb-token")
        match = await client.lookup("進撃の巨人", "2013-04-07")

    assert match is not None
    assert match.tmdb_id == "1429"
    assert match.english_title == "Attack on Titan"
    # Empty translated overview keeps the search overview.
    assert match.english_summary == "Humanity fights titans."
    assert match.chinese_title == "进击的巨人"
    assert match.chinese_summary == "简体简介"
    assert match.backdrop_url == "https://image.tmdb.org/t/p/original/backdrop.jpg"
    assert match.site_url == "https://www.themoviedb.org/tv/1429"

    search = requests[0]
    assert search.headers["Authorization"] == "Bearer tmdb-token"
    assert search.url.params["query"] == "進撃の巨人"
    assert search.url.params["first_air_date_year"] == "2013"
    assert search.url.params["language"] == "en-US"


@pytest.mark.anyio("asyncio")
async def test_lookup_falls_back_to_cleaned_title_then_no_year() -> None:
    searches: list[tuple[str, str, str | None]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        params = request.url.params
        if path.startswith("/3/search/"):
            media_type = path.rsplit("/", 1)[-1]
            year = params.get("first_air_date_year") or params.get("primary_release_year")
            searches.append((media_type, params["query"], year))
            if media_type == "movie" and params["query"] == "Mob Psycho 100" and year is None:
                return httpx.Response(
                    200,
                    json={
                        "results": [
                            {
                                "id": 77,
                                "title": "Mob Psycho 100: The Movie",
                                "overview": "Movie overview.",
                                "genre_ids": [16],
                                "origin_country": ["JP"],
                            }
                        ]
                    },
                )
            return httpx.Response(200, json={"results": []})
        if path == "/3/movie/77":
            return httpx.Response(200, json={"backdrop_path": "/details.jpg"})
        if path == "/3/movie/77/translations":
            return httpx.Response(200, json={"translations": []})
        return httpx.Response(404, json={})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(
        transport=transport, base_url="https://tmdb.example.com/3"
    ) as http_client:
        client = TMDBClient(build_settings(), http_client)
        client.set_token("tmdb-token")
        match = await client.lookup("Mob Psycho 100 II", "2019-01-07")

    assert searches == [
        ("tv", "Mob Psycho 100 II", "2019"),
        ("movie", "Mob Psycho 100 II", "2019"),
        ("tv", "Mob Psycho 100", "2019"),
        ("movie", "Mob Psycho 100", "2019"),
        ("tv", "Mob Psycho 100", None),
        ("movie", "Mob Psycho 100", None),
    ]
    assert match is not None
    assert match.english_title == "Mob Psycho 100: The Movie"
    assert match.chinese_title == ""
    assert match.backdrop_url == "https://image.tmdb.org/t/p/original/details.jpg"
    assert match.site_url == "https://www.themoviedb.org/movie/77"


@pytest.mark.anyio("asyncio")
async def test_lookup_returns_none_when_nothing_matches() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json={"results": []})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(
        transport=transport, base_url="https://tmdb.example.com/3"
    ) as http_client:
        client = TMDBClient(build_settings(), http_client)
        client.set_token("tmdb-token")
        assert await client.lookup("Unknown Title", None) is None

    # No season suffix and no year: a single tv + movie search.
    assert calls == 2
