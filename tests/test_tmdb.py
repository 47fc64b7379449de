"""Tests for the TMDB catalog client."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from app.config import Settings
from app.errors import ResolutionFailure
from app.services.tmdb import TMDBClient


def build_settings(**overrides: Any) -> Settings:
    base = {"TMDB_API_KEY": "tmdb-key"}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


MOVIE_RESULTS = {
    "page": 1,
    "total_pages": 3,
    "results": [
        {
            "id": 27205,
            "title": "Inception",
            "overview": "A thief who steals corporate secrets...",
            "poster_path": "/inception.jpg",
            "backdrop_path": None,
            "vote_average": 8.4,
            "release_date": "2010-07-15",
            "genre_ids": [28, 878, 9999],
        },
        {"id": 64956, "title": "Inception: The Cobol Job", "genre_ids": []},
    ],
}


@pytest.mark.anyio("asyncio")
async def test_search_scopes_movie_queries_by_year() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=MOVIE_RESULTS)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://tmdb.example") as http_client:
        client = TMDBClient(build_settings(), http_client)
        page = await client.search("Inception", "movie", year_hint=2010)

    assert len(requests) == 1
    params = requests[0].url.params
    assert requests[0].url.path == "/search/movie"
    assert params["query"] == "Inception"
    assert params["primary_release_year"] == "2010"
    assert params["include_adult"] == "false"
    assert params["api_key"] == "tmdb-key"

    assert page.total_pages == 3
    first = page.results[0]
    assert first.id == 27205
    assert first.category == "movie"
    assert first.poster_url == "https://image.tmdb.org/t/p/w500/inception.jpg"
    assert first.backdrop_url is None
    assert first.aggregate_rating == 8.4
    assert first.release_date == "2010-07-15"
    assert first.genre_names == ["Action", "Science Fiction"]


@pytest.mark.anyio("asyncio")
async def test_series_search_uses_tv_endpoint_and_bearer_token() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "page": 1,
                "total_pages": 1,
                "results": [
                    {
                        "id": 1438,
                        "name": "The Wire",
                        "first_air_date": "2002-06-02",
                        "genre_ids": [80, 18],
                    }
                ],
            },
        )

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://tmdb.example") as http_client:
        client = TMDBClient(build_settings(TMDB_API_KEY=None, TMDB_TOKEN="v4-token"), http_client)
        page = await client.search("The Wire", "series", year_hint=2002)

    request = requests[0]
    assert request.url.path == "/search/tv"
    assert request.url.params["first_air_date_year"] == "2002"
    assert "api_key" not in request.url.params
    assert request.headers["Authorization"] == "Bearer v4-token"
    assert page.results[0].title == "The Wire"
    assert page.results[0].release_date == "2002-06-02"
    assert page.results[0].genre_names == ["Crime", "Drama"]


@pytest.mark.anyio("asyncio")
async def test_short_queries_skip_the_network() -> None:
    def handler(_: httpx.Request) -> httpx.Response:  # pragma: no cover - must not run
        raise AssertionError("No request expected")

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://tmdb.example") as http_client:
        client = TMDBClient(build_settings(), http_client)
        page = await client.search(" x ", "movie")

    assert page.results == []
    assert page.total_pages == 0


@pytest.mark.anyio("asyncio")
async def test_error_responses_raise_resolution_failure() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"status_message": "Invalid API key"})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://tmdb.example") as http_client:
        client = TMDBClient(build_settings(), http_client)
        with pytest.raises(ResolutionFailure):
            await client.search("Inception", "movie")


@pytest.mark.anyio("asyncio")
async def test_discover_applies_genre_rating_and_year_filters() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"page": 2, "total_pages": 5, "results": []})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://tmdb.example") as http_client:
        client = TMDBClient(build_settings(), http_client)
        page = await client.discover(
            "movie", genre_ids=[18, 80], min_rating=7.5, year=1999, page=2
        )

    params = requests[0].url.params
    assert requests[0].url.path == "/discover/movie"
    assert params["with_genres"] == "18,80"
    assert params["vote_average.gte"] == "7.5"
    assert params["primary_release_year"] == "1999"
    assert params["page"] == "2"
    assert page.page == 2


@pytest.mark.anyio("asyncio")
async def test_trending_uses_time_window() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"page": 1, "total_pages": 1, "results": []})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://tmdb.example") as http_client:
        client = TMDBClient(build_settings(), http_client)
        await client.trending("series", window="day")

    assert requests[0].url.path == "/trending/tv/day"


def test_client_requires_credentials() -> None:
    with pytest.raises(ValueError, match="TMDB credentials"):
        TMDBClient(Settings(_env_file=None), httpx.AsyncClient())


PEOPLE_RESULTS = {
    "page": 1,
    "total_pages": 2,
    "results": [
        {
            "id": 1158,
            "name": "Al Pacino",
            "known_for_department": "Acting",
            "profile_path": "/pacino.jpg",
            "popularity": 31.2,
            "known_for": [
                {"id": 949, "media_type": "movie", "title": "Heat", "genre_ids": [80]},
                {"id": 1408, "media_type": "tv", "name": "Angels in America", "genre_ids": [18]},
            ],
        },
        {"id": None, "name": "Nobody"},
        {"id": 5, "name": "   "},
    ],
}


@pytest.mark.anyio("asyncio")
async def test_search_people_maps_people_and_known_for_titles() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=PEOPLE_RESULTS)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://tmdb.example") as http_client:
        client = TMDBClient(build_settings(), http_client)
        page = await client.search_people("Pacino", page=2)

    params = requests[0].url.params
    assert requests[0].url.path == "/search/person"
    assert params["query"] == "Pacino"
    assert params["page"] == "2"
    assert params["include_adult"] == "false"
    assert page.total_pages == 2
    assert [person.name for person in page.results] == ["Al Pacino"]
    person = page.results[0]
    assert person.known_for_department == "Acting"
    assert person.profile_url == "https://image.tmdb.org/t/p/w500/pacino.jpg"
    assert person.popularity == 31.2
    assert [(credit.title, credit.category) for credit in person.known_for] == [
        ("Heat", "movie"),
        ("Angels in America", "series"),
    ]
    assert person.known_for[1].genre_names == ["Drama"]


@pytest.mark.anyio("asyncio")
async def test_short_people_queries_skip_the_network() -> None:
    def handler(_: httpx.Request) -> httpx.Response:  # pragma: no cover - must not run
        raise AssertionError("No request expected")

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://tmdb.example") as http_client:
        client = TMDBClient(build_settings(), http_client)
        page = await client.search_people("a")

    assert page.results == []
    assert page.total_pages == 0
