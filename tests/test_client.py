from __future__ import annotations

import json

import httpx
import pytest

import app.client
from app.client import ReelPicksApiClient
from app.config import Settings
from app.errors import SuggestionUnavailable
from app.models import EnrichedRecommendation, PreferenceMetadata, TasteProfile, TitleKey


def _recommendation(title: str, catalog_id: int, year: int) -> dict:
    return {
        "title": title,
        "category": "movie",
        "releasedYear": year,
        "rationale": "fit",
        "catalogMatch": {"id": catalog_id, "title": title, "genreNames": ["Crime"]},
    }


@pytest.mark.anyio("asyncio")
async def test_get_recommendations_posts_exclusions_and_profile() -> None:
    seen: list[dict] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.raw_path == b"/api/users/user%201/recommendations"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=[_recommendation("Heat", 949, 1995)])

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://reelpicks.test"
    ) as http_client:
        client = ReelPicksApiClient(http_client)
        items = await client.get_recommendations(
            "user 1",
            [TitleKey(title="Ali", year=2001, category="movie")],
            taste_profile=TasteProfile(genres=["Crime"]),
        )

    assert [item.title for item in items] == ["Heat"]
    assert items[0].catalog_match.id == 949
    assert seen[0]["previousRecommendations"] == [
        {"title": "Ali", "year": 2001, "category": "movie"}
    ]
    assert seen[0]["tasteProfile"]["genres"] == ["Crime"]


@pytest.mark.anyio("asyncio")
async def test_unavailable_service_raises_suggestion_unavailable() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "all providers failed"})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://reelpicks.test"
    ) as http_client:
        client = ReelPicksApiClient(http_client)
        with pytest.raises(SuggestionUnavailable) as exc_info:
            await client.get_recommendations("u1")

    assert exc_info.value.attempts == [("remote", "all providers failed")]


@pytest.mark.anyio("asyncio")
async def test_mutations_report_failures_as_results() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PUT":
            return httpx.Response(502, json={"detail": "database locked"})
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://reelpicks.test"
    ) as http_client:
        client = ReelPicksApiClient(http_client)
        added = await client.add_like(
            "u1", 949, PreferenceMetadata(title="Heat", year=1995, category="movie")
        )
        removed = await client.remove_dislike("u1", 949)

    assert not added.ok
    assert added.error == "database locked"
    assert not removed.ok
    assert "connection refused" in removed.error


@pytest.mark.anyio("asyncio")
async def test_session_driven_through_the_api_client() -> None:
    requests: list[tuple[str, str, bytes]] = []
    batches = [
        [_recommendation("Heat", 949, 1995)],
        [_recommendation("Thief", 11524, 1981)],
    ]

    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append((request.method, request.url.path, request.content))
        if request.url.path.endswith("/recommendations"):
            return httpx.Response(200, json=batches.pop(0))
        return httpx.Response(200, json={"success": True})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://reelpicks.test"
    ) as http_client:
        client = ReelPicksApiClient(http_client)
        session = client.session_for("u1", revert_on_failure=False)
        session.seed_preferences(liked_ids=[949])

        await session.load_more()
        await session.load_more()
        await session.toggle_dislike(session.recommendations[0])

    assert [item.title for item in session.recommendations] == ["Heat", "Thief"]
    second_body = json.loads(requests[1][2])
    assert second_body["previousRecommendations"] == [
        {"title": "Heat", "year": 1995, "category": "movie"}
    ]
    assert [(method, path) for method, path, _ in requests[2:]] == [
        ("PUT", "/api/users/u1/dislikes/949"),
        ("DELETE", "/api/users/u1/likes/949"),
    ]
    assert session.state.liked_keys == set()
    assert session.state.disliked_keys == {"949"}
    assert session.state.error is None


@pytest.mark.anyio("asyncio")
async def test_session_reverts_failed_toggles_when_configured(monkeypatch) -> None:
    monkeypatch.setattr(
        app.client,
        "get_settings",
        lambda: Settings(_env_file=None, REVERT_ON_MUTATION_FAILURE=True),
    )

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"detail": "database locked"})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://reelpicks.test"
    ) as http_client:
        session = ReelPicksApiClient(http_client).session_for("u1")
        item = EnrichedRecommendation.model_validate(_recommendation("Heat", 949, 1995))
        await session.toggle_like(item)

    assert not session.is_liked(item)
    assert "database locked" in session.state.error


@pytest.mark.anyio("asyncio")
async def test_load_more_surfaces_transport_and_server_errors() -> None:
    responses = [
        httpx.Response(200, json=[_recommendation("Heat", 949, 1995)]),
        httpx.Response(500, json={"detail": "Internal Server Error"}),
        None,
    ]

    async def handler(request: httpx.Request) -> httpx.Response:
        response = responses.pop(0)
        if response is None:
            raise httpx.ConnectError("connection refused", request=request)
        return response

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://reelpicks.test"
    ) as http_client:
        session = ReelPicksApiClient(http_client).session_for("u1", revert_on_failure=False)

        await session.load_more()
        assert await session.load_more() == []
        assert "Internal Server Error" in session.state.error
        assert await session.load_more() == []

    assert "connection refused" in session.state.error
    assert [item.title for item in session.recommendations] == ["Heat"]
    assert session.state.loading is False
