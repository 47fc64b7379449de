"""Client for The Movie Database (TMDB) search and browse endpoints."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Literal

import httpx

from ..config import Settings
from ..errors import ResolutionFailure
from ..genres import genre_names
from ..models import CatalogMatch, ContentType, PeoplePage, PersonMatch, SearchPage

logger = logging.getLogger(__name__)

IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"
MIN_QUERY_LENGTH = 2

_MEDIA_SEGMENT: dict[str, str] = {"movie": "movie", "series": "tv"}
_YEAR_PARAM: dict[str, str] = {
    "movie": "primary_release_year",
    "series": "first_air_date_year",
}


def _media_segment(category: ContentType) -> str:
    try:
        return _MEDIA_SEGMENT[category]
    except KeyError:
        raise ValueError(f"Unsupported content type: {category}") from None


class TMDBClient:
    """Catalog search capability backed by TMDB's v3 API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.has_tmdb_credentials:
            raise ValueError("TMDB credentials are required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client

    async def search(
        self,
        query: str,
        category: ContentType,
        *,
        year_hint: int | None = None,
        page: int = 1,
    ) -> SearchPage:
        """Search movies or series by title, optionally scoped to a year."""

        cleaned = (query or "").strip()
        if len(cleaned) < MIN_QUERY_LENGTH:
            return SearchPage(page=1, results=[], total_pages=0)

        params: dict[str, Any] = {
            "query": cleaned,
            "include_adult": self._include_adult(),
            "language": "en-US",
            "page": max(1, page),
        }
        if year_hint:
            params[_YEAR_PARAM[category]] = year_hint

        payload = await self._get(f"/search/{_media_segment(category)}", params)
        return self._to_page(payload, category)

    async def discover(
        self,
        category: ContentType,
        *,
        genre_ids: Iterable[int] = (),
        min_rating: float | None = None,
        year: int | None = None,
        page: int = 1,
    ) -> SearchPage:
        """Browse the catalog filtered by genre, rating and year."""

        params: dict[str, Any] = {
            "include_adult": self._include_adult(),
            "language": "en-US",
            "sort_by": "popularity.desc",
            "page": max(1, page),
        }
        ids = [str(genre_id) for genre_id in genre_ids]
        if ids:
            params["with_genres"] = ",".join(ids)
        if min_rating is not None:
            params["vote_average.gte"] = min_rating
        if year:
            params[_YEAR_PARAM[category]] = year

        payload = await self._get(f"/discover/{_media_segment(category)}", params)
        return self._to_page(payload, category)

    async def trending(
        self, category: ContentType, *, window: Literal["day", "week"] = "week"
    ) -> SearchPage:
        """Return the trending titles for the given time window."""

        if window not in ("day", "week"):
            raise ValueError("window must be 'day' or 'week'")
        payload = await self._get(
            f"/trending/{_media_segment(category)}/{window}", {"language": "en-US"}
        )
        return self._to_page(payload, category)

    async def search_people(self, query: str, *, page: int = 1) -> PeoplePage:
        """Search actors and directors by name."""

        cleaned = (query or "").strip()
        if len(cleaned) < MIN_QUERY_LENGTH:
            return PeoplePage(page=1, results=[], total_pages=0)

        params: dict[str, Any] = {
            "query": cleaned,
            "include_adult": self._include_adult(),
            "language": "en-US",
            "page": max(1, page),
        }
        payload = await self._get("/search/person", params)
        people: list[PersonMatch] = []
        for record in payload.get("results") or []:
            if not isinstance(record, dict):
                continue
            person = self.to_person_match(record)
            if person is not None:
                people.append(person)
        return PeoplePage(
            page=int(payload.get("page") or 1),
            results=people,
            total_pages=int(payload.get("total_pages") or 0),
        )

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._settings.tmdb_access_token:
            headers["Authorization"] = f"Bearer {self._settings.tmdb_access_token}"
        else:
            params = {**params, "api_key": self._settings.tmdb_api_key}

        try:
            response = await self._client.get(path, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise ResolutionFailure(f"TMDB request to {path} failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning("TMDB request to %s failed: %s", path, response.text)
            raise ResolutionFailure(
                f"TMDB request to {path} returned HTTP {response.status_code}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ResolutionFailure(f"TMDB returned invalid JSON for {path}") from exc
        if not isinstance(data, dict):
            raise ResolutionFailure(f"TMDB returned an unexpected payload for {path}")
        return data

    def _include_adult(self) -> str:
        return "true" if self._settings.include_adult else "false"

    @classmethod
    def _to_page(cls, payload: dict[str, Any], category: ContentType) -> SearchPage:
        results: list[CatalogMatch] = []
        for record in payload.get("results") or []:
            if not isinstance(record, dict):
                continue
            match = cls.to_catalog_match(record, category)
            if match is not None:
                results.append(match)
        return SearchPage(
            page=int(payload.get("page") or 1),
            results=results,
            total_pages=int(payload.get("total_pages") or 0),
        )

    @classmethod
    def to_catalog_match(
        cls, record: dict[str, Any], category: ContentType
    ) -> CatalogMatch | None:
        """Map a raw TMDB movie or TV record into a ``CatalogMatch``."""

        raw_id = record.get("id")
        if raw_id is None:
            return None
        try:
            tmdb_id = int(raw_id)
        except (TypeError, ValueError):
            return None

        genre_ids = [
            int(value)
            for value in record.get("genre_ids") or []
            if isinstance(value, int) or str(value).isdigit()
        ]
        rating = record.get("vote_average")
        return CatalogMatch(
            id=tmdb_id,
            title=record.get("title") or record.get("name"),
            category=category,
            poster_url=cls._build_image_url(record.get("poster_path")),
            backdrop_url=cls._build_image_url(record.get("backdrop_path")),
            overview_text=record.get("overview") or None,
            aggregate_rating=float(rating) if isinstance(rating, (int, float)) else None,
            release_date=record.get("release_date") or record.get("first_air_date") or None,
            genre_ids=genre_ids,
            genre_names=genre_names(genre_ids, category),
        )

    @classmethod
    def to_person_match(cls, record: dict[str, Any]) -> PersonMatch | None:
        raw_id = record.get("id")
        name = record.get("name")
        if raw_id is None or not isinstance(name, str) or not name.strip():
            return None
        try:
            person_id = int(raw_id)
        except (TypeError, ValueError):
            return None

        known_for: list[CatalogMatch] = []
        for credit in record.get("known_for") or []:
            if not isinstance(credit, dict):
                continue
            is_series = credit.get("media_type") == "tv" or (
                "media_type" not in credit and bool(credit.get("first_air_date"))
            )
            match = cls.to_catalog_match(credit, "series" if is_series else "movie")
            if match is not None:
                known_for.append(match)

        popularity = record.get("popularity")
        return PersonMatch(
            id=person_id,
            name=name.strip(),
            known_for_department=record.get("known_for_department") or None,
            profile_url=cls._build_image_url(record.get("profile_path")),
            popularity=float(popularity) if isinstance(popularity, (int, float)) else None,
            known_for=known_for,
        )

    @staticmethod
    def _build_image_url(path: object) -> str | None:
        if not isinstance(path, str) or not path:
            return None
        if path.startswith("http"):
            return path
        return f"{IMAGE_BASE_URL}{path}"
