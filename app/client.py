"""HTTP client for a deployed ReelPicks service."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Sequence
from urllib.parse import quote

import httpx

from .config import get_settings
from .errors import MutationResult, SuggestionUnavailable
from .models import (
    EnrichedRecommendation,
    PreferenceMetadata,
    StoredPreference,
    TasteProfile,
    TitleKey,
)
from .session import RecommendationFetcher, RecommendationSession

logger = logging.getLogger(__name__)


class ReelPicksApiClient:
    """Recommendation source and preference store backed by the HTTP API."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._client = http_client

    def fetcher_for(
        self, user_id: str, *, taste_profile: TasteProfile | None = None
    ) -> RecommendationFetcher:
        """Bind a user so the result can drive a ``RecommendationSession``."""

        return partial(self.get_recommendations, user_id, taste_profile=taste_profile)

    def session_for(
        self,
        user_id: str,
        *,
        taste_profile: TasteProfile | None = None,
        revert_on_failure: bool | None = None,
    ) -> RecommendationSession:
        """Start a browsing session that fetches and persists through this client."""

        if revert_on_failure is None:
            revert_on_failure = get_settings().revert_on_mutation_failure
        return RecommendationSession(
            self.fetcher_for(user_id, taste_profile=taste_profile),
            self,
            user_id,
            revert_on_failure=revert_on_failure,
        )

    async def get_recommendations(
        self,
        user_id: str,
        previously_recommended: Sequence[TitleKey] = (),
        *,
        taste_profile: TasteProfile | None = None,
    ) -> list[EnrichedRecommendation]:
        body: dict[str, Any] = {
            "previousRecommendations": [
                item.model_dump(mode="json", by_alias=True)
                for item in previously_recommended
            ]
        }
        if taste_profile is not None:
            body["tasteProfile"] = taste_profile.model_dump(mode="json", by_alias=True)

        try:
            response = await self._client.post(
                f"/api/users/{quote(user_id, safe='')}/recommendations", json=body
            )
        except httpx.HTTPError as exc:
            logger.warning("Recommendations request for %s failed: %s", user_id, exc)
            raise SuggestionUnavailable(
                [("remote", str(exc) or exc.__class__.__name__)]
            ) from exc
        if response.status_code >= 500:
            raise SuggestionUnavailable([("remote", self._error_detail(response))])
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, list):
            raise ValueError("Recommendations endpoint returned an unexpected payload")
        return [EnrichedRecommendation.model_validate(entry) for entry in payload]

    async def add_like(
        self, user_id: str, catalog_id: int, metadata: PreferenceMetadata
    ) -> MutationResult:
        return await self._mutate(
            "PUT", self._preference_path(user_id, "likes", catalog_id), metadata
        )

    async def remove_like(self, user_id: str, catalog_id: int) -> MutationResult:
        return await self._mutate(
            "DELETE", self._preference_path(user_id, "likes", catalog_id)
        )

    async def add_dislike(
        self, user_id: str, catalog_id: int, metadata: PreferenceMetadata
    ) -> MutationResult:
        return await self._mutate(
            "PUT", self._preference_path(user_id, "dislikes", catalog_id), metadata
        )

    async def remove_dislike(self, user_id: str, catalog_id: int) -> MutationResult:
        return await self._mutate(
            "DELETE", self._preference_path(user_id, "dislikes", catalog_id)
        )

    async def list_likes(self, user_id: str) -> list[StoredPreference]:
        return await self._list(f"/api/users/{quote(user_id, safe='')}/likes")

    async def list_dislikes(self, user_id: str) -> list[StoredPreference]:
        return await self._list(f"/api/users/{quote(user_id, safe='')}/dislikes")

    async def _list(self, path: str) -> list[StoredPreference]:
        response = await self._client.get(path)
        response.raise_for_status()
        return [StoredPreference.model_validate(entry) for entry in response.json()]

    async def _mutate(
        self, method: str, path: str, metadata: PreferenceMetadata | None = None
    ) -> MutationResult:
        kwargs: dict[str, Any] = {}
        if metadata is not None:
            kwargs["json"] = metadata.model_dump(mode="json", by_alias=True)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Preference mutation %s %s failed: %s", method, path, exc)
            return MutationResult.failure(str(exc) or exc.__class__.__name__)
        if response.status_code >= 400:
            return MutationResult.failure(self._error_detail(response))
        return MutationResult.success()

    @staticmethod
    def _preference_path(user_id: str, kind: str, catalog_id: int) -> str:
        return f"/api/users/{quote(user_id, safe='')}/{kind}/{int(catalog_id)}"

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(payload, dict) and payload.get("detail"):
            return str(payload["detail"])
        return f"HTTP {response.status_code}"
