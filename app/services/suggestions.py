"""Shared prompt construction and response parsing for suggestion providers."""

from __future__ import annotations

import json
import logging
from typing import Any, ClassVar, Protocol, Sequence

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import SuggestionProviderError
from ..models import RecommendationStub, TasteProfile, TitleKey
from ..utils import extract_json_object

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are a movie and TV series recommendation expert. Your PRIMARY DUTY is to analyze the user's viewing history and preferences to make PERSONALIZED recommendations.

CRITICAL RULES:
- The user's liked titles and favorite actors/directors are your guide; follow those patterns closely.
- For each recommendation explain exactly which of their preferences it matches.
- Look for shared actors, directors, genres, themes, tones or storytelling styles.
- If the user likes an actor or director, prioritise other work by that person.
- If the user likes specific genres, heavily favour those genres.

QUALITY CONTROL:
- Recommend well-rated, critically acclaimed content that matches their taste.
{adult_rule}- NEVER recommend anything in previousRecommendations, previouslyLikedMovies, previouslyLikedSeries or dislikedContent.
- Return exactly {count} recommendations.
- Respond with a single JSON object and no commentary outside JSON."""

USER_PROMPT_TEMPLATE = """The following is the user's taste profile. It has already been cleaned; do not transform it.

==================== USER DATA ====================
{profile_json}
===================================================

EXCLUSION RULES
Before recommending ANY title, reject it if it appears (same title, year and category) in
previouslyLikedMovies, previouslyLikedSeries, dislikedContent or previousRecommendations.
{adult_rule}The user has explicitly DISLIKED everything in dislikedContent; never recommend those titles.

RECOMMENDATION GUIDELINES
Recommend EXACTLY {count} NEW titles: {movie_count} movies and {series_count} series.
{cold_start_rule}Each reason must be specific: name the matching genres, actors or directors and cite the liked
titles (title and year) it connects to, explaining the tonal or thematic similarity.

Respond strictly with JSON following this structure:
{{
  "recommendations": [
    {{
      "title": "Title",
      "category": "movie",
      "releasedYear": 2024,
      "reason": "why it fits this user",
      "rating": 8.1
    }}
  ]
}}
"category" must be "movie" or "series". "rating" is the title's review-aggregator score out of 10 when known.
"""


class SuggestionProvider(Protocol):
    """Anything able to turn a taste profile into recommendation stubs."""

    name: str

    async def suggest(
        self,
        profile: TasteProfile,
        exclusions: Sequence[TitleKey],
        *,
        count: int,
    ) -> list[RecommendationStub]: ...


def split_batch(count: int) -> tuple[int, int]:
    """Return the (movies, series) split requested for a batch."""

    movies = (count + 1) // 2
    return movies, count - movies


def build_system_prompt(profile: TasteProfile, *, count: int) -> str:
    adult_rule = "- Exclude adult content (NC-17, XXX, etc.).\n" if profile.exclude_adult else ""
    return SYSTEM_PROMPT_TEMPLATE.format(adult_rule=adult_rule, count=count)


def build_user_prompt(
    profile: TasteProfile, exclusions: Sequence[TitleKey], *, count: int
) -> str:
    clean_data = {
        "previouslyLikedMovies": [
            {"title": item.title, "year": item.year} for item in profile.liked_movies
        ],
        "previouslyLikedSeries": [
            {"title": item.title, "year": item.year} for item in profile.liked_series
        ],
        "dislikedContent": [
            {"title": item.title, "year": item.year, "category": item.category}
            for item in profile.disliked_content
        ],
        "previousRecommendations": [
            {"title": item.title, "year": item.year, "category": item.category}
            for item in exclusions
        ],
        "favoriteActors": list(profile.favorite_actors),
        "favoriteDirectors": list(profile.favorite_directors),
        "genres": list(profile.genres),
        "excludeAdult": profile.exclude_adult,
    }
    movie_count, series_count = split_batch(count)
    adult_rule = "Reject adult content.\n" if profile.exclude_adult else ""
    cold_start_rule = (
        "The user has not recorded any preferences yet: pick widely acclaimed, popular\n"
        "titles across varied genres and say so in each reason.\n"
        if profile.is_empty()
        else ""
    )
    return USER_PROMPT_TEMPLATE.format(
        profile_json=json.dumps(clean_data, indent=2, ensure_ascii=False),
        adult_rule=adult_rule,
        cold_start_rule=cold_start_rule,
        count=count,
        movie_count=movie_count,
        series_count=series_count,
    )


def parse_suggestions(provider: str, content: str) -> list[RecommendationStub]:
    """Parse a model response into stubs, dropping malformed entries."""

    try:
        parsed = extract_json_object(content)
    except ValueError as exc:
        raise SuggestionProviderError(provider, str(exc)) from exc

    raw_items: list[Any] = []
    if isinstance(parsed, dict):
        candidate = parsed.get("recommendations")
        if candidate is None:
            candidate = parsed.get("items")
        if isinstance(candidate, list):
            raw_items = candidate

    stubs: list[RecommendationStub] = []
    for entry in raw_items:
        if not isinstance(entry, dict):
            continue
        try:
            stubs.append(RecommendationStub.model_validate(entry))
        except ValidationError as exc:
            logger.debug("Dropping malformed suggestion from %s: %s", provider, exc)

    if not stubs:
        raise SuggestionProviderError(provider, "Model returned no usable recommendations")
    return stubs


class LLMSuggestionProvider:
    """Base class for language-model backed suggestion providers."""

    name: ClassVar[str] = "llm"
    temperature: ClassVar[float] = 0.9

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        api_key: str | None = None,
        model: str | None = None,
    ):
        self._settings = settings
        self._client = http_client
        self._api_key = api_key or settings.provider_api_key(self.name)
        self._model = model or getattr(settings, f"{self.name}_model", "")

    @property
    def model(self) -> str:
        return self._model

    async def suggest(
        self,
        profile: TasteProfile,
        exclusions: Sequence[TitleKey],
        *,
        count: int,
    ) -> list[RecommendationStub]:
        """Request ``count`` suggestions for the profile, avoiding ``exclusions``."""

        if not self._api_key:
            raise SuggestionProviderError(self.name, "API key is not configured")

        system_prompt = build_system_prompt(profile, count=count)
        user_prompt = build_user_prompt(profile, exclusions, count=count)
        try:
            content = await self._complete(system_prompt, user_prompt, count=count)
        except httpx.HTTPError as exc:
            raise SuggestionProviderError(self.name, f"transport error: {exc}") from exc
        return parse_suggestions(self.name, content)

    async def _complete(self, system_prompt: str, user_prompt: str, *, count: int) -> str:
        raise NotImplementedError

    @staticmethod
    def _estimate_token_budget(count: int) -> int:
        return max(2000, min(12000, 900 + int(count) * 150))

    def _check_response(self, response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            raise SuggestionProviderError(
                self.name, f"HTTP {response.status_code}: {response.text[:500]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise SuggestionProviderError(self.name, "invalid JSON response") from exc
        if not isinstance(data, dict):
            raise SuggestionProviderError(self.name, "unexpected response payload")
        return data


class ChatCompletionsProvider(LLMSuggestionProvider):
    """Provider speaking the OpenAI-style ``/chat/completions`` protocol."""

    token_limit_field: ClassVar[str] = "max_tokens"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _complete(self, system_prompt: str, user_prompt: str, *, count: int) -> str:
        payload = {
            "model": self._model,
            "temperature": self.temperature,
            self.token_limit_field: self._estimate_token_budget(count),
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        response = await self._client.post(
            "/chat/completions", json=payload, headers=self._headers()
        )
        data = self._check_response(response)

        choices = data.get("choices") or []
        if not choices:
            raise SuggestionProviderError(self.name, "Model returned no choices")
        message = choices[0].get("message") or {}
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise SuggestionProviderError(self.name, "Model response missing content")
        return content
