"""High level orchestration for personalised recommendations."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ..errors import SuggestionProviderError, SuggestionUnavailable
from ..models import EnrichedRecommendation, RecommendationStub, TasteProfile, TitleKey
from .enrichment import EnrichmentEngine
from .suggestions import SuggestionProvider

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 6


class RecommendationOrchestrator:
    """Asks suggestion providers in order, then enriches the first good batch.

    Providers are tried strictly one after another; the first one returning
    a non-empty batch wins. When every provider fails the request fails with
    ``SuggestionUnavailable``.
    """

    def __init__(
        self,
        providers: Sequence[SuggestionProvider],
        enrichment: EnrichmentEngine,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        provider_timeout: float | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._providers = tuple(providers)
        self._enrichment = enrichment
        self._batch_size = batch_size
        self._provider_timeout = provider_timeout

    @property
    def provider_names(self) -> tuple[str, ...]:
        return tuple(provider.name for provider in self._providers)

    async def get_recommendations(
        self,
        profile: TasteProfile,
        previously_recommended: Sequence[TitleKey] = (),
    ) -> list[EnrichedRecommendation]:
        """Return an enriched batch of new recommendations for the profile."""

        exclusions = self._snapshot_exclusions(previously_recommended)
        stubs = await self._request_suggestions(profile, exclusions)
        return await self._enrichment.enrich(stubs)

    @staticmethod
    def _snapshot_exclusions(previously_recommended: Sequence[TitleKey]) -> list[TitleKey]:
        """Copy the exclusion list, keeping the first of any repeated title."""

        seen: set[tuple[str, int, str]] = set()
        exclusions: list[TitleKey] = []
        for item in previously_recommended:
            fingerprint = item.fingerprint()
            if fingerprint in seen:
                continue
            seen.add(fingerprint)
            exclusions.append(item.model_copy())
        return exclusions

    async def _request_suggestions(
        self, profile: TasteProfile, exclusions: list[TitleKey]
    ) -> list[RecommendationStub]:
        attempts: list[tuple[str, str]] = []
        for index, provider in enumerate(self._providers):
            try:
                stubs = await self._call_provider(provider, profile, exclusions)
            except asyncio.TimeoutError:
                reason = f"timed out after {self._provider_timeout}s"
            except SuggestionProviderError as exc:
                reason = exc.message
            except Exception as exc:
                logger.exception("Suggestion provider %s raised unexpectedly", provider.name)
                reason = str(exc) or exc.__class__.__name__
            else:
                if stubs:
                    logger.info(
                        "Provider %s returned %d suggestions (%d exclusions)",
                        provider.name,
                        len(stubs),
                        len(exclusions),
                    )
                    return stubs
                reason = "empty suggestion list"

            attempts.append((provider.name, reason))
            if index < len(self._providers) - 1:
                logger.warning(
                    "Suggestion provider %s failed (%s); falling back to %s",
                    provider.name,
                    reason,
                    self._providers[index + 1].name,
                )

        logger.error("All suggestion providers failed: %s", attempts)
        raise SuggestionUnavailable(attempts)

    async def _call_provider(
        self,
        provider: SuggestionProvider,
        profile: TasteProfile,
        exclusions: list[TitleKey],
    ) -> list[RecommendationStub]:
        call = provider.suggest(profile, exclusions, count=self._batch_size)
        if self._provider_timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self._provider_timeout)
