"""Client-side accumulation of recommendation batches for one browsing session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Sequence

from .errors import MissingCatalogMatch, PersistenceMutationFailure, SuggestionUnavailable
from .models import EnrichedRecommendation, PreferenceMetadata, TitleKey
from .services.preferences import PreferenceStore

logger = logging.getLogger(__name__)

RecommendationFetcher = Callable[
    [Sequence[TitleKey]], Awaitable[list[EnrichedRecommendation]]
]


@dataclass
class SessionState:
    """State owned by a single browsing session; never shared."""

    accumulated: list[EnrichedRecommendation] = field(default_factory=list)
    liked_keys: set[str] = field(default_factory=set)
    disliked_keys: set[str] = field(default_factory=set)
    pending_keys: set[str] = field(default_factory=set)
    loading: bool = False
    error: str | None = None


class RecommendationSession:
    """Accumulates "load more" batches and applies like/dislike toggles.

    ``fetch`` receives the titles already shown and returns the next enriched
    batch; ``store`` persists preference changes for ``user_id``.
    """

    def __init__(
        self,
        fetch: RecommendationFetcher,
        store: PreferenceStore,
        user_id: str,
        *,
        state: SessionState | None = None,
        revert_on_failure: bool = False,
    ):
        self._fetch = fetch
        self._store = store
        self._user_id = user_id
        self._revert_on_failure = revert_on_failure
        self.state = state or SessionState()

    @property
    def recommendations(self) -> list[EnrichedRecommendation]:
        return list(self.state.accumulated)

    def seed_preferences(
        self, liked_ids: Iterable[int | str] = (), disliked_ids: Iterable[int | str] = ()
    ) -> None:
        """Initialise the liked/disliked sets from stored preferences."""

        self.state.liked_keys = {str(value) for value in liked_ids}
        self.state.disliked_keys = {str(value) for value in disliked_ids}
        self.state.liked_keys -= self.state.disliked_keys

    def is_liked(self, item: EnrichedRecommendation) -> bool:
        return item.key is not None and item.key in self.state.liked_keys

    def is_disliked(self, item: EnrichedRecommendation) -> bool:
        return item.key is not None and item.key in self.state.disliked_keys

    def is_pending(self, item: EnrichedRecommendation) -> bool:
        return item.key is not None and item.key in self.state.pending_keys

    async def load_more(self) -> list[EnrichedRecommendation]:
        """Fetch the next batch and append it; returns the new items only."""

        if self.state.loading:
            logger.debug("Ignoring load_more while a request is in flight")
            return []

        self.state.loading = True
        self.state.error = None
        exclusions = [item.to_title_key() for item in self.state.accumulated]
        try:
            batch = await self._fetch(exclusions)
        except SuggestionUnavailable as exc:
            logger.warning("Loading more recommendations failed: %s", exc)
            self.state.error = str(exc)
            return []
        finally:
            self.state.loading = False

        self.state.accumulated.extend(batch)
        return list(batch)

    async def toggle_like(self, item: EnrichedRecommendation) -> None:
        key, catalog_id = self._require_match(item)
        if key in self.state.pending_keys:
            return

        state = self.state
        state.pending_keys.add(key)
        snapshot = (set(state.liked_keys), set(state.disliked_keys))
        currently_liked = key in state.liked_keys
        if currently_liked:
            state.liked_keys.discard(key)
        else:
            state.liked_keys.add(key)

        try:
            if currently_liked:
                result = await self._store.remove_like(self._user_id, catalog_id)
                result.raise_for_error()
            else:
                result = await self._store.add_like(
                    self._user_id, catalog_id, PreferenceMetadata.from_recommendation(item)
                )
                result.raise_for_error()
                if key in state.disliked_keys:
                    state.disliked_keys.discard(key)
                    removal = await self._store.remove_dislike(self._user_id, catalog_id)
                    removal.raise_for_error()
        except PersistenceMutationFailure as exc:
            action = "remove" if currently_liked else "add"
            self._record_failure(f"Failed to {action} like for {item.title}: {exc}", snapshot)
        finally:
            state.pending_keys.discard(key)

    async def toggle_dislike(self, item: EnrichedRecommendation) -> None:
        key, catalog_id = self._require_match(item)
        if key in self.state.pending_keys:
            return

        state = self.state
        state.pending_keys.add(key)
        snapshot = (set(state.liked_keys), set(state.disliked_keys))
        currently_disliked = key in state.disliked_keys

        try:
            if currently_disliked:
                result = await self._store.remove_dislike(self._user_id, catalog_id)
                result.raise_for_error()
                state.disliked_keys.discard(key)
            else:
                result = await self._store.add_dislike(
                    self._user_id, catalog_id, PreferenceMetadata.from_recommendation(item)
                )
                result.raise_for_error()
                state.disliked_keys.add(key)
                if key in state.liked_keys:
                    state.liked_keys.discard(key)
                    removal = await self._store.remove_like(self._user_id, catalog_id)
                    removal.raise_for_error()
        except PersistenceMutationFailure as exc:
            action = "remove" if currently_disliked else "add"
            self._record_failure(
                f"Failed to {action} dislike for {item.title}: {exc}", snapshot
            )
        finally:
            state.pending_keys.discard(key)

    def _require_match(self, item: EnrichedRecommendation) -> tuple[str, int]:
        if item.catalog_match is None:
            error = MissingCatalogMatch(item.title)
            self.state.error = str(error)
            raise error
        return str(item.catalog_match.id), item.catalog_match.id

    def _record_failure(self, message: str, snapshot: tuple[set[str], set[str]]) -> None:
        logger.warning(message)
        self.state.error = message
        if self._revert_on_failure:
            self.state.liked_keys, self.state.disliked_keys = snapshot
