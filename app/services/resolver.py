"""Resolve suggested titles against the catalog."""

from __future__ import annotations

import logging
from typing import Protocol

from ..models import CatalogMatch, ContentType, SearchPage

logger = logging.getLogger(__name__)


class CatalogSearch(Protocol):
    async def search(
        self,
        query: str,
        category: ContentType,
        *,
        year_hint: int | None = None,
        page: int = 1,
    ) -> SearchPage: ...


class ContentResolver:
    """Looks up a single title and returns its first catalog match.

    Lookups never raise: transport errors, API errors and empty result pages
    all resolve to ``None`` so a batch of enrichments cannot be aborted by a
    single bad title. Without a catalog every lookup resolves to ``None``.
    """

    def __init__(self, catalog: CatalogSearch | None):
        self._catalog = catalog

    async def resolve(
        self, title: str, category: ContentType, year: int | None
    ) -> CatalogMatch | None:
        cleaned = (title or "").strip()
        if not cleaned or self._catalog is None:
            return None

        try:
            page = await self._catalog.search(cleaned, category, year_hint=year, page=1)
        except Exception:
            logger.exception("Catalog lookup failed for %s (%s, %s)", cleaned, category, year)
            return None

        if not page.results:
            logger.debug("No catalog match for %s (%s, %s)", cleaned, category, year)
            return None
        return page.results[0]
