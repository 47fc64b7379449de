"""Concurrent catalog enrichment for recommendation batches."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ..models import CatalogMatch, EnrichedRecommendation, RecommendationStub
from .resolver import ContentResolver

logger = logging.getLogger(__name__)


class EnrichmentEngine:
    """Attach catalog metadata to every stub of a batch."""

    def __init__(self, resolver: ContentResolver):
        self._resolver = resolver

    async def enrich(
        self, stubs: Sequence[RecommendationStub]
    ) -> list[EnrichedRecommendation]:
        """Resolve all stubs concurrently, keeping input order and length.

        A failed lookup only empties the ``catalog_match`` of its own item.
        """

        if not stubs:
            return []

        tasks = [
            asyncio.create_task(
                self._resolver.resolve(stub.title, stub.category, stub.released_year)
            )
            for stub in stubs
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        enriched: list[EnrichedRecommendation] = []
        for stub, result in zip(stubs, results):
            match: CatalogMatch | None = None
            if isinstance(result, BaseException):
                logger.warning("Enrichment failed for %s: %s", stub.title, result)
            else:
                match = result
            enriched.append(EnrichedRecommendation.from_stub(stub, match))

        resolved = sum(1 for item in enriched if item.catalog_match is not None)
        logger.info("Enriched %d/%d recommendations", resolved, len(enriched))
        return enriched
