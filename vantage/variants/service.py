"""
Variant queries - ranked aggregates and raw run history.
"""

import logging
from typing import List, Optional

from vantage.config.metrics_config import DEFAULT_SCORING_WEIGHTS, ScoringWeights
from vantage.core.models import RankedVariantRow
from vantage.storage.base import Row
from vantage.storage.repositories import ResearchSourceFactory, sql_research_source
from vantage.variants.scoring import rank_variants

logger = logging.getLogger(__name__)


class VariantService:
    """
    Usage:
        service = VariantService()
        ranked = await service.ranked_variants()
    """

    def __init__(
        self,
        source_factory: ResearchSourceFactory = sql_research_source,
        weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS,
    ):
        self.source_factory = source_factory
        self.weights = weights

    async def ranked_variants(self, engine_version: Optional[str] = None) -> List[RankedVariantRow]:
        """Aggregate rows scored and ranked, optionally for one engine version."""
        async with self.source_factory() as source:
            rows = await source.fetch_variant_aggregate()
        if engine_version:
            rows = [r for r in rows if r.get("engine_version") == engine_version]
        return rank_variants(rows, self.weights)

    async def variant_runs(self, filter_variant: Optional[str] = None, limit: Optional[int] = None) -> List[Row]:
        """Raw variant runs, newest first."""
        async with self.source_factory() as source:
            rows = await source.fetch_variant_runs()
        if filter_variant:
            rows = [r for r in rows if r.get("filter_variant") == filter_variant]
        if limit is not None:
            rows = rows[: max(limit, 0)]
        logger.debug(f"Returning {len(rows)} variant runs")
        return rows
