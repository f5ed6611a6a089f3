"""
Comparison queries - fetch engine_comparison_results and shape them.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from vantage.comparison.matrix import build_matrix, export_rows, summarize_by_style, ticker_entries
from vantage.core.enums import Horizon
from vantage.storage.repositories import ResearchSourceFactory, sql_research_source

logger = logging.getLogger(__name__)


class ComparisonService:
    """
    Usage:
        service = ComparisonService()
        grid = await service.matrix(timeframe="swing")
    """

    def __init__(self, source_factory: ResearchSourceFactory = sql_research_source):
        self.source_factory = source_factory

    async def _fetch(
        self,
        timeframe: Optional[str] = None,
        versions: Optional[Sequence[str]] = None,
        ticker: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        async with self.source_factory() as source:
            return await source.fetch_comparison_results(timeframe=timeframe, versions=versions, ticker=ticker)

    async def matrix(self, timeframe: Optional[str] = None) -> Dict[str, Any]:
        return build_matrix(await self._fetch(timeframe=timeframe))

    async def summary(self, versions: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """Style summary over the day/swing/invest timeframes."""
        rows = []
        # One query per timeframe keeps each result set small
        for horizon in Horizon:
            rows.extend(await self._fetch(timeframe=horizon.value, versions=versions))
        return summarize_by_style(rows, versions=versions)

    async def ticker(self, symbol: str) -> Dict[str, Any]:
        return ticker_entries(await self._fetch(ticker=symbol), symbol)

    async def export(self, fmt: str = "csv") -> Any:
        return export_rows(await self._fetch(), fmt)
