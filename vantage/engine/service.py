"""
EngineMetricsService - metrics-by-engine query.

Lists engine identities, loads each one through its record shape and
aggregates. Engines are independent, so they are fetched concurrently;
one broken engine is logged and skipped instead of failing the whole run.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, AsyncGenerator, Awaitable, Callable, List, Optional

from vantage.config.metrics_config import MetricsConfig
from vantage.core.models import EngineIdentity, EngineMetrics, JournalTotals, PerformanceComparison
from vantage.core.values import safe_float
from vantage.engine.metrics import MetricsAggregator, clean_equity_curve, compute_journal_totals
from vantage.engine.normalizer import (
    LiveStockNormalizer,
    ShadowCryptoNormalizer,
    identity_from_row,
    normalizer_for,
)
from vantage.engine.params import load_engine_params
from vantage.engine.performance import compare_curves
from vantage.storage.base import EngineDataSource, Row
from vantage.storage.database import get_async_session
from vantage.storage.repositories import SqlEngineDataSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[], AsyncContextManager[EngineDataSource]]


@asynccontextmanager
async def sql_engine_source() -> AsyncGenerator[EngineDataSource, None]:
    """One session-backed data source per unit of work."""
    async with get_async_session() as session:
        yield SqlEngineDataSource(session)


class EngineMetricsService:
    """
    Usage:
        service = EngineMetricsService()
        metrics = await service.all_metrics()
    """

    def __init__(
        self,
        source_factory: SourceFactory = sql_engine_source,
        config: Optional[MetricsConfig] = None,
        max_concurrency: int = 8,
    ):
        self.source_factory = source_factory
        self.config = config or MetricsConfig.from_settings()
        self.aggregator = MetricsAggregator(self.config)
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def list_identities(self) -> List[EngineIdentity]:
        """All engine identities. A failure here is fatal for the query."""
        async with self.source_factory() as source:
            rows = await source.list_engine_versions()

        identities = []
        for row in rows:
            try:
                identities.append(identity_from_row(row))
            except ValueError as e:
                logger.error(f"Skipping engine row {row.get('engine_version')!r}: {e}")
        return identities

    async def metrics_for(self, identity: EngineIdentity, as_of: Optional[datetime] = None) -> EngineMetrics:
        """Load and aggregate a single engine. Fetch errors propagate."""
        normalizer = normalizer_for(identity, self.config)
        async with self._semaphore:
            async with self.source_factory() as source:
                dataset = await normalizer.load(source, identity)
                params = await load_engine_params(source, identity)
        metrics = self.aggregator.aggregate(dataset, as_of=as_of)
        metrics.engine_params = params
        return metrics

    async def _safe_metrics_for(
        self,
        identity: EngineIdentity,
        as_of: Optional[datetime],
        include_failed: bool,
    ) -> Optional[EngineMetrics]:
        try:
            return await self.metrics_for(identity, as_of=as_of)
        except Exception as e:
            logger.error(
                f"Metrics fetch failed for {identity.engine_key}/{identity.engine_version} "
                f"({identity.run_mode.value}): {e}",
                exc_info=True,
            )
            return self.aggregator.empty(identity) if include_failed else None

    async def all_metrics(
        self,
        as_of: Optional[datetime] = None,
        include_failed: bool = False,
    ) -> List[EngineMetrics]:
        """
        Metrics for every engine, in identity order.

        Engines whose fetch fails are dropped, or returned zeroed when
        include_failed is set.
        """
        identities = await self.list_identities()
        results = await asyncio.gather(
            *(self._safe_metrics_for(i, as_of, include_failed) for i in identities)
        )
        return [m for m in results if m is not None]

    async def journal_totals(self) -> JournalTotals:
        """Live journal totals for the configured strategy."""
        async with self.source_factory() as source:
            closed = await source.fetch_live_closed_pnl(self.config.live_strategy)
            positions = await source.fetch_live_positions(self.config.live_strategy)
        return compute_journal_totals(closed, positions, self.config)

    async def _rows_or_empty(self, label: str, fetch: Callable[[], Awaitable[List[Row]]]) -> List[Row]:
        try:
            return await fetch()
        except Exception as e:
            logger.error(f"Performance compare: {label} fetch failed: {e}")
            return []

    async def performance_comparison(
        self,
        crypto_engine_key: Optional[str] = None,
        crypto_version: Optional[str] = None,
    ) -> PerformanceComparison:
        """
        Crypto shadow equity vs. the live stock account.

        A side whose data cannot be read is compared as an empty curve.
        """
        key = crypto_engine_key or self.config.compare_crypto_engine_key
        version = crypto_version or self.config.compare_crypto_version
        crypto = ShadowCryptoNormalizer(self.config)
        live = LiveStockNormalizer(self.config)

        async with self.source_factory() as source:
            crypto_equity = await self._rows_or_empty(
                "crypto equity", lambda: source.fetch_crypto_equity(key, version)
            )
            crypto_trades = await self._rows_or_empty(
                "crypto trades", lambda: source.fetch_crypto_trades(key, version)
            )
            stock_equity = await self._rows_or_empty(
                "stock equity",
                lambda: source.fetch_live_snapshots(self.config.live_strategy, self.config.live_snapshot_limit),
            )
            stock_closed = await self._rows_or_empty(
                "stock trades", lambda: source.fetch_live_closed_pnl(self.config.live_strategy)
            )

        crypto_pnls = [t.realized_pnl_dollars for t in crypto.normalize_trades(crypto_trades) if t.is_closed]
        stock_pnls = [safe_float(r.get("realized_pnl_dollars")) for r in stock_closed]

        return compare_curves(
            clean_equity_curve(crypto.normalize_snapshots(crypto_equity)),
            clean_equity_curve(live.normalize_snapshots(stock_equity)),
            crypto_pnls,
            stock_pnls,
        )
