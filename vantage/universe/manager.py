"""
Universe Manager - promote/demote tickers in the live-traded universes.

Each horizon has one universe named performance_<horizon>. Membership is
an uppercase set; duplicates read from storage are dropped with a warning.

Writes are protected twice:
- an asyncio.Lock per universe serializes mutations inside this process
- the store's compare-and-swap on the universe version catches writers in
  other processes; a lost swap re-reads and retries, and a conflict that
  outlasts max_retries is raised as UniverseConflictError

A universe that cannot be read is an error, never an empty list: acting on
a wrong universe is worse than not acting.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from vantage.config.horizons import parse_horizon
from vantage.config.settings import get_settings
from vantage.core.exceptions import UniverseConflictError, UniverseNotFoundError, VantageConfigError
from vantage.core.models import TickerStats, UniverseReview, UniverseSnapshot
from vantage.core.values import normalize_ticker, safe_optional_float
from vantage.storage.base import UniverseStore
from vantage.storage.repositories import ResearchSourceFactory, sql_research_source
from vantage.universe.rules import HorizonLike, classify, ticker_stats_from_row

logger = logging.getLogger(__name__)

UTC = timezone.utc


def dedupe_tickers(tickers: List[str], universe_name: str = "") -> List[str]:
    """Uppercase and de-duplicate, keeping first-seen order."""
    seen = set()
    result = []
    for t in tickers:
        norm = normalize_ticker(t)
        if not norm:
            continue
        if norm in seen:
            logger.warning(f"Duplicate ticker {norm} in universe {universe_name}, dropping")
            continue
        seen.add(norm)
        result.append(norm)
    return result


class UniverseManager:
    """
    Usage:
        manager = UniverseManager(SqlUniverseStore(), TickerStatsLoader())
        await manager.promote("aapl", "swing")   # True, universe changed
        await manager.promote("AAPL", "swing")   # False, already there
    """

    def __init__(
        self,
        store: UniverseStore,
        loader: Optional["TickerStatsLoader"] = None,
        max_retries: Optional[int] = None,
    ):
        self.store = store
        self.loader = loader
        self.max_retries = max_retries if max_retries is not None else get_settings().universe_max_retries
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[name] = lock
        return lock

    async def _read(self, name: str) -> UniverseSnapshot:
        snapshot = await self.store.read_universe(name)
        if snapshot is None:
            logger.error(f"Failed to load universe {name}")
            raise UniverseNotFoundError(name)
        return UniverseSnapshot(
            name=snapshot.name,
            tickers=dedupe_tickers(snapshot.tickers, name),
            version=snapshot.version,
        )

    async def load(self, horizon: HorizonLike) -> List[str]:
        """Current members of a horizon's universe."""
        name = parse_horizon(horizon).universe_name
        snapshot = await self._read(name)
        return snapshot.tickers

    async def _mutate(self, ticker: str, horizon: HorizonLike, add: bool) -> bool:
        name = parse_horizon(horizon).universe_name
        symbol = normalize_ticker(ticker)
        if not symbol:
            raise ValueError("Ticker must not be empty")

        async with self._lock_for(name):
            for attempt in range(1, self.max_retries + 1):
                snapshot = await self._read(name)
                present = symbol in snapshot.tickers

                if add and present:
                    return False
                if not add and not present:
                    return False

                if add:
                    updated = snapshot.tickers + [symbol]
                else:
                    updated = [t for t in snapshot.tickers if t != symbol]

                if await self.store.write_universe(name, updated, snapshot.version):
                    action = "Promoted" if add else "Demoted"
                    logger.info(f"{action} {symbol} {'to' if add else 'from'} {name}")
                    return True

                logger.warning(f"Universe {name} changed under us (attempt {attempt}/{self.max_retries})")

        raise UniverseConflictError(name, self.max_retries)

    async def promote(self, ticker: str, horizon: HorizonLike) -> bool:
        """Add ticker to the horizon's universe. False if it was already there."""
        return await self._mutate(ticker, horizon, add=True)

    async def demote(self, ticker: str, horizon: HorizonLike) -> bool:
        """Remove ticker from the horizon's universe. False if it was not there."""
        return await self._mutate(ticker, horizon, add=False)

    async def review(
        self,
        engine_version: str,
        horizon: HorizonLike,
        ticker: Optional[str] = None,
        min_expectancy: Optional[float] = None,
        unpromoted_sort: str = "expectancy",
    ) -> UniverseReview:
        """Promotion candidates and red flags for one engine version and horizon."""
        if self.loader is None:
            raise VantageConfigError("UniverseManager.review needs a TickerStatsLoader")

        horizon = parse_horizon(horizon)
        stats, members = await asyncio.gather(
            self.loader.load(engine_version, horizon),
            self.load(horizon),
        )
        return classify(
            stats,
            horizon,
            members,
            engine_version=engine_version,
            ticker=ticker,
            min_expectancy=min_expectancy,
            unpromoted_sort=unpromoted_sort,
        )


class TickerStatsLoader:
    """Loads per-ticker stats and enriches them with recent signal confidence."""

    def __init__(
        self,
        source_factory: ResearchSourceFactory = sql_research_source,
        confidence_window_days: Optional[int] = None,
    ):
        self.source_factory = source_factory
        self.confidence_window_days = (
            confidence_window_days
            if confidence_window_days is not None
            else get_settings().confidence_window_days
        )

    async def load(
        self,
        engine_version: str,
        horizon: Optional[HorizonLike] = None,
        as_of: Optional[datetime] = None,
    ) -> List[TickerStats]:
        """Stats for an engine version (and horizon). Fetch errors propagate."""
        horizon_value = parse_horizon(horizon).value if horizon is not None else None
        async with self.source_factory() as source:
            rows = await source.fetch_ticker_stats(engine_version, horizon_value)

        stats = [ticker_stats_from_row(r) for r in rows]
        if not stats:
            return stats

        try:
            return await self._with_confidence(stats, as_of or datetime.now(UTC))
        except Exception as e:
            logger.error(f"Confidence enrichment failed for {engine_version}, returning stats without it: {e}")
            return stats

    async def _with_confidence(self, stats: List[TickerStats], as_of: datetime) -> List[TickerStats]:
        since = as_of - timedelta(days=self.confidence_window_days)
        symbols = sorted({s.ticker for s in stats})
        async with self.source_factory() as source:
            rows = await source.fetch_signal_confidence(symbols, since)

        by_symbol: Dict[str, List[float]] = {}
        for row in rows:
            symbol = normalize_ticker(row.get("symbol"))
            confidence = safe_optional_float(row.get("confidence_score"))
            if not symbol or confidence is None:
                continue
            by_symbol.setdefault(symbol, []).append(confidence)

        for s in stats:
            values = by_symbol.get(s.ticker)
            s.avg_confidence_14d = sum(values) / len(values) if values else None
        return stats
