"""
VANTAGE Test Configuration
"""

import pytest
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from vantage.config.metrics_config import MetricsConfig
from vantage.core.enums import AssetClass, RunMode
from vantage.core.models import EngineIdentity, UniverseSnapshot
from vantage.storage.base import EngineDataSource, ResearchDataSource, UniverseStore

UTC = timezone.utc


# --- In-memory data sources ---

class FakeEngineSource(EngineDataSource):
    """Engine rows held in dicts. Versions in `failing` raise on fetch."""

    def __init__(self):
        self.engines: List[dict] = []
        self.live_trades: Dict[str, List[dict]] = {}
        self.live_positions: List[dict] = []
        self.live_snapshots: List[dict] = []
        self.shadow_trades: Dict[str, List[dict]] = {}
        self.shadow_portfolios: Dict[str, dict] = {}
        self.crypto_trades: Dict[str, List[dict]] = {}
        self.crypto_positions: Dict[str, List[dict]] = {}
        self.crypto_equity: Dict[str, List[dict]] = {}
        self.promoted_tickers: Dict[str, List[dict]] = {}
        self.scalp_configs: Dict[str, dict] = {}
        self.fail_params = False
        self.failing: set = set()

    def _check(self, engine_version: str) -> None:
        if engine_version in self.failing:
            raise ConnectionError(f"fetch failed for {engine_version}")

    async def list_engine_versions(self):
        return list(self.engines)

    async def fetch_live_trades(self, engine_version):
        self._check(engine_version)
        return list(self.live_trades.get(engine_version, []))

    async def fetch_live_positions(self, strategy, engine_version=None):
        return [
            p for p in self.live_positions
            if p.get("strategy", strategy) == strategy
            and (engine_version is None or p.get("engine_version") == engine_version)
        ]

    async def fetch_live_snapshots(self, strategy, limit):
        return list(self.live_snapshots)[-limit:]

    async def fetch_live_closed_pnl(self, strategy):
        return [
            {"realized_pnl_dollars": t.get("realized_pnl_dollars")}
            for trades in self.live_trades.values()
            for t in trades
            if t.get("exit_timestamp") is not None
        ]

    async def fetch_shadow_trades(self, engine_key, engine_version, run_mode):
        self._check(engine_version)
        return list(self.shadow_trades.get(engine_version, []))

    async def fetch_shadow_portfolio(self, engine_key, engine_version, run_mode):
        return self.shadow_portfolios.get(engine_version)

    async def fetch_crypto_trades(self, engine_key, engine_version):
        self._check(engine_version)
        return list(self.crypto_trades.get(engine_version, []))

    async def fetch_crypto_positions(self, engine_key, engine_version):
        return list(self.crypto_positions.get(engine_version, []))

    async def fetch_crypto_equity(self, engine_key, engine_version):
        return list(self.crypto_equity.get(engine_version, []))

    async def fetch_promoted_tickers(self, engine_version):
        if self.fail_params:
            raise ConnectionError("promoted_tickers unavailable")
        rows = [
            r for r in self.promoted_tickers.get(engine_version, [])
            if r.get("is_promoted", True)
        ]
        return sorted(rows, key=lambda r: r.get("signal_count") or 0, reverse=True)

    async def fetch_scalp_config(self, engine_version):
        if self.fail_params:
            raise ConnectionError("scalp_engine_config unavailable")
        return self.scalp_configs.get(engine_version)


class FakeResearchSource(ResearchDataSource):
    """Research rows held in lists."""

    def __init__(self):
        self.ticker_stats: List[dict] = []
        self.signals: List[dict] = []
        self.variant_runs: List[dict] = []
        self.variant_aggregate: List[dict] = []
        self.comparison: List[dict] = []
        self.fail_confidence = False

    async def fetch_ticker_stats(self, engine_version, horizon):
        return [
            r for r in self.ticker_stats
            if r.get("engine_version", engine_version) == engine_version
            and (horizon is None or r.get("horizon", horizon) == horizon)
        ]

    async def fetch_signal_confidence(self, symbols, since):
        if self.fail_confidence:
            raise ConnectionError("ai_signals unavailable")
        return [
            s for s in self.signals
            if s["symbol"] in symbols and s["created_at"] >= since
        ]

    async def fetch_variant_runs(self):
        return list(self.variant_runs)

    async def fetch_variant_aggregate(self):
        return list(self.variant_aggregate)

    async def fetch_comparison_results(self, timeframe=None, versions=None, ticker=None):
        rows = self.comparison
        if timeframe:
            rows = [r for r in rows if r["timeframe"] == timeframe]
        if versions:
            rows = [r for r in rows if r["version"] in versions]
        if ticker:
            rows = [r for r in rows if r["ticker"] == ticker.upper()]
        return list(rows)


class MemoryUniverseStore(UniverseStore):
    """Universe storage with the same compare-and-swap contract as the SQL store."""

    def __init__(self, universes: Optional[Dict[str, List[str]]] = None):
        self.universes: Dict[str, UniverseSnapshot] = {
            name: UniverseSnapshot(name=name, tickers=list(tickers), version=0)
            for name, tickers in (universes or {}).items()
        }
        self.writes = 0

    async def read_universe(self, name):
        snap = self.universes.get(name)
        if snap is None:
            return None
        return UniverseSnapshot(name=snap.name, tickers=list(snap.tickers), version=snap.version)

    async def write_universe(self, name, tickers, expected_version):
        snap = self.universes.get(name)
        if snap is None or snap.version != expected_version:
            return False
        self.universes[name] = UniverseSnapshot(name=name, tickers=list(tickers), version=expected_version + 1)
        self.writes += 1
        return True


def source_factory(source):
    """Wrap a fake source in the async-context-manager factory the services expect."""

    @asynccontextmanager
    async def factory():
        yield source

    return factory


# --- Fixtures ---

@pytest.fixture
def engine_source():
    return FakeEngineSource()


@pytest.fixture
def research_source():
    return FakeResearchSource()


@pytest.fixture
def universe_store():
    return MemoryUniverseStore({
        "performance_day": [],
        "performance_swing": ["MSFT", "NVDA"],
        "performance_invest": ["SPY"],
    })


@pytest.fixture
def metrics_config():
    return MetricsConfig(starting_equity=100_000.0, recent_trades_limit=100)


@pytest.fixture
def as_of():
    return datetime(2024, 1, 2, 12, 0, tzinfo=UTC)


@pytest.fixture
def live_identity():
    return EngineIdentity(engine_key="SWING", engine_version="V6.0", run_mode=RunMode.PRIMARY)


@pytest.fixture
def shadow_identity():
    return EngineIdentity(engine_key="SWING", engine_version="V6.1", run_mode=RunMode.SHADOW)


@pytest.fixture
def crypto_identity():
    return EngineIdentity(
        engine_key="CRYPTO",
        engine_version="C1.0",
        run_mode=RunMode.SHADOW,
        asset_class=AssetClass.CRYPTO,
    )


@pytest.fixture
def as_factory():
    """source -> async context manager factory."""
    return source_factory


@pytest.fixture
def make_store():
    """Build a MemoryUniverseStore from {name: tickers}."""
    return MemoryUniverseStore
