"""
VANTAGE Data Source Interfaces

Abstract read boundary to the external data store. The core never talks to
the database directly; it receives one of these and gets back plain row
dicts keyed by the upstream column names.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from vantage.core.models import UniverseSnapshot

Row = Dict[str, Any]


class EngineDataSource(ABC):
    """Read-only access to engine trades, positions and equity."""

    @abstractmethod
    async def list_engine_versions(self) -> List[Row]:
        """All engine identities, newest first."""
        pass

    # --- PRIMARY (live) ---

    @abstractmethod
    async def fetch_live_trades(self, engine_version: str) -> List[Row]:
        pass

    @abstractmethod
    async def fetch_live_positions(self, strategy: str, engine_version: Optional[str] = None) -> List[Row]:
        pass

    @abstractmethod
    async def fetch_live_snapshots(self, strategy: str, limit: int) -> List[Row]:
        """Most recent `limit` snapshots, returned oldest first."""
        pass

    @abstractmethod
    async def fetch_live_closed_pnl(self, strategy: str) -> List[Row]:
        """realized_pnl_dollars of every closed live trade for a strategy."""
        pass

    # --- SHADOW stock ---

    @abstractmethod
    async def fetch_shadow_trades(self, engine_key: str, engine_version: str, run_mode: str) -> List[Row]:
        pass

    @abstractmethod
    async def fetch_shadow_portfolio(self, engine_key: str, engine_version: str, run_mode: str) -> Optional[Row]:
        """The single latest portfolio row, or None."""
        pass

    # --- SHADOW crypto ---

    @abstractmethod
    async def fetch_crypto_trades(self, engine_key: str, engine_version: str) -> List[Row]:
        pass

    @abstractmethod
    async def fetch_crypto_positions(self, engine_key: str, engine_version: str) -> List[Row]:
        pass

    @abstractmethod
    async def fetch_crypto_equity(self, engine_key: str, engine_version: str) -> List[Row]:
        """Equity history, oldest first."""
        pass

    # --- Engine parameters ---

    @abstractmethod
    async def fetch_promoted_tickers(self, engine_version: str) -> List[Row]:
        """Promoted ticker rows for an engine, highest signal_count first."""
        pass

    @abstractmethod
    async def fetch_scalp_config(self, engine_version: str) -> Optional[Row]:
        """The scalp_engine_config row for an engine, or None."""
        pass


class ResearchDataSource(ABC):
    """Read-only access to backtest statistics, signals and variant runs."""

    @abstractmethod
    async def fetch_ticker_stats(self, engine_version: str, horizon: Optional[str]) -> List[Row]:
        pass

    @abstractmethod
    async def fetch_signal_confidence(self, symbols: Sequence[str], since: datetime) -> List[Row]:
        """symbol/confidence_score rows created at or after `since`."""
        pass

    @abstractmethod
    async def fetch_variant_runs(self) -> List[Row]:
        """Raw variant run rows, newest first."""
        pass

    @abstractmethod
    async def fetch_variant_aggregate(self) -> List[Row]:
        """Per filter_variant / engine_version averages."""
        pass

    @abstractmethod
    async def fetch_comparison_results(
        self,
        timeframe: Optional[str] = None,
        versions: Optional[Sequence[str]] = None,
        ticker: Optional[str] = None,
    ) -> List[Row]:
        pass


class UniverseStore(ABC):
    """Named universe storage with compare-and-swap writes."""

    @abstractmethod
    async def read_universe(self, name: str) -> Optional[UniverseSnapshot]:
        """Current contents and version, or None if the universe does not exist."""
        pass

    @abstractmethod
    async def write_universe(self, name: str, tickers: List[str], expected_version: int) -> bool:
        """
        Replace the ticker list if the stored version still equals
        `expected_version`. Returns False when another writer got there first.
        """
        pass
