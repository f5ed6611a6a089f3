"""
VANTAGE Core Data Models

Dataclasses for engine identities, canonical trades/snapshots, metrics,
ticker statistics and variant rankings.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .enums import AssetClass, Horizon, RunMode, Side


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if isinstance(value, datetime) else value


@dataclass(frozen=True)
class EngineIdentity:
    """
    One versioned strategy configuration.

    New versions are new identities. Display metadata is carried along for
    callers but does not take part in equality or hashing.
    """

    engine_key: str
    engine_version: str
    run_mode: RunMode
    asset_class: AssetClass = AssetClass.STOCK
    is_enabled: bool = field(default=True, compare=False)
    display_label: Optional[str] = field(default=None, compare=False)
    started_at: Optional[datetime] = field(default=None, compare=False)
    stopped_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def label(self) -> str:
        return self.display_label or self.engine_version

    def to_dict(self) -> dict:
        return {
            "engine_key": self.engine_key,
            "engine_version": self.engine_version,
            "run_mode": self.run_mode.value,
            "asset_class": self.asset_class.value,
            "is_enabled": self.is_enabled,
            "display_label": self.label,
            "started_at": _iso(self.started_at),
            "stopped_at": _iso(self.stopped_at),
        }


@dataclass
class TradeRecord:
    """Canonical trade. PnL fields only mean something once exit_time is set."""

    ticker: str
    side: Side
    entry_price: float
    exit_price: Optional[float]
    entry_time: Optional[datetime]
    exit_time: Optional[datetime]
    realized_pnl_dollars: float = 0.0
    realized_pnl_r: float = 0.0

    @property
    def is_closed(self) -> bool:
        return self.exit_time is not None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["side"] = self.side.value
        d["entry_time"] = _iso(self.entry_time)
        d["exit_time"] = _iso(self.exit_time)
        return d


@dataclass
class PortfolioSnapshot:
    """Equity at a point in time."""

    timestamp: Optional[datetime]
    equity: float

    def to_dict(self) -> dict:
        return {"timestamp": _iso(self.timestamp), "equity": self.equity}


@dataclass
class EngineDataset:
    """Everything the aggregator needs for one engine, in canonical shape."""

    identity: EngineIdentity
    trades: List[TradeRecord] = field(default_factory=list)
    snapshots: List[PortfolioSnapshot] = field(default_factory=list)
    unrealized_pnl: float = 0.0


@dataclass
class EngineMetrics:
    """Performance summary for one engine. Derived, never persisted."""

    identity: EngineIdentity
    total_trades: int = 0
    winners: int = 0
    losers: int = 0
    win_rate: float = 0.0  # Fraction 0-1
    total_pnl: float = 0.0
    todays_pnl: float = 0.0
    avg_r: float = 0.0
    max_drawdown_pct: float = 0.0  # Percentage, 25.0 == 25%
    current_equity: float = 0.0
    net_return_pct: float = 0.0
    equity_curve: List[PortfolioSnapshot] = field(default_factory=list)
    recent_trades: List[TradeRecord] = field(default_factory=list)
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    # Engine-specific extras (promoted tickers, risk limits); {} when none
    engine_params: Dict[str, Any] = field(default_factory=dict)

    @property
    def snapshot_count(self) -> int:
        return len(self.equity_curve)

    @property
    def drawdown_reliable(self) -> bool:
        """False when the curve is too short for drawdown to mean anything."""
        return self.snapshot_count >= 2

    def to_dict(self) -> dict:
        result = self.identity.to_dict()
        result.update({
            "total_trades": self.total_trades,
            "winners": self.winners,
            "losers": self.losers,
            "win_rate": self.win_rate,
            "total_pnl": self.total_pnl,
            "realized_pnl": self.realized_pnl,
            "unrealized_pnl": self.unrealized_pnl,
            "todays_pnl": self.todays_pnl,
            "avg_r": self.avg_r,
            "max_drawdown_pct": self.max_drawdown_pct,
            "drawdown_reliable": self.drawdown_reliable,
            "current_equity": self.current_equity,
            "net_return_pct": self.net_return_pct,
            "equity_curve": [p.to_dict() for p in self.equity_curve],
            "recent_trades": [t.to_dict() for t in self.recent_trades],
            "engine_params": dict(self.engine_params),
        })
        return result


@dataclass
class JournalTotals:
    """Since-inception totals for the live trading journal."""

    starting_equity: float
    current_equity: float
    since_inception_realized_pnl: float
    current_unrealized_pnl: float
    net_return_pct: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CurveMetrics:
    """Return/risk summary of one equity curve plus its closed-trade PnLs."""

    total_return_pct: float = 0.0
    max_drawdown_pct: float = 0.0
    sharpe: float = 0.0  # Annualised over 365 days
    win_rate: float = 0.0  # Fraction 0-1
    profit_factor: float = 0.0  # 0 when there are no losses
    trades: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PerformanceComparison:
    """Crypto shadow vs. live stock performance side by side."""

    crypto_curve: List[PortfolioSnapshot] = field(default_factory=list)
    crypto_metrics: CurveMetrics = field(default_factory=CurveMetrics)
    stock_curve: List[PortfolioSnapshot] = field(default_factory=list)
    stock_metrics: CurveMetrics = field(default_factory=CurveMetrics)
    correlation: float = 0.0  # Of overlapping daily returns

    def to_dict(self) -> dict:
        return {
            "crypto": {
                "equity_curve": [p.to_dict() for p in self.crypto_curve],
                "metrics": self.crypto_metrics.to_dict(),
            },
            "stocks": {
                "equity_curve": [p.to_dict() for p in self.stock_curve],
                "metrics": self.stock_metrics.to_dict(),
            },
            "correlation": self.correlation,
        }


@dataclass
class TickerStats:
    """Per-ticker backtest statistics, produced upstream."""

    ticker: str
    trades: int
    win_rate: float  # Fraction 0-1
    expectancy_r: float
    max_drawdown_pct: float
    profit_factor: Optional[float] = None
    avg_confidence_14d: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PromotionCriteria:
    """Thresholds a ticker must clear to be promoted on a horizon."""

    min_expectancy_r: float
    min_win_rate: float
    min_trades: int
    max_drawdown_pct: float

    def describe(self) -> str:
        return (
            f"expectancy >= {self.min_expectancy_r:.2f}R, "
            f"win% >= {self.min_win_rate * 100:.0f}%, "
            f"trades >= {self.min_trades}, "
            f"DD <= {self.max_drawdown_pct:.1f}%"
        )


@dataclass
class UniverseSnapshot:
    """Stored universe contents plus the version used for compare-and-swap."""

    name: str
    tickers: List[str]
    version: int = 0


@dataclass
class UniverseReview:
    """Classified view of one horizon's ticker stats against its universe."""

    horizon: Horizon
    engine_version: str
    performance: List[TickerStats] = field(default_factory=list)
    candidates: List[TickerStats] = field(default_factory=list)
    red_flags: List[TickerStats] = field(default_factory=list)
    unpromoted: List[TickerStats] = field(default_factory=list)
    top_research: List[TickerStats] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "horizon": self.horizon.value,
            "engine_version": self.engine_version,
            "performance": [s.to_dict() for s in self.performance],
            "candidates": [s.to_dict() for s in self.candidates],
            "red_flags": [s.to_dict() for s in self.red_flags],
            "unpromoted": [s.to_dict() for s in self.unpromoted],
            "top_research": [s.to_dict() for s in self.top_research],
        }


@dataclass
class VariantAggregateRow:
    """Averages for one filter variant / engine pair across tested tickers."""

    filter_variant: str
    engine_version: str
    avg_win_rate: Optional[float] = None
    avg_expectancy: Optional[float] = None
    avg_avg_rr: Optional[float] = None
    avg_total_return: Optional[float] = None
    avg_drawdown: Optional[float] = None
    avg_profit_factor: Optional[float] = None
    avg_sharpe: Optional[float] = None
    signals_per_ticker: Optional[float] = None
    trades_per_ticker: Optional[float] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "VariantAggregateRow":
        return cls(
            filter_variant=str(row.get("filter_variant") or ""),
            engine_version=str(row.get("engine_version") or ""),
            avg_win_rate=row.get("avg_win_rate"),
            avg_expectancy=row.get("avg_expectancy"),
            avg_avg_rr=row.get("avg_avg_rr"),
            avg_total_return=row.get("avg_total_return"),
            avg_drawdown=row.get("avg_drawdown"),
            avg_profit_factor=row.get("avg_profit_factor"),
            avg_sharpe=row.get("avg_sharpe"),
            signals_per_ticker=row.get("signals_per_ticker"),
            trades_per_ticker=row.get("trades_per_ticker"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RankedVariantRow(VariantAggregateRow):
    """Variant aggregate with its composite score and 1-based rank."""

    score: float = 0.0
    rank: int = 0


@dataclass
class ComparisonRow:
    """One engine-version backtest result for a ticker and timeframe."""

    version: str
    ticker: str
    timeframe: str
    pnl: Optional[float] = None
    win_rate: Optional[float] = None
    max_dd: Optional[float] = None
    avg_r: Optional[float] = None
    trades_total: Optional[int] = None
    trades_count: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)
