"""
Named defaults for the metrics aggregator and variant scorer.

These are passed explicitly into the aggregator and scorer so that no
starting-equity, cap or weight literal lives anywhere else.
"""

from dataclasses import dataclass
from typing import Optional

from vantage.config.settings import Settings, get_settings

# Equity every engine is assumed to start with
STARTING_EQUITY = 100_000.0

# How many closed trades an EngineMetrics carries for display
RECENT_TRADES_LIMIT = 100


@dataclass(frozen=True)
class MetricsConfig:
    """Aggregator configuration."""

    starting_equity: float = STARTING_EQUITY
    recent_trades_limit: int = RECENT_TRADES_LIMIT
    live_snapshot_limit: int = 1000
    live_strategy: str = "SWING"
    compare_crypto_engine_key: str = "CRYPTO_V1_SHADOW"
    compare_crypto_version: str = "v1"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MetricsConfig":
        s = settings or get_settings()
        return cls(
            starting_equity=s.starting_equity,
            recent_trades_limit=s.recent_trades_limit,
            live_snapshot_limit=s.live_snapshot_limit,
            live_strategy=s.live_strategy,
            compare_crypto_engine_key=s.compare_crypto_engine_key,
            compare_crypto_version=s.compare_crypto_version,
        )


@dataclass(frozen=True)
class ScoringWeights:
    """
    Composite variant score weights.

    The trade-count term is min(trades_per_ticker / trade_count_divisor,
    trade_count_cap) so sample size can never outweigh quality.
    """

    win_rate: float = 0.25
    expectancy: float = 0.25
    avg_rr: float = 0.15
    sharpe: float = 0.2
    drawdown: float = 0.1  # Subtracted
    trade_count_divisor: float = 30.0
    trade_count_cap: float = 0.05

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ScoringWeights":
        s = settings or get_settings()
        return cls(
            win_rate=s.score_weight_win_rate,
            expectancy=s.score_weight_expectancy,
            avg_rr=s.score_weight_avg_rr,
            sharpe=s.score_weight_sharpe,
            drawdown=s.score_weight_drawdown,
            trade_count_divisor=s.score_trade_count_divisor,
            trade_count_cap=s.score_trade_count_cap,
        )


DEFAULT_METRICS_CONFIG = MetricsConfig()
DEFAULT_SCORING_WEIGHTS = ScoringWeights()
