"""VANTAGE Engine Metrics - record normalization and performance aggregation."""

from vantage.engine.normalizer import (
    LiveStockNormalizer,
    RecordNormalizer,
    ShadowCryptoNormalizer,
    ShadowStockNormalizer,
    identity_from_row,
    normalizer_for,
    translate_side,
)
from vantage.engine.metrics import (
    MetricsAggregator,
    compute_journal_totals,
    max_drawdown_pct,
    recent_closed_trades,
    todays_realized_pnl,
    win_rate,
)
from vantage.engine.params import load_engine_params
from vantage.engine.performance import (
    compare_curves,
    curve_metrics,
    daily_return_correlation,
    profit_factor,
    sharpe_ratio,
)
from vantage.engine.service import EngineMetricsService, sql_engine_source

__all__ = [
    "LiveStockNormalizer",
    "RecordNormalizer",
    "ShadowCryptoNormalizer",
    "ShadowStockNormalizer",
    "identity_from_row",
    "normalizer_for",
    "translate_side",
    "MetricsAggregator",
    "compute_journal_totals",
    "max_drawdown_pct",
    "recent_closed_trades",
    "todays_realized_pnl",
    "win_rate",
    "load_engine_params",
    "compare_curves",
    "curve_metrics",
    "daily_return_correlation",
    "profit_factor",
    "sharpe_ratio",
    "EngineMetricsService",
    "sql_engine_source",
]
