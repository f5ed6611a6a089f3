"""
Equity Curve Comparison

Return/risk metrics for a single equity curve and the correlation of daily
returns between two curves. Used to put the crypto shadow engine next to
the live stock account.

All functions degrade to 0 instead of raising on short or flat input.
"""

from typing import Dict, List, Sequence

import numpy as np

from vantage.core.models import CurveMetrics, PerformanceComparison, PortfolioSnapshot
from vantage.core.values import safe_float, utc_date_key
from vantage.engine.metrics import max_drawdown_pct, win_rate

# Crypto trades around the clock
PERIODS_PER_YEAR = 365


def period_returns(equity: Sequence[float]) -> np.ndarray:
    """Simple returns between consecutive points, skipping non-positive bases."""
    values = np.asarray([safe_float(v) for v in equity], dtype=float)
    if values.size < 2:
        return np.array([])
    prev, curr = values[:-1], values[1:]
    valid = prev > 0
    return (curr[valid] - prev[valid]) / prev[valid]


def sharpe_ratio(equity: Sequence[float], periods_per_year: int = PERIODS_PER_YEAR) -> float:
    """
    Annualised Sharpe of per-period returns (risk-free rate 0).

    Uses the population standard deviation. Zero volatility gives 0.
    """
    returns = period_returns(equity)
    if returns.size == 0:
        return 0.0
    std = float(np.std(returns))
    if std == 0:
        return 0.0
    return float(np.mean(returns)) / std * float(np.sqrt(periods_per_year))


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit / gross loss; 0 when nothing was lost."""
    values = np.asarray([safe_float(p) for p in pnls], dtype=float)
    gross_loss = float(np.abs(values[values < 0]).sum())
    if gross_loss == 0:
        return 0.0
    return float(values[values > 0].sum()) / gross_loss


def curve_metrics(curve: Sequence[PortfolioSnapshot], pnls: Sequence[float]) -> CurveMetrics:
    """Metrics for one curve. An empty curve yields all zeros, trades included."""
    if not curve:
        return CurveMetrics()

    equity = [safe_float(p.equity) for p in curve]
    first, last = equity[0], equity[-1]
    pnl_values = [safe_float(p) for p in pnls]

    return CurveMetrics(
        total_return_pct=(last - first) / first * 100 if first > 0 else 0.0,
        max_drawdown_pct=max_drawdown_pct(equity),
        sharpe=sharpe_ratio(equity),
        win_rate=win_rate(sum(1 for p in pnl_values if p > 0), len(pnl_values)),
        profit_factor=profit_factor(pnl_values),
        trades=len(pnl_values),
    )


def _equity_by_date(curve: Sequence[PortfolioSnapshot]) -> Dict[str, float]:
    # Last snapshot of each UTC day wins
    by_date = {}
    for point in curve:
        key = utc_date_key(point.timestamp)
        if key is not None:
            by_date[key] = safe_float(point.equity)
    return by_date


def daily_return_correlation(a: Sequence[PortfolioSnapshot], b: Sequence[PortfolioSnapshot]) -> float:
    """
    Pearson correlation of day-over-day returns on the dates both curves share.

    Fewer than two usable return pairs, or a flat side, gives 0.
    """
    if len(a) < 2 or len(b) < 2:
        return 0.0

    equity_a = _equity_by_date(a)
    equity_b = _equity_by_date(b)
    dates = sorted(set(equity_a) & set(equity_b))
    if len(dates) < 2:
        return 0.0

    returns_a: List[float] = []
    returns_b: List[float] = []
    for prev, curr in zip(dates, dates[1:]):
        a0, b0 = equity_a[prev], equity_b[prev]
        if a0 > 0 and b0 > 0:
            returns_a.append((equity_a[curr] - a0) / a0)
            returns_b.append((equity_b[curr] - b0) / b0)

    if len(returns_a) < 2:
        return 0.0

    da = np.asarray(returns_a) - np.mean(returns_a)
    db = np.asarray(returns_b) - np.mean(returns_b)
    denom_a = float(np.sum(da * da))
    denom_b = float(np.sum(db * db))
    if denom_a == 0 or denom_b == 0:
        return 0.0
    return float(np.sum(da * db)) / float(np.sqrt(denom_a * denom_b))


def compare_curves(
    crypto_curve: Sequence[PortfolioSnapshot],
    stock_curve: Sequence[PortfolioSnapshot],
    crypto_pnls: Sequence[float],
    stock_pnls: Sequence[float],
) -> PerformanceComparison:
    """Side-by-side metrics for the crypto and stock curves plus their correlation."""
    return PerformanceComparison(
        crypto_curve=list(crypto_curve),
        crypto_metrics=curve_metrics(crypto_curve, crypto_pnls),
        stock_curve=list(stock_curve),
        stock_metrics=curve_metrics(stock_curve, stock_pnls),
        correlation=daily_return_correlation(crypto_curve, stock_curve),
    )
