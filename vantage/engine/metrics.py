"""
Engine Metrics Aggregator

Turns canonical trades plus an equity series into one EngineMetrics.

Key metrics:
- Win/loss counts and win rate (closed trades only)
- Realized + unrealized PnL, and today's realized PnL (UTC calendar date)
- Average R-multiple
- Max drawdown from the equity curve
- Current equity and net return vs. the configured starting equity

Every numeric input is coerced to a safe value; this module never raises
on bad data, it degrades the affected field instead.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

import numpy as np

from vantage.config.metrics_config import DEFAULT_METRICS_CONFIG, MetricsConfig
from vantage.core.models import (
    EngineDataset,
    EngineIdentity,
    EngineMetrics,
    JournalTotals,
    PortfolioSnapshot,
    TradeRecord,
)
from vantage.core.values import safe_float, utc_date_key
from vantage.storage.base import Row

logger = logging.getLogger(__name__)

UTC = timezone.utc


def win_rate(winners: int, total: int) -> float:
    """winners / total as a fraction, 0 when there is nothing to divide."""
    if total <= 0:
        return 0.0
    return winners / total


def clean_equity_curve(snapshots: Iterable[PortfolioSnapshot]) -> List[PortfolioSnapshot]:
    """
    Coerce equity values and clamp negatives to 0.

    Negative equity is an upstream data problem; it is logged, not raised.
    Order is preserved.
    """
    cleaned = []
    for snap in snapshots:
        equity = safe_float(snap.equity)
        if equity < 0:
            logger.warning(f"Negative equity {equity} at {snap.timestamp}, clamping to 0")
            equity = 0.0
        cleaned.append(PortfolioSnapshot(timestamp=snap.timestamp, equity=equity))
    return cleaned


def max_drawdown_pct(equity: Sequence[float]) -> float:
    """
    Largest peak-to-trough decline as a percentage.

    Walks the series in order with a running peak. Fewer than two points
    means there is no drawdown to measure and the result is 0.
    """
    if len(equity) < 2:
        return 0.0

    values = np.asarray([safe_float(v) for v in equity], dtype=float)
    peaks = np.maximum.accumulate(values)
    valid = peaks > 0
    if not valid.any():
        return 0.0

    drawdowns = np.zeros_like(values)
    drawdowns[valid] = (peaks[valid] - values[valid]) / peaks[valid]
    return float(drawdowns.max() * 100)


def todays_realized_pnl(trades: Iterable[TradeRecord], as_of: datetime) -> float:
    """
    Realized PnL of trades that exited on as_of's UTC calendar date.

    Compared by date string, so 23:59:59 and 00:00:01 on consecutive days
    never land in the same bucket.
    """
    today = utc_date_key(as_of)
    return sum(
        safe_float(t.realized_pnl_dollars)
        for t in trades
        if t.exit_time is not None and utc_date_key(t.exit_time) == today
    )


def recent_closed_trades(trades: Iterable[TradeRecord], limit: int) -> List[TradeRecord]:
    """Closed trades, newest exit first; equal exit times keep input order."""
    closed = [t for t in trades if t.exit_time is not None]
    # Stable sort; reverse=True keeps equal exit times in input order
    ordered = sorted(closed, key=lambda t: t.exit_time, reverse=True)
    return ordered[: max(limit, 0)]


class MetricsAggregator:
    """
    Compute EngineMetrics from an EngineDataset.

    Stateless: one instance can be shared across engines and tasks.
    """

    def __init__(self, config: MetricsConfig = DEFAULT_METRICS_CONFIG):
        self.config = config

    def aggregate(self, dataset: EngineDataset, as_of: Optional[datetime] = None) -> EngineMetrics:
        """Build metrics for one engine."""
        as_of = as_of or datetime.now(UTC)
        identity = dataset.identity

        closed = [t for t in dataset.trades if t.exit_time is not None]
        pnls = [safe_float(t.realized_pnl_dollars) for t in closed]
        r_values = [safe_float(t.realized_pnl_r) for t in closed]

        total = len(closed)
        winners = sum(1 for p in pnls if p > 0)
        losers = sum(1 for p in pnls if p < 0)

        realized = float(sum(pnls))
        unrealized = safe_float(dataset.unrealized_pnl)
        avg_r = float(np.mean(r_values)) if r_values else 0.0

        curve = clean_equity_curve(dataset.snapshots)
        if len(curve) < 2:
            logger.debug(
                f"{identity.engine_version}/{identity.run_mode.value}: "
                f"{len(curve)} snapshot(s), drawdown reported as 0"
            )
        drawdown = max_drawdown_pct([p.equity for p in curve])

        starting = self.config.starting_equity
        current_equity = curve[-1].equity if curve else starting
        net_return = (current_equity - starting) / starting * 100 if starting else 0.0

        return EngineMetrics(
            identity=identity,
            total_trades=total,
            winners=winners,
            losers=losers,
            win_rate=win_rate(winners, total),
            total_pnl=realized + unrealized,
            todays_pnl=todays_realized_pnl(closed, as_of),
            avg_r=avg_r,
            max_drawdown_pct=drawdown,
            current_equity=current_equity,
            net_return_pct=net_return,
            equity_curve=curve,
            recent_trades=recent_closed_trades(closed, self.config.recent_trades_limit),
            realized_pnl=realized,
            unrealized_pnl=unrealized,
        )

    def empty(self, identity: EngineIdentity) -> EngineMetrics:
        """Zeroed metrics for an engine whose data could not be loaded."""
        starting = self.config.starting_equity
        return EngineMetrics(identity=identity, current_equity=starting)


def compute_journal_totals(
    closed_rows: Iterable[Row],
    position_rows: Iterable[Row],
    config: MetricsConfig = DEFAULT_METRICS_CONFIG,
) -> JournalTotals:
    """Since-inception totals for the live journal: start + realized + open PnL."""
    realized = sum(safe_float(r.get("realized_pnl_dollars")) for r in closed_rows)
    unrealized = sum(safe_float(r.get("unrealized_pnl_dollars")) for r in position_rows)

    starting = config.starting_equity
    current = starting + realized + unrealized
    net_return = (current - starting) / starting * 100 if starting else 0.0

    return JournalTotals(
        starting_equity=starting,
        current_equity=current,
        since_inception_realized_pnl=realized,
        current_unrealized_pnl=unrealized,
        net_return_pct=net_return,
    )
