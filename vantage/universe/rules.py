"""
Promotion/Demotion Rules

Pure classification of TickerStats against a horizon's PromotionCriteria.
Nothing here reads or writes a universe; callers pass the current
membership in.

- Promotion candidate: NOT in the universe and clears every threshold.
- Red flag: IN the universe, has enough history, and fails any threshold.
  A red flag is a prompt for review, not an automatic demotion.
"""

import logging
from typing import AbstractSet, Any, Dict, Iterable, List, Optional, Union

from vantage.config.horizons import get_criteria, parse_horizon
from vantage.core.enums import Horizon
from vantage.core.models import PromotionCriteria, TickerStats, UniverseReview
from vantage.core.values import normalize_ticker, safe_float, safe_int, safe_optional_float

logger = logging.getLogger(__name__)

HorizonLike = Union[str, Horizon]

TOP_RESEARCH_LIMIT = 25

SORT_KEYS = ("expectancy", "ticker", "avg_conf")


def ticker_stats_from_row(row: Dict[str, Any]) -> TickerStats:
    """Build TickerStats from an upstream row; bad numbers become 0."""
    expectancy = row.get("expectancy_r", row.get("expectancy"))
    return TickerStats(
        ticker=normalize_ticker(row.get("ticker")),
        trades=safe_int(row.get("trades")),
        win_rate=safe_float(row.get("win_rate")),
        expectancy_r=safe_float(expectancy),
        max_drawdown_pct=safe_float(row.get("max_drawdown_pct")),
        profit_factor=safe_optional_float(row.get("profit_factor")),
        avg_confidence_14d=safe_optional_float(row.get("avg_confidence_14d")),
    )


def meets_criteria(stats: TickerStats, criteria: PromotionCriteria) -> bool:
    """All four thresholds pass."""
    return (
        stats.trades >= criteria.min_trades
        and stats.expectancy_r >= criteria.min_expectancy_r
        and stats.win_rate >= criteria.min_win_rate
        and stats.max_drawdown_pct <= criteria.max_drawdown_pct
    )


def fails_quality(stats: TickerStats, criteria: PromotionCriteria) -> bool:
    """Enough history to judge, and at least one quality threshold fails."""
    return stats.trades >= criteria.min_trades and (
        stats.expectancy_r < criteria.min_expectancy_r
        or stats.win_rate < criteria.min_win_rate
        or stats.max_drawdown_pct > criteria.max_drawdown_pct
    )


def _member_set(universe: Iterable[str]) -> AbstractSet[str]:
    return {normalize_ticker(t) for t in universe}


def is_promotion_candidate(
    stats: TickerStats,
    horizon: HorizonLike,
    universe: Optional[Iterable[str]] = None,
) -> bool:
    """Eligible for promotion and not already promoted. No universe means none promoted."""
    if universe is not None and normalize_ticker(stats.ticker) in _member_set(universe):
        return False
    return meets_criteria(stats, get_criteria(horizon))


def is_red_flag(stats: TickerStats, horizon: HorizonLike, universe: Iterable[str]) -> bool:
    """Promoted, with enough trades, but failing any threshold."""
    if normalize_ticker(stats.ticker) not in _member_set(universe):
        return False
    return fails_quality(stats, get_criteria(horizon))


# =============================================================================
# FILTERS (pure, never mutate input)
# =============================================================================

def filter_by_ticker(rows: Iterable[TickerStats], substring: Optional[str]) -> List[TickerStats]:
    """Case-insensitive ticker substring match. Empty substring keeps all."""
    needle = normalize_ticker(substring)
    if not needle:
        return list(rows)
    return [s for s in rows if needle in normalize_ticker(s.ticker)]


def filter_by_min_expectancy(rows: Iterable[TickerStats], threshold: Optional[float]) -> List[TickerStats]:
    """Keep rows with expectancy >= threshold. None keeps all."""
    if threshold is None:
        return list(rows)
    return [s for s in rows if s.expectancy_r >= threshold]


def apply_filters(
    rows: Iterable[TickerStats],
    ticker: Optional[str] = None,
    min_expectancy: Optional[float] = None,
) -> List[TickerStats]:
    """Ticker substring and minimum expectancy, composed."""
    return filter_by_min_expectancy(filter_by_ticker(rows, ticker), min_expectancy)


def sort_stats(rows: Iterable[TickerStats], key: str = "expectancy") -> List[TickerStats]:
    """
    Sorted copy.

    expectancy: best first; ticker: A-Z; avg_conf: highest 14d confidence
    first, tickers without signals last.
    """
    rows = list(rows)
    if key == "ticker":
        return sorted(rows, key=lambda s: s.ticker)
    if key == "avg_conf":
        return sorted(
            rows,
            key=lambda s: (s.avg_confidence_14d is None, -(s.avg_confidence_14d or 0.0)),
        )
    if key != "expectancy":
        logger.warning(f"Unknown sort key {key!r}, sorting by expectancy")
    return sorted(rows, key=lambda s: s.expectancy_r, reverse=True)


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify(
    stats: Iterable[TickerStats],
    horizon: HorizonLike,
    universe: Iterable[str],
    engine_version: str = "",
    ticker: Optional[str] = None,
    min_expectancy: Optional[float] = None,
    unpromoted_sort: str = "expectancy",
) -> UniverseReview:
    """
    Split ticker stats into the views the universe review needs.

    Every stats row counts as researched. Filters apply to all views.
    """
    horizon = parse_horizon(horizon)
    criteria = get_criteria(horizon)
    members = _member_set(universe)
    rows = list(stats)

    promoted = apply_filters(
        [s for s in rows if normalize_ticker(s.ticker) in members], ticker, min_expectancy
    )
    research = apply_filters(rows, ticker, min_expectancy)
    unpromoted = [s for s in research if normalize_ticker(s.ticker) not in members]

    return UniverseReview(
        horizon=horizon,
        engine_version=engine_version,
        performance=sort_stats(promoted, "expectancy"),
        candidates=[s for s in unpromoted if meets_criteria(s, criteria)],
        red_flags=[s for s in promoted if fails_quality(s, criteria)],
        unpromoted=sort_stats(unpromoted, unpromoted_sort),
        top_research=sort_stats(research, "expectancy")[:TOP_RESEARCH_LIMIT],
    )
