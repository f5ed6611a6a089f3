"""VANTAGE Universe - promotion rules and universe membership management."""

from vantage.universe.rules import (
    TOP_RESEARCH_LIMIT,
    apply_filters,
    classify,
    filter_by_min_expectancy,
    filter_by_ticker,
    is_promotion_candidate,
    is_red_flag,
    sort_stats,
    ticker_stats_from_row,
)
from vantage.universe.manager import TickerStatsLoader, UniverseManager, dedupe_tickers

__all__ = [
    "TOP_RESEARCH_LIMIT",
    "apply_filters",
    "classify",
    "filter_by_min_expectancy",
    "filter_by_ticker",
    "is_promotion_candidate",
    "is_red_flag",
    "sort_stats",
    "ticker_stats_from_row",
    "TickerStatsLoader",
    "UniverseManager",
    "dedupe_tickers",
]
