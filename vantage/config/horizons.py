"""
Horizon Configuration - promotion thresholds per trading horizon.

Each horizon is an independent rule set over the same TickerStats shape:
- day: many trades over a year of 5m bars, tight drawdown tolerance
- swing: fewer trades over 2 years of 4h bars
- invest: very few trades over 5 years of daily bars, low expectancy bar
"""

from typing import Dict, Union

from vantage.core.enums import Horizon
from vantage.core.exceptions import VantageConfigError
from vantage.core.models import PromotionCriteria


HORIZON_CRITERIA: Dict[Horizon, PromotionCriteria] = {
    Horizon.DAY: PromotionCriteria(
        min_expectancy_r=0.12,
        min_win_rate=0.40,
        min_trades=60,
        max_drawdown_pct=8.0,
    ),
    Horizon.SWING: PromotionCriteria(
        min_expectancy_r=0.10,  # Filters out marginal performers
        min_win_rate=0.40,
        min_trades=10,
        max_drawdown_pct=12.0,
    ),
    Horizon.INVEST: PromotionCriteria(
        min_expectancy_r=0.01,
        min_win_rate=0.50,
        min_trades=10,
        max_drawdown_pct=15.0,  # Long holds ride deeper dips
    ),
}


def parse_horizon(value: Union[str, Horizon]) -> Horizon:
    """Accept a Horizon or its string value (case-insensitive)."""
    if isinstance(value, Horizon):
        return value
    try:
        return Horizon(str(value).strip().lower())
    except ValueError:
        raise VantageConfigError(f"Unknown horizon: {value!r}") from None


def get_criteria(horizon: Union[str, Horizon]) -> PromotionCriteria:
    """Promotion criteria for a horizon."""
    return HORIZON_CRITERIA[parse_horizon(horizon)]
