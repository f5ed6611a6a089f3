"""
Variant Scoring & Ranking

Composite score over the averaged backtest results of each filter variant:

    score = win_rate * 0.25 + expectancy * 0.25 + avg_rr * 0.15
          + sharpe * 0.2 - drawdown * 0.1
          + min(trades_per_ticker / 30, 0.05)

Missing averages count as 0, drawdown included, so a variant with no
drawdown data is neither rewarded nor punished on that term.
"""

import logging
from typing import Iterable, List, Union

from vantage.config.metrics_config import DEFAULT_SCORING_WEIGHTS, ScoringWeights
from vantage.core.models import RankedVariantRow, VariantAggregateRow
from vantage.core.values import safe_float
from vantage.storage.base import Row

logger = logging.getLogger(__name__)

VariantLike = Union[VariantAggregateRow, Row]


def _as_row(row: VariantLike) -> VariantAggregateRow:
    if isinstance(row, VariantAggregateRow):
        return row
    return VariantAggregateRow.from_row(row)


def score_variant(row: VariantLike, weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS) -> float:
    """Composite score for one variant aggregate."""
    row = _as_row(row)
    trade_term = 0.0
    if weights.trade_count_divisor:
        trades = safe_float(row.trades_per_ticker)
        trade_term = min(trades / weights.trade_count_divisor, weights.trade_count_cap)

    return (
        safe_float(row.avg_win_rate) * weights.win_rate
        + safe_float(row.avg_expectancy) * weights.expectancy
        + safe_float(row.avg_avg_rr) * weights.avg_rr
        + safe_float(row.avg_sharpe) * weights.sharpe
        - safe_float(row.avg_drawdown) * weights.drawdown
        + trade_term
    )


def rank_variants(
    rows: Iterable[VariantLike],
    weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS,
) -> List[RankedVariantRow]:
    """
    Score and rank variants.

    Highest score first; equal scores are ordered by filter_variant
    ascending. Ranks start at 1.
    """
    scored = []
    for row in rows:
        base = _as_row(row)
        scored.append(RankedVariantRow(**base.to_dict(), score=score_variant(base, weights)))

    scored.sort(key=lambda r: (-r.score, r.filter_variant))
    for i, r in enumerate(scored, start=1):
        r.rank = i

    if scored:
        logger.debug(f"Ranked {len(scored)} variants, best {scored[0].filter_variant} ({scored[0].score:.4f})")
    return scored


def top_variants(ranked: List[RankedVariantRow], n: int = 3) -> List[RankedVariantRow]:
    """The first n of an already ranked list."""
    return ranked[: max(n, 0)]
