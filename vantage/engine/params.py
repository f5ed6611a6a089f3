"""
Engine parameter lookup.

Some engine families carry extra configuration worth showing next to their
metrics: SWING engines the tickers currently promoted for them, SCALP
engines their risk limits. Any other engine has no parameters.

A failed lookup never fails the metrics query; the engine just gets {}.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Tuple

from vantage.core.models import EngineIdentity
from vantage.core.values import normalize_ticker
from vantage.storage.base import EngineDataSource

logger = logging.getLogger(__name__)

EngineParams = Dict[str, Any]

SCALP_RISK_FIELDS = (
    "min_stop_distance_r",
    "atr_stop_distance_multiple",
    "max_risk_pct_per_trade",
    "max_total_open_risk_pct",
    "max_positions_per_ticker",
    "max_daily_loss_pct",
    "hard_max_positions",
)


async def swing_params(source: EngineDataSource, identity: EngineIdentity) -> EngineParams:
    """Promoted tickers, most signals first."""
    rows = await source.fetch_promoted_tickers(identity.engine_version)
    tickers = [normalize_ticker(r.get("ticker")) for r in rows]
    return {
        "promoted_tickers": tickers,
        "promoted_ticker_count": len(tickers),
    }


async def scalp_params(source: EngineDataSource, identity: EngineIdentity) -> EngineParams:
    """Risk limits from scalp_engine_config, or {} if the engine has no row."""
    row = await source.fetch_scalp_config(identity.engine_version)
    if not row:
        return {}
    return {name: row.get(name) for name in SCALP_RISK_FIELDS}


# engine_key prefix -> loader
_PARAM_LOADERS: Tuple[Tuple[str, Callable[[EngineDataSource, EngineIdentity], Awaitable[EngineParams]]], ...] = (
    ("SWING", swing_params),
    ("SCALP", scalp_params),
)


async def load_engine_params(source: EngineDataSource, identity: EngineIdentity) -> EngineParams:
    """Parameters for an engine's family, {} when it has none or the lookup fails."""
    key = identity.engine_key.upper()
    for prefix, loader in _PARAM_LOADERS:
        if key.startswith(prefix):
            try:
                return await loader(source, identity)
            except Exception as e:
                logger.warning(
                    f"Engine params lookup failed for {identity.engine_key}/{identity.engine_version}: {e}"
                )
                return {}
    return {}
