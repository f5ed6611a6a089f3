"""
API routes for the promoted universes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from vantage.api.deps import get_universe_manager
from vantage.config.horizons import get_criteria, parse_horizon
from vantage.core.enums import Horizon
from vantage.core.exceptions import UniverseConflictError, UniverseNotFoundError, VantageConfigError
from vantage.universe.manager import UniverseManager
from vantage.universe.rules import SORT_KEYS

router = APIRouter(prefix="/universe", tags=["universe"])


class TickerUpdate(BaseModel):
    ticker: str


def _horizon(value: str) -> Horizon:
    try:
        return parse_horizon(value)
    except VantageConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{horizon}")
async def get_universe(
    horizon: str,
    engine_version: Optional[str] = None,
    ticker: Optional[str] = None,
    min_expectancy: Optional[float] = None,
    sort: str = Query("expectancy", description=f"One of {list(SORT_KEYS)}"),
    manager: UniverseManager = Depends(get_universe_manager),
):
    """
    Universe members, plus the promotion review when engine_version is given.
    """
    h = _horizon(horizon)
    if sort not in SORT_KEYS:
        raise HTTPException(status_code=400, detail=f"Invalid sort. Must be: {list(SORT_KEYS)}")

    try:
        members = await manager.load(h)
        result = {
            "horizon": h.value,
            "universe": h.universe_name,
            "criteria": get_criteria(h).describe(),
            "tickers": members,
        }
        if engine_version:
            review = await manager.review(
                engine_version,
                h,
                ticker=ticker,
                min_expectancy=min_expectancy,
                unpromoted_sort=sort,
            )
            result["review"] = review.to_dict()
    except UniverseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result


async def _change(horizon: str, update: TickerUpdate, manager: UniverseManager, add: bool) -> dict:
    h = _horizon(horizon)
    try:
        if add:
            changed = await manager.promote(update.ticker, h)
        else:
            changed = await manager.demote(update.ticker, h)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UniverseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except UniverseConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "horizon": h.value,
        "ticker": update.ticker.strip().upper(),
        "changed": changed,
        "tickers": await manager.load(h),
    }


@router.post("/{horizon}/promote")
async def promote_ticker(
    horizon: str,
    update: TickerUpdate,
    manager: UniverseManager = Depends(get_universe_manager),
):
    """Add a ticker to a horizon's universe. Promoting a member is a no-op."""
    return await _change(horizon, update, manager, add=True)


@router.post("/{horizon}/demote")
async def demote_ticker(
    horizon: str,
    update: TickerUpdate,
    manager: UniverseManager = Depends(get_universe_manager),
):
    """Remove a ticker from a horizon's universe. Demoting a non-member is a no-op."""
    return await _change(horizon, update, manager, add=False)
