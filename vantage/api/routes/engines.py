"""
API routes for engine metrics.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from vantage.api.deps import get_engine_service
from vantage.engine.service import EngineMetricsService

router = APIRouter(prefix="/engines", tags=["engines"])


@router.get("/metrics")
async def get_engine_metrics(
    as_of: Optional[datetime] = None,
    include_failed: bool = False,
    run_mode: Optional[str] = Query(None, description="PRIMARY or SHADOW"),
    service: EngineMetricsService = Depends(get_engine_service),
):
    """Performance metrics for every engine identity."""
    metrics = await service.all_metrics(as_of=as_of, include_failed=include_failed)
    if run_mode:
        metrics = [m for m in metrics if m.identity.run_mode.value == run_mode.upper()]
    return {"engines": [m.to_dict() for m in metrics], "count": len(metrics)}


@router.get("/journal")
async def get_journal_totals(service: EngineMetricsService = Depends(get_engine_service)):
    """Since-inception totals of the live trading journal."""
    totals = await service.journal_totals()
    return totals.to_dict()


@router.get("/performance/compare")
async def get_performance_comparison(
    crypto_engine_key: Optional[str] = Query(None, description="Defaults to the configured crypto engine"),
    crypto_version: Optional[str] = None,
    service: EngineMetricsService = Depends(get_engine_service),
):
    """Crypto shadow equity curve vs. the live stock account, with return correlation."""
    comparison = await service.performance_comparison(
        crypto_engine_key=crypto_engine_key,
        crypto_version=crypto_version,
    )
    return comparison.to_dict()
