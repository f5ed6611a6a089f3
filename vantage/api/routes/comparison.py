"""
API routes for engine version comparison.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from vantage.api.deps import get_comparison_service
from vantage.comparison.service import ComparisonService

router = APIRouter(prefix="/comparison", tags=["comparison"])


@router.get("/matrix")
async def get_matrix(
    timeframe: Optional[str] = Query(None, description="day, swing or invest"),
    service: ComparisonService = Depends(get_comparison_service),
):
    """Ticker x version grid of headline stats."""
    return await service.matrix(timeframe=timeframe)


@router.get("/summary")
async def get_summary(
    versions: Optional[List[str]] = Query(None),
    service: ComparisonService = Depends(get_comparison_service),
):
    """Per trading style and version summary."""
    return await service.summary(versions=versions)


@router.get("/ticker/{symbol}")
async def get_ticker(symbol: str, service: ComparisonService = Depends(get_comparison_service)):
    """Every comparison result for one symbol."""
    return await service.ticker(symbol)


@router.get("/export")
async def export_results(
    format: str = Query("csv", pattern="^(csv|json)$"),
    service: ComparisonService = Depends(get_comparison_service),
):
    """All comparison rows as CSV or JSON."""
    data = await service.export(format)
    if format == "json":
        return data
    return PlainTextResponse(data, media_type="text/csv")
