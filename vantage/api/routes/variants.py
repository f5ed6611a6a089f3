"""
API routes for filter variant rankings.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from vantage.api.deps import get_variant_service
from vantage.variants.scoring import top_variants
from vantage.variants.service import VariantService

router = APIRouter(prefix="/variants", tags=["variants"])


@router.get("/ranked")
async def get_ranked_variants(
    engine_version: Optional[str] = None,
    top: int = Query(3, ge=1, le=50),
    service: VariantService = Depends(get_variant_service),
):
    """Variant aggregates with composite score and rank."""
    ranked = await service.ranked_variants(engine_version=engine_version)
    return {
        "variants": [r.to_dict() for r in ranked],
        "top": [r.to_dict() for r in top_variants(ranked, top)],
        "count": len(ranked),
    }


@router.get("/runs")
async def get_variant_runs(
    filter_variant: Optional[str] = None,
    limit: int = Query(200, ge=1, le=5000),
    service: VariantService = Depends(get_variant_service),
):
    """Raw variant backtest runs, newest first."""
    runs = await service.variant_runs(filter_variant=filter_variant, limit=limit)
    return {"runs": runs, "count": len(runs)}
