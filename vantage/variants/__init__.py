"""VANTAGE Variants - filter variant scoring and ranking."""

from vantage.variants.scoring import rank_variants, score_variant, top_variants
from vantage.variants.service import VariantService

__all__ = [
    "rank_variants",
    "score_variant",
    "top_variants",
    "VariantService",
]
