"""
Service providers for the API routes.

Routes receive services through FastAPI Depends so tests can swap them via
app.dependency_overrides. The universe manager is a process-wide singleton:
its per-universe locks only serialize writers that share it.
"""

from typing import Optional

from vantage.comparison.service import ComparisonService
from vantage.config.metrics_config import ScoringWeights
from vantage.engine.service import EngineMetricsService
from vantage.storage.repositories import SqlUniverseStore
from vantage.universe.manager import TickerStatsLoader, UniverseManager
from vantage.variants.service import VariantService

_universe_manager: Optional[UniverseManager] = None


def get_engine_service() -> EngineMetricsService:
    return EngineMetricsService()


def get_universe_manager() -> UniverseManager:
    global _universe_manager
    if _universe_manager is None:
        _universe_manager = UniverseManager(SqlUniverseStore(), TickerStatsLoader())
    return _universe_manager


def get_variant_service() -> VariantService:
    return VariantService(weights=ScoringWeights.from_settings())


def get_comparison_service() -> ComparisonService:
    return ComparisonService()
