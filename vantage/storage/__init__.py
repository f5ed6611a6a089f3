"""VANTAGE Storage Layer - Database models, sessions and read adapters."""

from vantage.storage.models import (
    Base,
    EngineVersionRecord,
    LiveTradeRecord,
    LivePositionRecord,
    LivePortfolioStateRecord,
    EngineTradeRecord,
    EnginePortfolioRecord,
    CryptoTradeRecord,
    CryptoPositionRecord,
    CryptoPortfolioStateRecord,
    TickerStatsRecord,
    AiSignalRecord,
    EngineUniverseRecord,
    FilterPerformanceRecord,
    PromotedTickerRecord,
    ScalpEngineConfigRecord,
    ComparisonResultRecord,
)
from vantage.storage.database import (
    get_database_url,
    get_async_engine,
    get_async_session,
    init_db_async,
    check_database_health_async,
    close_database_async,
)
from vantage.storage.base import EngineDataSource, ResearchDataSource, UniverseStore
from vantage.storage.repositories import (
    SqlEngineDataSource,
    SqlResearchDataSource,
    SqlUniverseStore,
    sql_research_source,
)

__all__ = [
    "Base",
    "EngineVersionRecord",
    "LiveTradeRecord",
    "LivePositionRecord",
    "LivePortfolioStateRecord",
    "EngineTradeRecord",
    "EnginePortfolioRecord",
    "CryptoTradeRecord",
    "CryptoPositionRecord",
    "CryptoPortfolioStateRecord",
    "TickerStatsRecord",
    "AiSignalRecord",
    "EngineUniverseRecord",
    "FilterPerformanceRecord",
    "PromotedTickerRecord",
    "ScalpEngineConfigRecord",
    "ComparisonResultRecord",
    "get_database_url",
    "get_async_engine",
    "get_async_session",
    "init_db_async",
    "check_database_health_async",
    "close_database_async",
    "EngineDataSource",
    "ResearchDataSource",
    "UniverseStore",
    "SqlEngineDataSource",
    "SqlResearchDataSource",
    "SqlUniverseStore",
    "sql_research_source",
]
