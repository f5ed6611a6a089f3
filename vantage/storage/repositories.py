"""
VANTAGE Data Repositories

SQLAlchemy implementations of the read boundary and the universe store.
Rows come back as plain dicts keyed by upstream column names.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncContextManager, AsyncGenerator, Callable, List, Optional, Sequence

from sqlalchemy import and_, asc, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .base import EngineDataSource, ResearchDataSource, Row, UniverseStore
from .database import get_async_session
from .models import (
    AiSignalRecord,
    ComparisonResultRecord,
    CryptoPortfolioStateRecord,
    CryptoPositionRecord,
    CryptoTradeRecord,
    EnginePortfolioRecord,
    EngineTradeRecord,
    EngineUniverseRecord,
    EngineVersionRecord,
    FilterPerformanceRecord,
    LivePortfolioStateRecord,
    LivePositionRecord,
    LiveTradeRecord,
    PromotedTickerRecord,
    ScalpEngineConfigRecord,
    TickerStatsRecord,
)
from vantage.core.models import UniverseSnapshot

logger = logging.getLogger(__name__)


async def _rows(session: AsyncSession, stmt) -> List[Row]:
    result = await session.execute(stmt)
    return [dict(r) for r in result.mappings().all()]


# =============================================================================
# ENGINE DATA SOURCE
# =============================================================================

class SqlEngineDataSource(EngineDataSource):
    """Engine trade/position/equity reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_engine_versions(self) -> List[Row]:
        return await _rows(
            self.session,
            select(
                EngineVersionRecord.engine_key,
                EngineVersionRecord.engine_version,
                EngineVersionRecord.run_mode,
                EngineVersionRecord.asset_class,
                EngineVersionRecord.is_enabled,
                EngineVersionRecord.notes,
                EngineVersionRecord.started_at,
                EngineVersionRecord.stopped_at,
            ).order_by(desc(EngineVersionRecord.created_at), desc(EngineVersionRecord.id)),
        )

    async def fetch_live_trades(self, engine_version: str) -> List[Row]:
        return await _rows(
            self.session,
            select(
                LiveTradeRecord.ticker,
                LiveTradeRecord.side,
                LiveTradeRecord.entry_timestamp,
                LiveTradeRecord.entry_price,
                LiveTradeRecord.exit_timestamp,
                LiveTradeRecord.exit_price,
                LiveTradeRecord.realized_pnl_dollars,
                LiveTradeRecord.realized_pnl_r,
            )
            .where(LiveTradeRecord.engine_version == engine_version)
            .order_by(desc(LiveTradeRecord.exit_timestamp)),
        )

    async def fetch_live_positions(self, strategy: str, engine_version: Optional[str] = None) -> List[Row]:
        stmt = select(
            LivePositionRecord.ticker,
            LivePositionRecord.unrealized_pnl_dollars,
        ).where(LivePositionRecord.strategy == strategy)
        if engine_version is not None:
            stmt = stmt.where(LivePositionRecord.engine_version == engine_version)
        return await _rows(self.session, stmt)

    async def fetch_live_snapshots(self, strategy: str, limit: int) -> List[Row]:
        rows = await _rows(
            self.session,
            select(
                LivePortfolioStateRecord.timestamp,
                LivePortfolioStateRecord.equity_dollars,
            )
            .where(LivePortfolioStateRecord.strategy == strategy)
            .order_by(desc(LivePortfolioStateRecord.timestamp))
            .limit(limit),
        )
        # Newest-first for the LIMIT, chronological for the curve
        rows.reverse()
        return rows

    async def fetch_live_closed_pnl(self, strategy: str) -> List[Row]:
        return await _rows(
            self.session,
            select(LiveTradeRecord.realized_pnl_dollars).where(
                and_(
                    LiveTradeRecord.strategy == strategy,
                    LiveTradeRecord.exit_timestamp.is_not(None),
                )
            ),
        )

    async def fetch_shadow_trades(self, engine_key: str, engine_version: str, run_mode: str) -> List[Row]:
        return await _rows(
            self.session,
            select(
                EngineTradeRecord.ticker,
                EngineTradeRecord.side,
                EngineTradeRecord.entry_price,
                EngineTradeRecord.exit_price,
                EngineTradeRecord.realized_pnl,
                EngineTradeRecord.realized_r,
                EngineTradeRecord.unrealized_pnl,
                EngineTradeRecord.opened_at,
                EngineTradeRecord.closed_at,
            )
            .where(
                and_(
                    EngineTradeRecord.engine_key == engine_key,
                    EngineTradeRecord.engine_version == engine_version,
                    EngineTradeRecord.run_mode == run_mode,
                )
            )
            .order_by(desc(EngineTradeRecord.closed_at)),
        )

    async def fetch_shadow_portfolio(self, engine_key: str, engine_version: str, run_mode: str) -> Optional[Row]:
        rows = await _rows(
            self.session,
            select(EnginePortfolioRecord.equity, EnginePortfolioRecord.updated_at)
            .where(
                and_(
                    EnginePortfolioRecord.engine_key == engine_key,
                    EnginePortfolioRecord.engine_version == engine_version,
                    EnginePortfolioRecord.run_mode == run_mode,
                )
            )
            .order_by(desc(EnginePortfolioRecord.updated_at))
            .limit(1),
        )
        return rows[0] if rows else None

    async def fetch_crypto_trades(self, engine_key: str, engine_version: str) -> List[Row]:
        return await _rows(
            self.session,
            select(
                CryptoTradeRecord.symbol,
                CryptoTradeRecord.side,
                CryptoTradeRecord.entry_px,
                CryptoTradeRecord.exit_px,
                CryptoTradeRecord.opened_at,
                CryptoTradeRecord.closed_at,
                CryptoTradeRecord.pnl,
                CryptoTradeRecord.pnl_r,
            )
            .where(
                and_(
                    CryptoTradeRecord.engine_key == engine_key,
                    CryptoTradeRecord.version == engine_version,
                )
            )
            .order_by(desc(CryptoTradeRecord.closed_at)),
        )

    async def fetch_crypto_positions(self, engine_key: str, engine_version: str) -> List[Row]:
        return await _rows(
            self.session,
            select(
                CryptoPositionRecord.symbol,
                CryptoPositionRecord.qty,
                CryptoPositionRecord.unrealized_pnl,
            ).where(
                and_(
                    CryptoPositionRecord.engine_key == engine_key,
                    CryptoPositionRecord.version == engine_version,
                )
            ),
        )

    async def fetch_crypto_equity(self, engine_key: str, engine_version: str) -> List[Row]:
        return await _rows(
            self.session,
            select(CryptoPortfolioStateRecord.ts, CryptoPortfolioStateRecord.equity)
            .where(
                and_(
                    CryptoPortfolioStateRecord.engine_key == engine_key,
                    CryptoPortfolioStateRecord.version == engine_version,
                )
            )
            .order_by(asc(CryptoPortfolioStateRecord.ts)),
        )

    async def fetch_promoted_tickers(self, engine_version: str) -> List[Row]:
        return await _rows(
            self.session,
            select(
                PromotedTickerRecord.ticker,
                PromotedTickerRecord.avg_confidence,
                PromotedTickerRecord.signal_count,
            )
            .where(
                and_(
                    PromotedTickerRecord.engine_version == engine_version,
                    PromotedTickerRecord.is_promoted.is_(True),
                )
            )
            .order_by(desc(PromotedTickerRecord.signal_count)),
        )

    async def fetch_scalp_config(self, engine_version: str) -> Optional[Row]:
        rows = await _rows(
            self.session,
            select(*ScalpEngineConfigRecord.__table__.columns).where(
                ScalpEngineConfigRecord.engine_version == engine_version
            ),
        )
        return rows[0] if rows else None


# =============================================================================
# RESEARCH DATA SOURCE
# =============================================================================

class SqlResearchDataSource(ResearchDataSource):
    """Ticker stats, signal confidence, variant and comparison reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_ticker_stats(self, engine_version: str, horizon: Optional[str]) -> List[Row]:
        stmt = select(
            TickerStatsRecord.ticker,
            TickerStatsRecord.trades,
            TickerStatsRecord.win_rate,
            TickerStatsRecord.expectancy,
            TickerStatsRecord.max_drawdown_pct,
            TickerStatsRecord.profit_factor,
        ).where(TickerStatsRecord.engine_version == engine_version)
        if horizon is not None:
            stmt = stmt.where(TickerStatsRecord.horizon == horizon)
        return await _rows(self.session, stmt.order_by(asc(TickerStatsRecord.ticker)))

    async def fetch_signal_confidence(self, symbols: Sequence[str], since: datetime) -> List[Row]:
        if not symbols:
            return []
        return await _rows(
            self.session,
            select(AiSignalRecord.symbol, AiSignalRecord.confidence_score).where(
                and_(
                    AiSignalRecord.created_at >= since,
                    AiSignalRecord.symbol.in_(list(symbols)),
                )
            ),
        )

    async def fetch_variant_runs(self) -> List[Row]:
        return await _rows(
            self.session,
            select(
                FilterPerformanceRecord.filter_variant,
                FilterPerformanceRecord.engine_version,
                FilterPerformanceRecord.ticker,
                FilterPerformanceRecord.timeframe,
                FilterPerformanceRecord.win_rate,
                FilterPerformanceRecord.expectancy,
                FilterPerformanceRecord.avg_rr,
                FilterPerformanceRecord.total_return,
                FilterPerformanceRecord.max_drawdown,
                FilterPerformanceRecord.profit_factor,
                FilterPerformanceRecord.sharpe,
                FilterPerformanceRecord.signals,
                FilterPerformanceRecord.trades,
                FilterPerformanceRecord.created_at,
            ).order_by(desc(FilterPerformanceRecord.created_at), desc(FilterPerformanceRecord.id)),
        )

    async def fetch_variant_aggregate(self) -> List[Row]:
        fp = FilterPerformanceRecord
        return await _rows(
            self.session,
            select(
                fp.filter_variant,
                fp.engine_version,
                func.avg(fp.win_rate).label("avg_win_rate"),
                func.avg(fp.expectancy).label("avg_expectancy"),
                func.avg(fp.avg_rr).label("avg_avg_rr"),
                func.avg(fp.total_return).label("avg_total_return"),
                func.avg(fp.max_drawdown).label("avg_drawdown"),
                func.avg(fp.profit_factor).label("avg_profit_factor"),
                func.avg(fp.sharpe).label("avg_sharpe"),
                (func.sum(fp.signals) * 1.0 / func.count(func.distinct(fp.ticker))).label("signals_per_ticker"),
                (func.sum(fp.trades) * 1.0 / func.count(func.distinct(fp.ticker))).label("trades_per_ticker"),
            )
            .group_by(fp.filter_variant, fp.engine_version)
            .order_by(fp.filter_variant, fp.engine_version),
        )

    async def fetch_comparison_results(
        self,
        timeframe: Optional[str] = None,
        versions: Optional[Sequence[str]] = None,
        ticker: Optional[str] = None,
    ) -> List[Row]:
        cr = ComparisonResultRecord
        stmt = select(
            cr.version,
            cr.ticker,
            cr.timeframe,
            cr.pnl,
            cr.win_rate,
            cr.max_dd,
            cr.avg_r,
            cr.trades_total,
            cr.trades,
        )
        if timeframe:
            stmt = stmt.where(cr.timeframe == timeframe)
        if versions:
            stmt = stmt.where(cr.version.in_(list(versions)))
        if ticker:
            stmt = stmt.where(cr.ticker == ticker.upper())
        return await _rows(self.session, stmt.order_by(asc(cr.version), asc(cr.ticker)))


# =============================================================================
# UNIVERSE STORE
# =============================================================================

class SqlUniverseStore(UniverseStore):
    """
    engine_universe reads and compare-and-swap writes.

    Each call runs in its own short session so a write never holds a
    transaction open across the caller's read-modify-write.
    """

    def __init__(self, session_factory: Callable[[], Any] = get_async_session):
        self.session_factory = session_factory

    async def read_universe(self, name: str) -> Optional[UniverseSnapshot]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(EngineUniverseRecord).where(EngineUniverseRecord.universe_name == name)
            )
            record = result.scalar_one_or_none()
            if record is None:
                return None
            return UniverseSnapshot(
                name=record.universe_name,
                tickers=list(record.tickers or []),
                version=record.version or 0,
            )

    async def write_universe(self, name: str, tickers: List[str], expected_version: int) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(EngineUniverseRecord)
                .where(
                    and_(
                        EngineUniverseRecord.universe_name == name,
                        EngineUniverseRecord.version == expected_version,
                    )
                )
                .values(tickers=list(tickers), version=expected_version + 1)
            )
            swapped = result.rowcount > 0
        if swapped:
            logger.info(f"Universe {name} -> v{expected_version + 1} ({len(tickers)} tickers)")
        else:
            logger.warning(f"Universe {name} write lost race at v{expected_version}")
        return swapped

    async def create_universe(self, name: str, tickers: Optional[List[str]] = None) -> UniverseSnapshot:
        """Create an empty (or seeded) universe. Used by setup scripts and tests."""
        async with self.session_factory() as session:
            record = EngineUniverseRecord(universe_name=name, tickers=list(tickers or []), version=0)
            session.add(record)
            await session.flush()
        return UniverseSnapshot(name=name, tickers=list(tickers or []), version=0)


ResearchSourceFactory = Callable[[], AsyncContextManager[ResearchDataSource]]


@asynccontextmanager
async def sql_research_source() -> AsyncGenerator[ResearchDataSource, None]:
    """One session-backed research source per unit of work."""
    async with get_async_session() as session:
        yield SqlResearchDataSource(session)
