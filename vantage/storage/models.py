"""
VANTAGE Database Models

SQLAlchemy models for the tables upstream pipelines populate. The core
reads all of them; engine_universe is the only table it writes.
"""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# ENGINE VERSIONS
# =============================================================================

class EngineVersionRecord(Base):
    """
    Registry of engine identities (PRIMARY and SHADOW).

    One row per engine_key / engine_version / run_mode.
    """
    __tablename__ = "engine_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    engine_key = Column(String(50), nullable=False, index=True)
    engine_version = Column(String(50), nullable=False, index=True)
    run_mode = Column(String(10), nullable=False)  # PRIMARY, SHADOW
    asset_class = Column(String(20), nullable=False, default="stock")

    is_enabled = Column(Boolean, default=True)
    is_user_visible = Column(Boolean, default=False)
    notes = Column(String(200))
    started_at = Column(DateTime(timezone=True))
    stopped_at = Column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("engine_key", "engine_version", "run_mode", name="uq_engine_identity"),
    )

    def __repr__(self):
        return f"<EngineVersion {self.engine_key}/{self.engine_version} {self.run_mode}>"


# =============================================================================
# PRIMARY (LIVE) TABLES
# =============================================================================

class LiveTradeRecord(Base):
    """Live-capital trades. exit_timestamp is NULL while the trade is open."""
    __tablename__ = "live_trades"

    id = Column(Uuid, primary_key=True, default=uuid4)
    strategy = Column(String(20), nullable=False, default="SWING", index=True)
    engine_version = Column(String(50), nullable=False, index=True)

    ticker = Column(String(20), nullable=False)
    side = Column(String(10), nullable=False)  # LONG, SHORT

    entry_timestamp = Column(DateTime(timezone=True), nullable=False)
    entry_price = Column(Float, nullable=False)
    exit_timestamp = Column(DateTime(timezone=True))
    exit_price = Column(Float)

    realized_pnl_dollars = Column(Float)
    realized_pnl_r = Column(Float)

    __table_args__ = (
        Index("ix_live_trades_version_exit", "engine_version", "exit_timestamp"),
    )

    def __repr__(self):
        return f"<LiveTrade {self.ticker} {self.side} PnL={self.realized_pnl_dollars}>"


class LivePositionRecord(Base):
    """Open live positions with mark-to-market PnL."""
    __tablename__ = "live_positions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    strategy = Column(String(20), nullable=False, default="SWING", index=True)
    engine_version = Column(String(50), index=True)
    ticker = Column(String(20), nullable=False)
    unrealized_pnl_dollars = Column(Float)


class LivePortfolioStateRecord(Base):
    """Dense equity history for the live account (many rows per day)."""
    __tablename__ = "live_portfolio_state"

    id = Column(Integer, primary_key=True, autoincrement=True)
    strategy = Column(String(20), nullable=False, default="SWING", index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    equity_dollars = Column(Float)


# =============================================================================
# SHADOW STOCK TABLES
# =============================================================================

class EngineTradeRecord(Base):
    """
    Shadow-engine trades (virtual portfolio).

    Open rows carry unrealized_pnl; closed rows carry realized_pnl/realized_r.
    """
    __tablename__ = "engine_trades"

    id = Column(Uuid, primary_key=True, default=uuid4)
    engine_key = Column(String(50), nullable=False)
    engine_version = Column(String(50), nullable=False)
    run_mode = Column(String(10), nullable=False, default="SHADOW")

    ticker = Column(String(20), nullable=False)
    side = Column(String(10), nullable=False)

    entry_price = Column(Float)
    exit_price = Column(Float)
    opened_at = Column(DateTime(timezone=True))
    closed_at = Column(DateTime(timezone=True))

    realized_pnl = Column(Float)
    realized_r = Column(Float)
    unrealized_pnl = Column(Float)

    __table_args__ = (
        Index("ix_engine_trades_identity", "engine_key", "engine_version", "run_mode"),
    )


class EnginePortfolioRecord(Base):
    """Latest shadow portfolio state. History is not retained."""
    __tablename__ = "engine_portfolios"

    id = Column(Integer, primary_key=True, autoincrement=True)
    engine_key = Column(String(50), nullable=False)
    engine_version = Column(String(50), nullable=False)
    run_mode = Column(String(10), nullable=False, default="SHADOW")

    equity = Column(Float)
    starting_equity = Column(Float)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


# =============================================================================
# SHADOW CRYPTO TABLES
# =============================================================================

class CryptoTradeRecord(Base):
    """Crypto shadow fills. side is buy/sell; there is no unrealized column."""
    __tablename__ = "engine_crypto_trades"

    id = Column(Uuid, primary_key=True, default=uuid4)
    engine_key = Column(String(50), nullable=False)
    version = Column(String(50), nullable=False)

    symbol = Column(String(20), nullable=False)
    side = Column(String(10), nullable=False)  # buy, sell

    entry_px = Column(Float)
    exit_px = Column(Float)
    opened_at = Column(DateTime(timezone=True))
    closed_at = Column(DateTime(timezone=True))

    pnl = Column(Float)
    pnl_r = Column(Float)

    __table_args__ = (
        Index("ix_engine_crypto_trades_identity", "engine_key", "version"),
    )


class CryptoPositionRecord(Base):
    """Open crypto shadow positions, the only source of unrealized PnL."""
    __tablename__ = "engine_crypto_positions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    engine_key = Column(String(50), nullable=False)
    version = Column(String(50), nullable=False)
    symbol = Column(String(20), nullable=False)
    qty = Column(Float)
    unrealized_pnl = Column(Float)


class CryptoPortfolioStateRecord(Base):
    """Crypto shadow equity history (24/7, retained)."""
    __tablename__ = "engine_crypto_portfolio_state"

    id = Column(Integer, primary_key=True, autoincrement=True)
    engine_key = Column(String(50), nullable=False)
    version = Column(String(50), nullable=False)
    ts = Column(DateTime(timezone=True), nullable=False, index=True)
    equity = Column(Float)


# =============================================================================
# ENGINE PARAMETERS
# =============================================================================

class PromotedTickerRecord(Base):
    """Tickers promoted for a SWING engine. Demoted rows keep is_promoted=False."""
    __tablename__ = "promoted_tickers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    engine_version = Column(String(50), nullable=False, index=True)
    ticker = Column(String(20), nullable=False)
    avg_confidence = Column(Float)
    signal_count = Column(Integer, default=0)
    is_promoted = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("engine_version", "ticker", name="uq_promoted_ticker"),
    )


class ScalpEngineConfigRecord(Base):
    """Risk limits of a SCALP engine, one row per engine version."""
    __tablename__ = "scalp_engine_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    engine_version = Column(String(50), unique=True, nullable=False)

    min_stop_distance_r = Column(Float)
    atr_stop_distance_multiple = Column(Float)
    max_risk_pct_per_trade = Column(Float)
    max_total_open_risk_pct = Column(Float)
    max_positions_per_ticker = Column(Integer)
    max_daily_loss_pct = Column(Float)
    hard_max_positions = Column(Integer)


# =============================================================================
# TICKER STATS AND SIGNALS
# =============================================================================

class TickerStatsRecord(Base):
    """Per-ticker backtest stats per engine version and horizon."""
    __tablename__ = "engine_ticker_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    engine_version = Column(String(50), nullable=False)
    horizon = Column(String(10), nullable=False)
    ticker = Column(String(20), nullable=False)

    trades = Column(Integer)
    win_rate = Column(Float)
    expectancy = Column(Float)
    max_drawdown_pct = Column(Float)
    profit_factor = Column(Float)

    __table_args__ = (
        UniqueConstraint("engine_version", "horizon", "ticker", name="uq_ticker_stats"),
    )


class AiSignalRecord(Base):
    """Generated signals; only symbol/confidence/time are read here."""
    __tablename__ = "ai_signals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    symbol = Column(String(20), nullable=False, index=True)
    confidence_score = Column(Float)


# =============================================================================
# UNIVERSE
# =============================================================================

class EngineUniverseRecord(Base):
    """
    Named ticker universe (e.g. performance_swing).

    version is bumped on every write and used for compare-and-swap.
    """
    __tablename__ = "engine_universe"

    id = Column(Integer, primary_key=True, autoincrement=True)
    universe_name = Column(String(50), unique=True, nullable=False)
    tickers = Column(JsonType, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Universe {self.universe_name} v{self.version}: {len(self.tickers or [])} tickers>"


# =============================================================================
# VARIANT AND COMPARISON RESULTS
# =============================================================================

class FilterPerformanceRecord(Base):
    """One filter-variant backtest run on one ticker."""
    __tablename__ = "engine_filter_performance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    filter_variant = Column(String(50), nullable=False, index=True)
    engine_version = Column(String(50), nullable=False)
    ticker = Column(String(20), nullable=False)
    timeframe = Column(String(10))

    win_rate = Column(Float)
    expectancy = Column(Float)
    avg_rr = Column(Float)
    total_return = Column(Float)
    max_drawdown = Column(Float)
    profit_factor = Column(Float)
    sharpe = Column(Float)
    signals = Column(Integer)
    trades = Column(Integer)


class ComparisonResultRecord(Base):
    """Cross-version backtest results per ticker and timeframe."""
    __tablename__ = "engine_comparison_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(String(20), nullable=False, index=True)
    ticker = Column(String(20), nullable=False, index=True)
    timeframe = Column(String(10), nullable=False)

    pnl = Column(Float)
    win_rate = Column(Float)
    max_dd = Column(Float)
    avg_r = Column(Float)
    trades_total = Column(Integer)
    trades = Column(JsonType)  # {"trades": [...]}
