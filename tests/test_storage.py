"""Tests for VANTAGE storage repositories against in-memory SQLite."""

import pytest
from datetime import datetime, timedelta, timezone

from vantage.engine.normalizer import ShadowCryptoNormalizer
from vantage.storage.database import (
    check_database_health_async,
    close_database_async,
    get_async_session,
    get_database_url,
    init_db_async,
)
from vantage.storage.models import (
    AiSignalRecord,
    ComparisonResultRecord,
    CryptoPortfolioStateRecord,
    CryptoPositionRecord,
    CryptoTradeRecord,
    EnginePortfolioRecord,
    EngineTradeRecord,
    EngineVersionRecord,
    FilterPerformanceRecord,
    LivePortfolioStateRecord,
    LivePositionRecord,
    LiveTradeRecord,
    PromotedTickerRecord,
    ScalpEngineConfigRecord,
    TickerStatsRecord,
)
from vantage.storage.repositories import SqlEngineDataSource, SqlResearchDataSource, SqlUniverseStore
from vantage.universe.manager import UniverseManager

UTC = timezone.utc

# Use in-memory SQLite for all tests
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
async def db():
    """Fresh in-memory database per test."""
    await init_db_async(TEST_DB_URL)
    yield
    await close_database_async()


async def _add(*records):
    async with get_async_session() as session:
        session.add_all(records)


# -----------------------------------------------------------------------------
# Database
# -----------------------------------------------------------------------------

class TestDatabase:
    """Test connection helpers."""

    def test_async_url_conversion(self, monkeypatch):
        monkeypatch.setenv("VANTAGE_DATABASE_URL", "postgresql://u:p@localhost/db")
        assert get_database_url(async_mode=True) == "postgresql+asyncpg://u:p@localhost/db"
        assert get_database_url(async_mode=False) == "postgresql://u:p@localhost/db"

    def test_sqlite_url_conversion(self, monkeypatch):
        monkeypatch.setenv("VANTAGE_DATABASE_URL", "sqlite:///test.db")
        assert get_database_url(async_mode=True) == "sqlite+aiosqlite:///test.db"

    @pytest.mark.asyncio
    async def test_health(self, db):
        health = await check_database_health_async()
        assert health["healthy"] is True


# -----------------------------------------------------------------------------
# Engine data source
# -----------------------------------------------------------------------------

class TestSqlEngineDataSource:
    """Test engine reads."""

    @pytest.mark.asyncio
    async def test_list_engine_versions(self, db):
        await _add(
            EngineVersionRecord(engine_key="SWING", engine_version="V6.0", run_mode="PRIMARY"),
            EngineVersionRecord(engine_key="SWING", engine_version="V6.1", run_mode="SHADOW"),
        )
        async with get_async_session() as session:
            rows = await SqlEngineDataSource(session).list_engine_versions()

        assert {r["engine_version"] for r in rows} == {"V6.0", "V6.1"}
        assert rows[0]["asset_class"] == "stock"

    @pytest.mark.asyncio
    async def test_live_reads(self, db):
        t0 = datetime(2024, 1, 1, tzinfo=UTC)
        await _add(
            LiveTradeRecord(engine_version="V6.0", ticker="AAPL", side="LONG", entry_timestamp=t0,
                            entry_price=100.0, exit_timestamp=t0 + timedelta(days=1), exit_price=110.0,
                            realized_pnl_dollars=1000.0, realized_pnl_r=2.0),
            LiveTradeRecord(engine_version="V6.0", ticker="MSFT", side="LONG", entry_timestamp=t0,
                            entry_price=400.0),
            LiveTradeRecord(engine_version="V5.0", ticker="TSLA", side="SHORT", entry_timestamp=t0,
                            entry_price=200.0, exit_timestamp=t0, realized_pnl_dollars=-100.0),
            LivePositionRecord(engine_version="V6.0", ticker="MSFT", unrealized_pnl_dollars=50.0),
            *[
                LivePortfolioStateRecord(timestamp=t0 + timedelta(days=i), equity_dollars=100_000.0 + i)
                for i in range(5)
            ],
        )

        async with get_async_session() as session:
            source = SqlEngineDataSource(session)
            trades = await source.fetch_live_trades("V6.0")
            positions = await source.fetch_live_positions("SWING", "V6.0")
            snapshots = await source.fetch_live_snapshots("SWING", 3)
            closed = await source.fetch_live_closed_pnl("SWING")

        assert {t["ticker"] for t in trades} == {"AAPL", "MSFT"}
        assert positions[0]["unrealized_pnl_dollars"] == 50.0
        # Latest three, oldest first
        assert [s["equity_dollars"] for s in snapshots] == [100_002.0, 100_003.0, 100_004.0]
        assert sorted(c["realized_pnl_dollars"] for c in closed) == [-100.0, 1000.0]

    @pytest.mark.asyncio
    async def test_shadow_portfolio_latest(self, db):
        t0 = datetime(2024, 1, 1, tzinfo=UTC)
        await _add(
            EngineTradeRecord(engine_key="SWING", engine_version="V6.1", run_mode="SHADOW",
                              ticker="NVDA", side="LONG", entry_price=500.0, opened_at=t0),
            EnginePortfolioRecord(engine_key="SWING", engine_version="V6.1", run_mode="SHADOW",
                                  equity=99_000.0, updated_at=t0),
            EnginePortfolioRecord(engine_key="SWING", engine_version="V6.1", run_mode="SHADOW",
                                  equity=101_000.0, updated_at=t0 + timedelta(hours=1)),
        )

        async with get_async_session() as session:
            source = SqlEngineDataSource(session)
            trades = await source.fetch_shadow_trades("SWING", "V6.1", "SHADOW")
            portfolio = await source.fetch_shadow_portfolio("SWING", "V6.1", "SHADOW")
            missing = await source.fetch_shadow_portfolio("SWING", "V9.9", "SHADOW")

        assert len(trades) == 1
        assert portfolio["equity"] == 101_000.0
        assert missing is None

    @pytest.mark.asyncio
    async def test_crypto_equity_chronological(self, db):
        t0 = datetime(2024, 1, 1, tzinfo=UTC)
        await _add(
            CryptoPortfolioStateRecord(engine_key="CRYPTO", version="C1.0", ts=t0 + timedelta(hours=1), equity=2.0),
            CryptoPortfolioStateRecord(engine_key="CRYPTO", version="C1.0", ts=t0, equity=1.0),
        )
        async with get_async_session() as session:
            rows = await SqlEngineDataSource(session).fetch_crypto_equity("CRYPTO", "C1.0")

        assert [r["equity"] for r in rows] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_crypto_trades_and_positions(self, db):
        t0 = datetime(2024, 1, 1, tzinfo=UTC)
        await _add(
            CryptoTradeRecord(engine_key="CRYPTO_V1_SHADOW", version="v1", symbol="btc-usd", side="buy",
                              entry_px=42_000.0, exit_px=43_000.0, opened_at=t0,
                              closed_at=t0 + timedelta(hours=6), pnl=250.0, pnl_r=1.2),
            CryptoTradeRecord(engine_key="CRYPTO_V1_SHADOW", version="v2", symbol="ETH-USD", side="sell",
                              opened_at=t0, pnl=-10.0),
            CryptoPositionRecord(engine_key="CRYPTO_V1_SHADOW", version="v1", symbol="SOL-USD",
                                 qty=10.0, unrealized_pnl=-12.5),
        )

        async with get_async_session() as session:
            source = SqlEngineDataSource(session)
            trades = await source.fetch_crypto_trades("CRYPTO_V1_SHADOW", "v1")
            positions = await source.fetch_crypto_positions("CRYPTO_V1_SHADOW", "v1")

        assert len(trades) == 1
        normalized = ShadowCryptoNormalizer().normalize_trades(trades)[0]
        assert normalized.ticker == "BTC-USD"
        assert normalized.realized_pnl_dollars == 250.0
        assert positions[0]["unrealized_pnl"] == -12.5

    def test_crypto_table_names(self):
        assert CryptoTradeRecord.__tablename__ == "engine_crypto_trades"
        assert CryptoPortfolioStateRecord.__tablename__ == "engine_crypto_portfolio_state"

    @pytest.mark.asyncio
    async def test_promoted_tickers(self, db):
        await _add(
            PromotedTickerRecord(engine_version="SWING_V2", ticker="AAPL", signal_count=4),
            PromotedTickerRecord(engine_version="SWING_V2", ticker="NVDA", signal_count=12),
            PromotedTickerRecord(engine_version="SWING_V2", ticker="TSLA", signal_count=30, is_promoted=False),
            PromotedTickerRecord(engine_version="SWING_V1", ticker="MSFT", signal_count=50),
        )

        async with get_async_session() as session:
            rows = await SqlEngineDataSource(session).fetch_promoted_tickers("SWING_V2")

        assert [r["ticker"] for r in rows] == ["NVDA", "AAPL"]

    @pytest.mark.asyncio
    async def test_scalp_config(self, db):
        await _add(
            ScalpEngineConfigRecord(engine_version="SCALP_V1", max_daily_loss_pct=3.0, hard_max_positions=5),
        )

        async with get_async_session() as session:
            source = SqlEngineDataSource(session)
            config = await source.fetch_scalp_config("SCALP_V1")
            missing = await source.fetch_scalp_config("SCALP_V9")

        assert config["max_daily_loss_pct"] == 3.0
        assert config["hard_max_positions"] == 5
        assert missing is None


# -----------------------------------------------------------------------------
# Research data source
# -----------------------------------------------------------------------------

class TestSqlResearchDataSource:
    """Test research reads."""

    @pytest.mark.asyncio
    async def test_ticker_stats_and_confidence(self, db):
        now = datetime.now(UTC)
        await _add(
            TickerStatsRecord(engine_version="V6.0", horizon="swing", ticker="AAPL", trades=20,
                              win_rate=0.55, expectancy=0.2, max_drawdown_pct=5.0),
            TickerStatsRecord(engine_version="V6.0", horizon="day", ticker="AAPL", trades=80,
                              win_rate=0.55, expectancy=0.2, max_drawdown_pct=5.0),
            AiSignalRecord(symbol="AAPL", confidence_score=0.8, created_at=now - timedelta(days=1)),
            AiSignalRecord(symbol="AAPL", confidence_score=0.2, created_at=now - timedelta(days=40)),
        )

        async with get_async_session() as session:
            source = SqlResearchDataSource(session)
            stats = await source.fetch_ticker_stats("V6.0", "swing")
            signals = await source.fetch_signal_confidence(["AAPL"], now - timedelta(days=14))
            none = await source.fetch_signal_confidence([], now)

        assert len(stats) == 1
        assert stats[0]["expectancy"] == 0.2
        assert [s["confidence_score"] for s in signals] == [0.8]
        assert none == []

    @pytest.mark.asyncio
    async def test_variant_aggregate(self, db):
        await _add(
            FilterPerformanceRecord(filter_variant="baseline", engine_version="V6.0", ticker="AAPL",
                                    win_rate=0.5, expectancy=0.1, signals=10, trades=4),
            FilterPerformanceRecord(filter_variant="baseline", engine_version="V6.0", ticker="MSFT",
                                    win_rate=0.7, expectancy=0.3, signals=20, trades=6),
            FilterPerformanceRecord(filter_variant="strict", engine_version="V6.0", ticker="AAPL",
                                    win_rate=0.6, expectancy=None, signals=5, trades=2),
        )

        async with get_async_session() as session:
            rows = await SqlResearchDataSource(session).fetch_variant_aggregate()

        by_name = {r["filter_variant"]: r for r in rows}
        assert by_name["baseline"]["avg_win_rate"] == pytest.approx(0.6)
        assert by_name["baseline"]["signals_per_ticker"] == pytest.approx(15.0)
        assert by_name["baseline"]["trades_per_ticker"] == pytest.approx(5.0)
        assert by_name["strict"]["avg_expectancy"] is None

    @pytest.mark.asyncio
    async def test_comparison_filters(self, db):
        await _add(
            ComparisonResultRecord(version="V6.0", ticker="AAPL", timeframe="day", avg_r=0.2,
                                   trades={"trades": [{}, {}]}),
            ComparisonResultRecord(version="V5.0", ticker="AAPL", timeframe="swing", avg_r=0.1),
            ComparisonResultRecord(version="V6.0", ticker="MSFT", timeframe="day", avg_r=-0.1),
        )

        async with get_async_session() as session:
            source = SqlResearchDataSource(session)
            day = await source.fetch_comparison_results(timeframe="day")
            aapl = await source.fetch_comparison_results(ticker="aapl")
            v5 = await source.fetch_comparison_results(versions=["V5.0"])

        assert len(day) == 2
        assert len(aapl) == 2
        assert [r["timeframe"] for r in v5] == ["swing"]
        assert {"trades": [{}, {}]} in [r["trades"] for r in aapl]


# -----------------------------------------------------------------------------
# Universe store
# -----------------------------------------------------------------------------

class TestSqlUniverseStore:
    """Test compare-and-swap writes."""

    @pytest.mark.asyncio
    async def test_missing(self, db):
        assert await SqlUniverseStore().read_universe("performance_swing") is None

    @pytest.mark.asyncio
    async def test_cas(self, db):
        store = SqlUniverseStore()
        await store.create_universe("performance_swing", ["MSFT"])

        assert await store.write_universe("performance_swing", ["MSFT", "AAPL"], expected_version=0) is True
        # Stale version loses
        assert await store.write_universe("performance_swing", ["MSFT", "TSLA"], expected_version=0) is False

        snapshot = await store.read_universe("performance_swing")
        assert snapshot.tickers == ["MSFT", "AAPL"]
        assert snapshot.version == 1

    @pytest.mark.asyncio
    async def test_manager_round_trip(self, db):
        store = SqlUniverseStore()
        await store.create_universe("performance_day")
        manager = UniverseManager(store, max_retries=3)

        assert await manager.promote("aapl", "day") is True
        assert await manager.promote("AAPL", "day") is False
        assert await manager.demote("AAPL", "day") is True
        assert await manager.load("day") == []
        assert (await store.read_universe("performance_day")).version == 2
