"""Tests for the engine metrics aggregator."""

import pytest
from datetime import datetime, timedelta, timezone

from vantage.config.metrics_config import MetricsConfig
from vantage.core.enums import RunMode, Side
from vantage.core.models import EngineDataset, EngineIdentity, PortfolioSnapshot, TradeRecord
from vantage.core.values import safe_float, to_utc, utc_date_key
from vantage.engine.metrics import (
    MetricsAggregator,
    clean_equity_curve,
    compute_journal_totals,
    max_drawdown_pct,
    recent_closed_trades,
    todays_realized_pnl,
    win_rate,
)

UTC = timezone.utc


def _trade(pnl, exit_time, ticker="AAPL", r=0.0):
    return TradeRecord(
        ticker=ticker,
        side=Side.LONG,
        entry_price=100.0,
        exit_price=101.0 if exit_time else None,
        entry_time=datetime(2023, 12, 1, tzinfo=UTC),
        exit_time=exit_time,
        realized_pnl_dollars=pnl,
        realized_pnl_r=r,
    )


def _curve(*values):
    start = datetime(2024, 1, 1, tzinfo=UTC)
    return [PortfolioSnapshot(timestamp=start + timedelta(days=i), equity=v) for i, v in enumerate(values)]


@pytest.fixture
def identity():
    return EngineIdentity(engine_key="SWING", engine_version="V6.0", run_mode=RunMode.PRIMARY)


class TestSafeValues:
    """Test coercion of loosely typed upstream values."""

    def test_garbage_becomes_zero(self):
        assert safe_float(None) == 0.0
        assert safe_float("abc") == 0.0
        assert safe_float(float("nan")) == 0.0
        assert safe_float(float("inf")) == 0.0
        assert safe_float("12.5") == 12.5

    def test_to_utc_accepts_z_suffix(self):
        dt = to_utc("2024-01-01T23:59:59Z")
        assert dt == datetime(2024, 1, 1, 23, 59, 59, tzinfo=UTC)

    def test_naive_timestamps_are_utc(self):
        assert utc_date_key(datetime(2024, 1, 1, 23, 30)) == "2024-01-01"

    def test_unparseable_timestamp(self):
        assert to_utc("not a date") is None


class TestWinRate:
    """Test win rate as a fraction."""

    def test_seven_of_ten(self):
        assert win_rate(7, 10) == pytest.approx(0.70)

    def test_no_trades(self):
        assert win_rate(0, 0) == 0.0

    def test_aggregate_counts_closed_only(self, identity):
        exit_time = datetime(2024, 1, 1, tzinfo=UTC)
        trades = [_trade(10.0, exit_time) for _ in range(7)]
        trades += [_trade(-5.0, exit_time) for _ in range(3)]
        trades.append(_trade(0.0, None))  # open

        metrics = MetricsAggregator().aggregate(EngineDataset(identity=identity, trades=trades))

        assert metrics.total_trades == 10
        assert metrics.winners == 7
        assert metrics.losers == 3
        assert metrics.win_rate == pytest.approx(0.70)

    def test_scratch_trade_is_neither(self, identity):
        exit_time = datetime(2024, 1, 1, tzinfo=UTC)
        trades = [_trade(10.0, exit_time), _trade(0.0, exit_time)]

        metrics = MetricsAggregator().aggregate(EngineDataset(identity=identity, trades=trades))

        assert metrics.total_trades == 2
        assert metrics.winners == 1
        assert metrics.losers == 0
        assert metrics.win_rate == pytest.approx(0.5)


class TestMaxDrawdown:
    """Test running-peak drawdown."""

    def test_monotonic_increase_is_zero(self):
        assert max_drawdown_pct([100, 105, 110, 120]) == 0.0

    def test_peak_to_trough(self):
        assert max_drawdown_pct([100, 120, 90, 110]) == pytest.approx(25.0)

    def test_deepest_of_several(self):
        assert max_drawdown_pct([100, 90, 100, 200, 150, 210]) == pytest.approx(25.0)

    def test_single_point_is_zero(self):
        assert max_drawdown_pct([100]) == 0.0

    def test_empty_is_zero(self):
        assert max_drawdown_pct([]) == 0.0

    def test_never_negative(self):
        for series in ([1, 2, 3], [3, 2, 1], [0, 0, 5], [5, 0, 5]):
            assert max_drawdown_pct(series) >= 0.0


class TestEquityCurve:
    """Test equity curve cleaning."""

    def test_negative_equity_clamped(self):
        cleaned = clean_equity_curve(_curve(100.0, -5.0, 50.0))
        assert [p.equity for p in cleaned] == [100.0, 0.0, 50.0]

    def test_malformed_equity_zeroed(self):
        cleaned = clean_equity_curve(_curve(100.0, "garbage", None))
        assert [p.equity for p in cleaned] == [100.0, 0.0, 0.0]

    def test_single_snapshot_flagged_unreliable(self, identity):
        metrics = MetricsAggregator().aggregate(
            EngineDataset(identity=identity, snapshots=_curve(95_000.0))
        )
        assert metrics.max_drawdown_pct == 0.0
        assert metrics.drawdown_reliable is False
        assert metrics.current_equity == 95_000.0

    def test_current_equity_is_last_point(self, identity):
        metrics = MetricsAggregator().aggregate(
            EngineDataset(identity=identity, snapshots=_curve(100_000.0, 120_000.0, 90_000.0, 110_000.0))
        )
        assert metrics.current_equity == 110_000.0
        assert metrics.net_return_pct == pytest.approx(10.0)
        assert metrics.max_drawdown_pct == pytest.approx(25.0)
        assert metrics.drawdown_reliable is True


class TestTodaysPnl:
    """Test UTC calendar-date bucketing."""

    def test_midnight_boundary(self):
        as_of = datetime(2024, 1, 2, 12, 0, tzinfo=UTC)
        trades = [
            _trade(100.0, to_utc("2024-01-01T23:59:59Z")),
            _trade(40.0, to_utc("2024-01-02T00:00:01Z")),
        ]
        assert todays_realized_pnl(trades, as_of) == pytest.approx(40.0)

    def test_offset_timestamps_converted(self):
        as_of = datetime(2024, 1, 2, 1, 0, tzinfo=UTC)
        # 20:00 New York on Jan 1 is 01:00 UTC on Jan 2
        trades = [_trade(25.0, to_utc("2024-01-01T20:00:00-05:00"))]
        assert todays_realized_pnl(trades, as_of) == pytest.approx(25.0)

    def test_open_trades_ignored(self):
        as_of = datetime(2024, 1, 2, tzinfo=UTC)
        assert todays_realized_pnl([_trade(50.0, None)], as_of) == 0.0


class TestRecentTrades:
    """Test recent closed trade ordering."""

    def test_newest_first(self):
        t1 = _trade(1.0, datetime(2024, 1, 1, tzinfo=UTC), ticker="A")
        t2 = _trade(1.0, datetime(2024, 1, 3, tzinfo=UTC), ticker="B")
        t3 = _trade(1.0, datetime(2024, 1, 2, tzinfo=UTC), ticker="C")
        assert [t.ticker for t in recent_closed_trades([t1, t2, t3], 100)] == ["B", "C", "A"]

    def test_ties_keep_input_order(self):
        same = datetime(2024, 1, 1, tzinfo=UTC)
        trades = [_trade(1.0, same, ticker=t) for t in ("X", "Y", "Z")]
        assert [t.ticker for t in recent_closed_trades(trades, 100)] == ["X", "Y", "Z"]

    def test_capped(self):
        start = datetime(2024, 1, 1, tzinfo=UTC)
        trades = [_trade(1.0, start + timedelta(minutes=i)) for i in range(150)]
        recent = recent_closed_trades(trades, 100)
        assert len(recent) == 100
        assert recent[0].exit_time == start + timedelta(minutes=149)

    def test_open_trades_excluded(self):
        trades = [_trade(1.0, None), _trade(1.0, datetime(2024, 1, 1, tzinfo=UTC))]
        assert len(recent_closed_trades(trades, 100)) == 1


class TestAggregate:
    """Test full aggregation."""

    def test_pnl_includes_unrealized(self, identity):
        exit_time = datetime(2024, 1, 1, tzinfo=UTC)
        dataset = EngineDataset(
            identity=identity,
            trades=[_trade(100.0, exit_time, r=1.0), _trade(-50.0, exit_time, r=-0.5)],
            unrealized_pnl=25.0,
        )
        metrics = MetricsAggregator().aggregate(dataset, as_of=datetime(2024, 1, 1, 18, tzinfo=UTC))

        assert metrics.realized_pnl == pytest.approx(50.0)
        assert metrics.unrealized_pnl == pytest.approx(25.0)
        assert metrics.total_pnl == pytest.approx(75.0)
        assert metrics.todays_pnl == pytest.approx(50.0)
        assert metrics.avg_r == pytest.approx(0.25)

    def test_empty_dataset(self, identity):
        metrics = MetricsAggregator().aggregate(EngineDataset(identity=identity))

        assert metrics.total_trades == 0
        assert metrics.win_rate == 0.0
        assert metrics.avg_r == 0.0
        assert metrics.current_equity == 100_000.0
        assert metrics.net_return_pct == 0.0

    def test_custom_starting_equity(self, identity):
        config = MetricsConfig(starting_equity=50_000.0)
        metrics = MetricsAggregator(config).aggregate(
            EngineDataset(identity=identity, snapshots=_curve(50_000.0, 55_000.0))
        )
        assert metrics.net_return_pct == pytest.approx(10.0)

    def test_to_dict_carries_identity(self, identity):
        d = MetricsAggregator().aggregate(EngineDataset(identity=identity)).to_dict()
        assert d["engine_version"] == "V6.0"
        assert d["run_mode"] == "PRIMARY"
        assert d["drawdown_reliable"] is False


class TestJournalTotals:
    """Test live journal totals."""

    def test_totals(self):
        totals = compute_journal_totals(
            [{"realized_pnl_dollars": 1000.0}, {"realized_pnl_dollars": "-250"}, {"realized_pnl_dollars": None}],
            [{"unrealized_pnl_dollars": 500.0}],
        )
        assert totals.since_inception_realized_pnl == pytest.approx(750.0)
        assert totals.current_unrealized_pnl == pytest.approx(500.0)
        assert totals.current_equity == pytest.approx(101_250.0)
        assert totals.net_return_pct == pytest.approx(1.25)
