"""
Trade/Snapshot Normalizer

Reshapes the three upstream record shapes into canonical TradeRecord and
PortfolioSnapshot lists:

- LiveStockNormalizer: live_trades / live_positions / live_portfolio_state
  (dense equity history)
- ShadowStockNormalizer: engine_trades / engine_portfolios (only the latest
  portfolio row exists, so drawdown from it is always 0)
- ShadowCryptoNormalizer: engine_crypto_trades / engine_crypto_positions /
  engine_crypto_portfolio_state (buy/sell sides, unrealized PnL only on positions)

Side and label translation happens here and nowhere else.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from vantage.config.metrics_config import DEFAULT_METRICS_CONFIG, MetricsConfig
from vantage.core.enums import AssetClass, RunMode, Side
from vantage.core.models import EngineDataset, EngineIdentity, PortfolioSnapshot, TradeRecord
from vantage.core.values import normalize_ticker, safe_float, safe_optional_float, to_utc
from vantage.storage.base import EngineDataSource, Row

logger = logging.getLogger(__name__)

_SIDE_ALIASES: Dict[str, Side] = {
    "LONG": Side.LONG,
    "BUY": Side.LONG,
    "B": Side.LONG,
    "SHORT": Side.SHORT,
    "SELL": Side.SHORT,
    "S": Side.SHORT,
}


def translate_side(raw: Any) -> Side:
    """Map any upstream side label to LONG/SHORT. Unknown labels become LONG."""
    label = str(raw or "").strip().upper()
    side = _SIDE_ALIASES.get(label)
    if side is None:
        logger.warning(f"Unknown side label {raw!r}, treating as LONG")
        return Side.LONG
    return side


def _parse_time(row: Row, key: str) -> Any:
    raw = row.get(key)
    parsed = to_utc(raw)
    if raw is not None and parsed is None:
        logger.warning(f"Unparseable {key} {raw!r}")
    return parsed


def _sum_field(rows: Iterable[Row], key: str) -> float:
    return sum(safe_float(r.get(key)) for r in rows)


# =============================================================================
# BASE
# =============================================================================

class RecordNormalizer(ABC):
    """One upstream record shape."""

    def __init__(self, config: MetricsConfig = DEFAULT_METRICS_CONFIG):
        self.config = config

    @abstractmethod
    def normalize_trade(self, row: Row) -> TradeRecord:
        pass

    @abstractmethod
    def normalize_snapshot(self, row: Row) -> PortfolioSnapshot:
        pass

    @abstractmethod
    async def load(self, source: EngineDataSource, identity: EngineIdentity) -> EngineDataset:
        """Fetch and normalize everything for one identity."""
        pass

    def normalize_trades(self, rows: Iterable[Row]) -> List[TradeRecord]:
        return [self.normalize_trade(r) for r in rows]

    def normalize_snapshots(self, rows: Iterable[Row]) -> List[PortfolioSnapshot]:
        return [self.normalize_snapshot(r) for r in rows]


# =============================================================================
# PRIMARY (LIVE)
# =============================================================================

class LiveStockNormalizer(RecordNormalizer):
    """live_* tables. Unrealized PnL comes from live_positions."""

    def normalize_trade(self, row: Row) -> TradeRecord:
        return TradeRecord(
            ticker=normalize_ticker(row.get("ticker")),
            side=translate_side(row.get("side")),
            entry_price=safe_float(row.get("entry_price")),
            exit_price=safe_optional_float(row.get("exit_price")),
            entry_time=_parse_time(row, "entry_timestamp"),
            exit_time=_parse_time(row, "exit_timestamp"),
            realized_pnl_dollars=safe_float(row.get("realized_pnl_dollars")),
            realized_pnl_r=safe_float(row.get("realized_pnl_r")),
        )

    def normalize_snapshot(self, row: Row) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            timestamp=_parse_time(row, "timestamp"),
            equity=safe_float(row.get("equity_dollars")),
        )

    async def load(self, source: EngineDataSource, identity: EngineIdentity) -> EngineDataset:
        trades = await source.fetch_live_trades(identity.engine_version)
        snapshots = await source.fetch_live_snapshots(
            self.config.live_strategy, self.config.live_snapshot_limit
        )
        positions = await source.fetch_live_positions(
            self.config.live_strategy, identity.engine_version
        )
        return EngineDataset(
            identity=identity,
            trades=self.normalize_trades(trades),
            snapshots=self.normalize_snapshots(snapshots),
            unrealized_pnl=_sum_field(positions, "unrealized_pnl_dollars"),
        )


# =============================================================================
# SHADOW STOCK
# =============================================================================

class ShadowStockNormalizer(RecordNormalizer):
    """
    engine_* tables.

    Open trade rows carry their own unrealized_pnl. Only the latest
    portfolio row is stored, so the equity curve has at most one point.
    """

    def normalize_trade(self, row: Row) -> TradeRecord:
        return TradeRecord(
            ticker=normalize_ticker(row.get("ticker")),
            side=translate_side(row.get("side")),
            entry_price=safe_float(row.get("entry_price")),
            exit_price=safe_optional_float(row.get("exit_price")),
            entry_time=_parse_time(row, "opened_at"),
            exit_time=_parse_time(row, "closed_at"),
            realized_pnl_dollars=safe_float(row.get("realized_pnl")),
            realized_pnl_r=safe_float(row.get("realized_r")),
        )

    def normalize_snapshot(self, row: Row) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            timestamp=_parse_time(row, "updated_at"),
            equity=safe_float(row.get("equity")),
        )

    async def load(self, source: EngineDataSource, identity: EngineIdentity) -> EngineDataset:
        run_mode = identity.run_mode.value
        rows = await source.fetch_shadow_trades(identity.engine_key, identity.engine_version, run_mode)
        portfolio = await source.fetch_shadow_portfolio(identity.engine_key, identity.engine_version, run_mode)

        open_rows = [r for r in rows if to_utc(r.get("closed_at")) is None]
        return EngineDataset(
            identity=identity,
            trades=self.normalize_trades(rows),
            snapshots=[self.normalize_snapshot(portfolio)] if portfolio else [],
            unrealized_pnl=_sum_field(open_rows, "unrealized_pnl"),
        )


# =============================================================================
# SHADOW CRYPTO
# =============================================================================

class ShadowCryptoNormalizer(RecordNormalizer):
    """
    engine_crypto_* tables.

    The trade log has no unrealized column, so open-position PnL is summed
    from engine_crypto_positions instead.
    """

    def normalize_trade(self, row: Row) -> TradeRecord:
        return TradeRecord(
            ticker=normalize_ticker(row.get("symbol")),
            side=translate_side(row.get("side")),
            entry_price=safe_float(row.get("entry_px")),
            exit_price=safe_optional_float(row.get("exit_px")),
            entry_time=_parse_time(row, "opened_at"),
            exit_time=_parse_time(row, "closed_at"),
            realized_pnl_dollars=safe_float(row.get("pnl")),
            realized_pnl_r=safe_float(row.get("pnl_r")),
        )

    def normalize_snapshot(self, row: Row) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            timestamp=_parse_time(row, "ts"),
            equity=safe_float(row.get("equity")),
        )

    async def load(self, source: EngineDataSource, identity: EngineIdentity) -> EngineDataset:
        trades = await source.fetch_crypto_trades(identity.engine_key, identity.engine_version)
        equity = await source.fetch_crypto_equity(identity.engine_key, identity.engine_version)
        positions = await source.fetch_crypto_positions(identity.engine_key, identity.engine_version)
        return EngineDataset(
            identity=identity,
            trades=self.normalize_trades(trades),
            snapshots=self.normalize_snapshots(equity),
            unrealized_pnl=_sum_field(positions, "unrealized_pnl"),
        )


# =============================================================================
# SELECTION
# =============================================================================

# (run_mode, asset_class) -> shape; None matches any asset class
_SHAPES: Dict[Tuple[RunMode, Optional[AssetClass]], Type[RecordNormalizer]] = {
    (RunMode.PRIMARY, None): LiveStockNormalizer,
    (RunMode.SHADOW, AssetClass.CRYPTO): ShadowCryptoNormalizer,
    (RunMode.SHADOW, None): ShadowStockNormalizer,
}


def normalizer_for(identity: EngineIdentity, config: MetricsConfig = DEFAULT_METRICS_CONFIG) -> RecordNormalizer:
    """Pick the record shape for an identity."""
    shape = _SHAPES.get((identity.run_mode, identity.asset_class)) or _SHAPES[(identity.run_mode, None)]
    return shape(config)


def identity_from_row(row: Row) -> EngineIdentity:
    """Build an EngineIdentity from an engine_versions row."""
    asset_raw = str(row.get("asset_class") or AssetClass.STOCK.value).strip().lower()
    try:
        asset_class = AssetClass(asset_raw)
    except ValueError:
        logger.warning(f"Unknown asset class {asset_raw!r} for {row.get('engine_version')}, using stock")
        asset_class = AssetClass.STOCK

    return EngineIdentity(
        engine_key=str(row.get("engine_key") or ""),
        engine_version=str(row.get("engine_version") or ""),
        run_mode=RunMode(str(row.get("run_mode") or "").strip().upper()),
        asset_class=asset_class,
        is_enabled=bool(row.get("is_enabled", True)),
        display_label=row.get("notes") or None,
        started_at=to_utc(row.get("started_at")),
        stopped_at=to_utc(row.get("stopped_at")),
    )
