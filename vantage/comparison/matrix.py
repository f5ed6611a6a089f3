"""
Engine Comparison

Views over engine_comparison_results (one row per engine version, ticker
and timeframe):

- matrix: ticker x version grid of headline stats
- style summary: per trading style and version, how many tickers were
  tested, how many were profitable, and the average R / win rate
- ticker entries: every result for one symbol
- export: CSV or plain dicts
"""

import io
import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from vantage.core.enums import TradingStyle
from vantage.core.models import ComparisonRow
from vantage.core.values import normalize_ticker, safe_optional_float
from vantage.storage.base import Row

logger = logging.getLogger(__name__)

MATRIX_FIELDS = ["pnl", "win_rate", "max_dd", "avg_r"]
EXPORT_COLUMNS = ["ticker", "version", "timeframe", "pnl", "win_rate", "max_dd", "avg_r"]

_STYLE_BY_TIMEFRAME = {
    "day": TradingStyle.DAYTRADER,
    "daytrader": TradingStyle.DAYTRADER,
    "swing": TradingStyle.SWING,
    "swingtrader": TradingStyle.SWING,
}


def style_for_timeframe(timeframe: Any) -> TradingStyle:
    """day/daytrader -> DAYTRADER, swing/swingtrader -> SWING, anything else INVESTOR."""
    return _STYLE_BY_TIMEFRAME.get(str(timeframe or "").strip().lower(), TradingStyle.INVESTOR)


def comparison_row_from_dict(row: Row) -> ComparisonRow:
    """Build a ComparisonRow; the stored trades JSON is reduced to a count."""
    trades = row.get("trades")
    trade_list = trades.get("trades") if isinstance(trades, dict) else None
    trades_total = safe_optional_float(row.get("trades_total"))

    return ComparisonRow(
        version=str(row.get("version") or ""),
        ticker=normalize_ticker(row.get("ticker")),
        timeframe=str(row.get("timeframe") or ""),
        pnl=safe_optional_float(row.get("pnl")),
        win_rate=safe_optional_float(row.get("win_rate")),
        max_dd=safe_optional_float(row.get("max_dd")),
        avg_r=safe_optional_float(row.get("avg_r")),
        trades_total=int(trades_total) if trades_total is not None else None,
        trades_count=len(trade_list) if isinstance(trade_list, list) else None,
    )


def _as_rows(rows: Iterable[Any]) -> List[ComparisonRow]:
    return [r if isinstance(r, ComparisonRow) else comparison_row_from_dict(r) for r in rows]


def build_matrix(rows: Iterable[Any]) -> Dict[str, Any]:
    """
    Ticker x version grid.

    Returns {"tickers": [...], "versions": [...], "matrix": {ticker: {version: stats}}}.
    A later row for the same ticker/version replaces an earlier one.
    """
    matrix: Dict[str, Dict[str, Dict[str, Optional[float]]]] = {}
    tickers = set()
    versions = set()

    for row in _as_rows(rows):
        tickers.add(row.ticker)
        versions.add(row.version)
        matrix.setdefault(row.ticker, {})[row.version] = {f: getattr(row, f) for f in MATRIX_FIELDS}

    return {
        "tickers": sorted(tickers),
        "versions": sorted(versions),
        "matrix": matrix,
    }


def summarize_by_style(rows: Iterable[Any], versions: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """
    Per trading style, per version: symbol_count, profitable_count
    (avg_r > 0), avg_avg_r and avg_win_rate. Missing avg_r / win_rate
    count as 0.
    """
    items = _as_rows(rows)
    if versions is not None:
        wanted = set(versions)
        items = [r for r in items if r.version in wanted]

    summary: Dict[str, Dict[str, Dict[str, float]]] = {s.value: {} for s in TradingStyle}

    if items:
        df = pd.DataFrame(
            {
                "style": [style_for_timeframe(r.timeframe).value for r in items],
                "version": [r.version for r in items],
                "avg_r": [r.avg_r for r in items],
                "win_rate": [r.win_rate for r in items],
            }
        )
        df[["avg_r", "win_rate"]] = df[["avg_r", "win_rate"]].astype(float).fillna(0.0)
        df["profitable"] = df["avg_r"] > 0

        grouped = df.groupby(["style", "version"]).agg(
            symbol_count=("avg_r", "size"),
            profitable_count=("profitable", "sum"),
            avg_avg_r=("avg_r", "mean"),
            avg_win_rate=("win_rate", "mean"),
        )
        for (style, version), stats in grouped.iterrows():
            summary[style][version] = {
                "symbol_count": int(stats["symbol_count"]),
                "profitable_count": int(stats["profitable_count"]),
                "avg_avg_r": float(stats["avg_avg_r"]),
                "avg_win_rate": float(stats["avg_win_rate"]),
            }

    return {
        "versions": sorted({r.version for r in items}),
        "styles": [s.value for s in TradingStyle],
        "summary": summary,
    }


def ticker_entries(rows: Iterable[Any], symbol: str) -> Dict[str, Any]:
    """Every comparison result for one symbol, sorted by version then timeframe."""
    ticker = normalize_ticker(symbol)
    entries = [r for r in _as_rows(rows) if r.ticker == ticker]
    entries.sort(key=lambda r: (r.version, r.timeframe))
    return {
        "ticker": ticker,
        "entries": [
            {
                "version": r.version,
                "timeframe": r.timeframe,
                "pnl": r.pnl,
                "win_rate": r.win_rate,
                "max_dd": r.max_dd,
                "avg_r": r.avg_r,
                "trades_count": r.trades_count,
            }
            for r in entries
        ],
    }


def export_rows(rows: Iterable[Any], fmt: str = "csv") -> Any:
    """
    Export comparison rows.

    fmt="json" returns a list of dicts; fmt="csv" returns CSV text with
    blank cells for missing values.
    """
    items = _as_rows(rows)
    fmt = (fmt or "csv").lower()

    if fmt == "json":
        return [r.to_dict() for r in items]
    if fmt != "csv":
        raise ValueError(f"Unsupported export format: {fmt}")

    df = pd.DataFrame([r.to_dict() for r in items], columns=EXPORT_COLUMNS)
    buffer = io.StringIO()
    df.to_csv(buffer, index=False, lineterminator="\n")
    logger.debug(f"Exported {len(items)} comparison rows as CSV")
    return buffer.getvalue()
