"""
Coercion helpers for values read from upstream tables.

Upstream pipelines write loosely typed rows (nulls, NaN, numeric strings).
Everything numeric is funnelled through these helpers so a single bad
field degrades to a safe default instead of raising.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

UTC = timezone.utc


def safe_float(value: Any, default: float = 0.0) -> float:
    """Convert to float; None, NaN, +/-inf and garbage become `default`."""
    if value is None or isinstance(value, bool):
        return default
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(v):
        return default
    return v


def safe_optional_float(value: Any) -> Optional[float]:
    """Like safe_float but keeps missing values as None."""
    if value is None:
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def safe_int(value: Any, default: int = 0) -> int:
    """Convert to int via safe_float (so "12.0" and 12.7 both work)."""
    return int(safe_float(value, float(default)))


def to_utc(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp into an aware UTC datetime.

    Accepts datetime objects (naive ones are taken as UTC, which is what
    SQLite hands back) and ISO-8601 strings, including a trailing "Z".
    Returns None for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def utc_date_key(value: Optional[datetime]) -> Optional[str]:
    """Calendar date (YYYY-MM-DD) of a timestamp in UTC."""
    dt = to_utc(value)
    if dt is None:
        return None
    return dt.strftime("%Y-%m-%d")


def normalize_ticker(ticker: Any) -> str:
    """Canonical ticker form: stripped and upper-cased."""
    return str(ticker or "").strip().upper()
