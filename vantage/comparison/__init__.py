"""VANTAGE Comparison - engine version comparison views."""

from vantage.comparison.matrix import (
    build_matrix,
    comparison_row_from_dict,
    export_rows,
    style_for_timeframe,
    summarize_by_style,
    ticker_entries,
)
from vantage.comparison.service import ComparisonService

__all__ = [
    "build_matrix",
    "comparison_row_from_dict",
    "export_rows",
    "style_for_timeframe",
    "summarize_by_style",
    "ticker_entries",
    "ComparisonService",
]
