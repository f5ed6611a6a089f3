"""
VANTAGE enumerations.
"""

from enum import Enum


class RunMode(str, Enum):
    """How an engine executes its signals."""

    PRIMARY = "PRIMARY"  # Live capital
    SHADOW = "SHADOW"  # Virtual portfolio on the same signal stream


class AssetClass(str, Enum):
    """Asset class an engine trades."""

    STOCK = "stock"
    CRYPTO = "crypto"
    OPTIONS = "options"
    FOREX = "forex"


class Side(str, Enum):
    """Canonical trade side."""

    LONG = "LONG"
    SHORT = "SHORT"


class Horizon(str, Enum):
    """Trading horizon, each with its own promotion rules."""

    DAY = "day"
    SWING = "swing"
    INVEST = "invest"

    @property
    def universe_name(self) -> str:
        """Name of the live-traded universe for this horizon."""
        return f"performance_{self.value}"


class TradingStyle(str, Enum):
    """Style buckets used by the engine comparison summary."""

    DAYTRADER = "DAYTRADER"
    SWING = "SWING"
    INVESTOR = "INVESTOR"
