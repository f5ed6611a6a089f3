"""
VANTAGE configuration - loaded from environment (VANTAGE_*).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="VANTAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database (upstream tables are read from here)
    database_url: str = "sqlite:///vantage.db"

    # Engine metrics
    starting_equity: float = 100_000.0
    recent_trades_limit: int = 100
    live_snapshot_limit: int = 1000  # Plenty for a historical curve
    live_strategy: str = "SWING"  # Strategy tag on live_* journal tables

    # Crypto engine compared against the live stock account
    compare_crypto_engine_key: str = "CRYPTO_V1_SHADOW"
    compare_crypto_version: str = "v1"

    # Universe promotion
    universe_max_retries: int = 5
    confidence_window_days: int = 14

    # Variant scoring weights (drawdown is subtracted)
    score_weight_win_rate: float = 0.25
    score_weight_expectancy: float = 0.25
    score_weight_avg_rr: float = 0.15
    score_weight_sharpe: float = 0.2
    score_weight_drawdown: float = 0.1
    score_trade_count_divisor: float = 30.0
    score_trade_count_cap: float = 0.05

    # Logging
    log_level: str = "INFO"


settings = Settings()


def get_settings() -> Settings:
    """Return application settings (for dependency injection)."""
    return settings
