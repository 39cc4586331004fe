"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SCALPBOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Watchlist (NSE symbols, without exchange suffix)
    symbols: list[str] = ["RELIANCE", "TCS", "INFY", "HDFCBANK", "ICICIBANK"]

    # Tick loop
    tick_interval: float = 0.75  # seconds between ticks
    fetch_timeout: float = 10.0  # per-symbol market data timeout

    # Market data
    yahoo_base_url: str = "https://query1.finance.yahoo.com"
    history_interval: str = "1m"
    history_range: str = "1d"
    symbol_suffix: str = ".NS"

    # Persistence
    account_path: str = "data/account.json"
    trading_config_path: str = "trading.yaml"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
