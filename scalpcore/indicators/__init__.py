"""Technical indicators (pure math, no I/O)."""

from scalpcore.indicators.indicators import (
    sma,
    ema,
    rsi,
    vwap,
    moving_average_cross,
    volatility,
    IndicatorCalculator,
)

__all__ = [
    "sma",
    "ema",
    "rsi",
    "vwap",
    "moving_average_cross",
    "volatility",
    "IndicatorCalculator",
]
