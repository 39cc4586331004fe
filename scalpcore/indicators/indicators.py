"""Technical indicators for signal generation.

All functions are pure and deterministic. Insufficient history is not an
error: each function documents the neutral value it returns instead.
"""

import math
from typing import Sequence

import numpy as np

from scalpcore.models import (
    IndicatorSnapshot,
    MovingAverageCross,
    PricePoint,
    Trend,
)

RSI_PERIOD = 14
RSI_NEUTRAL = 50.0

FAST_MA_PERIOD = 50
SLOW_MA_PERIOD = 100
# Cross detection needs a full slow window on both the current and previous bar
CROSS_MIN_POINTS = 201

VOLATILITY_WINDOW = 20
VOLATILITY_DEFAULT = 0.02
TRADING_DAYS = 252


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def sma(values: Sequence[float], period: int) -> float:
    """
    Calculate Simple Moving Average of the last `period` values.

    Args:
        values: Sequence of prices, oldest first
        period: SMA period

    Returns:
        SMA value, or 0.0 if fewer than `period` values exist
    """
    if period <= 0 or len(values) < period:
        return 0.0
    return float(np.mean(_as_array(values)[-period:]))


def ema(values: Sequence[float], period: int) -> float:
    """
    Calculate Exponential Moving Average.

    Seeds on the first value and applies multiplier 2 / (period + 1) to
    every following value.

    Returns:
        Latest EMA value, or 0.0 for an empty sequence
    """
    if len(values) == 0:
        return 0.0

    arr = _as_array(values)
    multiplier = 2.0 / (period + 1)
    result = arr[0]
    for value in arr[1:]:
        result = value * multiplier + result * (1 - multiplier)
    return float(result)


def rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> float:
    """
    Calculate Relative Strength Index over the trailing `period` deltas.

    RSI = 100 - 100 / (1 + avg_gain / avg_loss), using simple averages.

    Returns:
        RSI in [0, 100]; 50 with fewer than period + 1 closes;
        100 when the window has no losses
    """
    if len(closes) < period + 1:
        return RSI_NEUTRAL

    deltas = np.diff(_as_array(closes))[-period:]
    avg_gain = float(np.sum(np.clip(deltas, 0, None))) / period
    avg_loss = float(np.sum(np.clip(-deltas, 0, None))) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def vwap(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    volumes: Sequence[float],
) -> float:
    """
    Calculate Volume Weighted Average Price over the whole window.

    Uses typical price (high + low + close) / 3.

    Returns:
        VWAP, or 0.0 when the window is empty or total volume is 0
    """
    if len(closes) == 0:
        return 0.0

    vol = _as_array(volumes)
    total_volume = float(np.sum(vol))
    if total_volume <= 0:
        return 0.0

    typical = (_as_array(highs) + _as_array(lows) + _as_array(closes)) / 3
    return float(np.sum(typical * vol)) / total_volume


def moving_average_cross(closes: Sequence[float]) -> MovingAverageCross:
    """
    Calculate MA50 and MA100 with golden/death cross detection.

    Golden cross: previous MA50 <= previous MA100 and MA50 > MA100.
    Death cross: previous MA50 >= previous MA100 and MA50 < MA100.
    Both flags stay False with fewer than 201 closes.
    """
    ma50 = sma(closes, FAST_MA_PERIOD)
    ma100 = sma(closes, SLOW_MA_PERIOD)

    golden_cross = False
    death_cross = False

    if len(closes) >= CROSS_MIN_POINTS:
        previous = closes[:-1]
        prev_ma50 = sma(previous, FAST_MA_PERIOD)
        prev_ma100 = sma(previous, SLOW_MA_PERIOD)

        golden_cross = prev_ma50 <= prev_ma100 and ma50 > ma100
        death_cross = prev_ma50 >= prev_ma100 and ma50 < ma100

    if ma50 > ma100:
        trend = Trend.BULLISH
    elif ma50 < ma100:
        trend = Trend.BEARISH
    else:
        trend = Trend.NEUTRAL

    return MovingAverageCross(
        ma50=ma50,
        ma100=ma100,
        golden_cross=golden_cross,
        death_cross=death_cross,
        trend=trend,
    )


def volatility(closes: Sequence[float]) -> float:
    """
    Calculate annualized volatility of the trailing 20 closes.

    Population standard deviation of simple returns, scaled by sqrt(252).

    Returns:
        Annualized volatility, or 0.02 with fewer than 20 closes
    """
    if len(closes) < VOLATILITY_WINDOW:
        return VOLATILITY_DEFAULT

    prices = _as_array(closes)[-VOLATILITY_WINDOW:]
    returns = np.diff(prices) / prices[:-1]
    return float(np.std(returns)) * math.sqrt(TRADING_DAYS)


# =============================================================================
# IndicatorCalculator class
# =============================================================================

class IndicatorCalculator:
    """Calculator for all indicators the signal classifier consumes."""

    def __init__(self, rsi_period: int = RSI_PERIOD, precision: int = 2):
        self.rsi_period = rsi_period
        self.precision = precision

    def calculate(self, series: Sequence[PricePoint]) -> IndicatorSnapshot:
        """
        Calculate an indicator snapshot for the latest bar.

        RSI, VWAP and the moving averages are rounded to `precision`
        decimals; the cross flags and trend come from unrounded values.

        Args:
            series: Price points, oldest first (may be empty)

        Returns:
            IndicatorSnapshot with neutral defaults where history is short
        """
        closes = [p.close for p in series]
        highs = [p.high for p in series]
        lows = [p.low for p in series]
        volumes = [p.volume for p in series]

        ma = moving_average_cross(closes)

        return IndicatorSnapshot(
            rsi=round(rsi(closes, self.rsi_period), self.precision),
            vwap=round(vwap(highs, lows, closes, volumes), self.precision),
            ma50=round(ma.ma50, self.precision),
            ma100=round(ma.ma100, self.precision),
            golden_cross=ma.golden_cross,
            death_cross=ma.death_cross,
            trend=ma.trend,
            volatility=volatility(closes),
            points=len(closes),
        )
