"""Tests for technical indicators."""

import math

import pytest

from scalpcore.indicators import (
    IndicatorCalculator,
    ema,
    moving_average_cross,
    rsi,
    sma,
    volatility,
    vwap,
)
from scalpcore.models import Trend
from tests.conftest import make_series


class TestSMA:
    """Tests for SMA calculation."""

    def test_sma_basic(self):
        """SMA averages the last `period` values."""
        values = [float(i) for i in range(1, 11)]  # 1-10
        assert sma(values, 3) == pytest.approx(9.0)
        assert sma(values, 10) == pytest.approx(5.5)

    def test_sma_insufficient_data(self):
        """Fewer values than the period returns 0."""
        assert sma([100.0, 101.0], 3) == 0.0
        assert sma([], 50) == 0.0


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_seeds_on_first_value(self):
        assert ema([10.0], 5) == pytest.approx(10.0)

    def test_ema_recursive(self):
        # multiplier = 2 / (3 + 1) = 0.5
        assert ema([1.0, 2.0], 3) == pytest.approx(1.5)
        assert ema([1.0, 2.0, 3.0], 3) == pytest.approx(2.25)

    def test_ema_empty(self):
        assert ema([], 5) == 0.0


class TestRSI:
    """Tests for RSI calculation."""

    def test_rsi_neutral_with_short_series(self):
        """RSI is 50 when there are not period + 1 closes."""
        assert rsi([100.0 + i for i in range(14)]) == 50.0
        assert rsi([]) == 50.0

    def test_rsi_all_gains(self):
        """No losses returns 100 instead of dividing by zero."""
        closes = [100.0 + i for i in range(20)]
        assert rsi(closes) == 100.0

    def test_rsi_all_losses(self):
        closes = [100.0 - i for i in range(20)]
        assert rsi(closes) == pytest.approx(0.0)

    def test_rsi_balanced(self):
        """Equal average gain and loss gives 50."""
        closes = [100.0, 101.0] * 8  # Alternating +1/-1
        closes = closes[:15]
        assert rsi(closes) == pytest.approx(50.0)

    def test_rsi_uses_trailing_window(self):
        # Old losses fall out of the 14-delta window
        closes = [200.0 - i * 5 for i in range(10)] + [100.0 + i for i in range(15)]
        assert rsi(closes) == 100.0

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_rsi_in_range(self, seed):
        closes = [100 + math.sin(i * seed) * 5 + i * 0.1 for i in range(60)]
        value = rsi(closes)
        assert 0.0 <= value <= 100.0


class TestVWAP:
    """Tests for VWAP calculation."""

    def test_vwap_weighted_by_volume(self):
        # Typical prices 10 and 20, volumes 1 and 3
        result = vwap([10.0, 20.0], [10.0, 20.0], [10.0, 20.0], [1.0, 3.0])
        assert result == pytest.approx(17.5)

    def test_vwap_zero_volume(self):
        assert vwap([101.0], [99.0], [100.0], [0.0]) == 0.0

    def test_vwap_empty(self):
        assert vwap([], [], [], []) == 0.0

    def test_vwap_within_range(self):
        series = make_series([100 + (i % 7) for i in range(50)])
        result = vwap(
            [p.high for p in series],
            [p.low for p in series],
            [p.close for p in series],
            [p.volume for p in series],
        )
        assert min(p.low for p in series) <= result <= max(p.high for p in series)


class TestMovingAverageCross:
    """Tests for MA50/MA100 cross detection."""

    def test_no_cross_flags_below_201_points(self):
        closes = [100.0] * 199 + [200.0]
        result = moving_average_cross(closes)
        assert result.golden_cross is False
        assert result.death_cross is False

    def test_golden_cross(self):
        """Flat series then a jump: MA50 crosses above MA100 on the last bar."""
        closes = [100.0] * 200 + [200.0]
        result = moving_average_cross(closes)
        assert result.golden_cross is True
        assert result.death_cross is False
        assert result.trend == Trend.BULLISH

    def test_death_cross(self):
        closes = [100.0] * 200 + [50.0]
        result = moving_average_cross(closes)
        assert result.death_cross is True
        assert result.golden_cross is False
        assert result.trend == Trend.BEARISH

    def test_rising_series_is_bullish(self):
        closes = [100.0 + i for i in range(120)]
        result = moving_average_cross(closes)
        assert result.ma50 > result.ma100
        assert result.trend == Trend.BULLISH

    def test_short_series_is_neutral(self):
        result = moving_average_cross([100.0] * 30)
        assert result.ma50 == 0.0
        assert result.ma100 == 0.0
        assert result.trend == Trend.NEUTRAL


class TestVolatility:
    """Tests for annualized volatility."""

    def test_default_with_short_series(self):
        assert volatility([100.0] * 19) == 0.02

    def test_constant_prices(self):
        assert volatility([100.0] * 30) == pytest.approx(0.0)

    def test_annualized(self):
        # Alternating +1%/-1% style moves give a positive, scaled value
        closes = [100.0 if i % 2 == 0 else 101.0 for i in range(20)]
        result = volatility(closes)
        assert result > 0.1


class TestIndicatorCalculator:
    """Tests for the snapshot facade."""

    def test_empty_series_defaults(self):
        snapshot = IndicatorCalculator().calculate([])
        assert snapshot.rsi == 50.0
        assert snapshot.vwap == 0.0
        assert snapshot.ma50 == 0.0
        assert snapshot.ma100 == 0.0
        assert snapshot.golden_cross is False
        assert snapshot.trend == Trend.NEUTRAL
        assert snapshot.volatility == 0.02
        assert snapshot.points == 0

    def test_values_rounded(self):
        series = make_series([100.0 + i / 3 for i in range(150)])
        snapshot = IndicatorCalculator().calculate(series)
        assert snapshot.ma50 == round(snapshot.ma50, 2)
        assert snapshot.vwap == round(snapshot.vwap, 2)
        assert snapshot.rsi == 100.0
        assert snapshot.trend == Trend.BULLISH
        assert snapshot.points == 150

    def test_deterministic(self):
        series = make_series([100 + math.cos(i / 5) * 3 for i in range(210)])
        calc = IndicatorCalculator()
        assert calc.calculate(series) == calc.calculate(series)
