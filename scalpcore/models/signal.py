"""Indicator snapshot and trading signal models."""

from enum import Enum
from pydantic import BaseModel, ConfigDict

from scalpcore.models.position import Direction


class SignalKind(str, Enum):
    """Discrete trading signal."""

    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"

    @property
    def is_buy(self) -> bool:
        return self in (SignalKind.STRONG_BUY, SignalKind.BUY)

    @property
    def is_sell(self) -> bool:
        return self in (SignalKind.STRONG_SELL, SignalKind.SELL)

    @property
    def direction(self) -> Direction | None:
        """Position direction this signal would open, None for HOLD."""
        if self.is_buy:
            return Direction.LONG
        if self.is_sell:
            return Direction.SHORT
        return None


class Trend(str, Enum):
    """Ordering of MA50 versus MA100."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class RsiZone(str, Enum):
    OVERSOLD = "OVERSOLD"
    OVERBOUGHT = "OVERBOUGHT"
    NEUTRAL = "NEUTRAL"


class VwapPosition(str, Enum):
    ABOVE = "ABOVE"
    BELOW = "BELOW"
    AT_LEVEL = "AT_LEVEL"


class TrendDirection(str, Enum):
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    SIDEWAYS = "SIDEWAYS"


class MovingAverageCross(BaseModel):
    """MA50/MA100 pair with cross detection."""

    model_config = ConfigDict(frozen=True)

    ma50: float
    ma100: float
    golden_cross: bool = False
    death_cross: bool = False
    trend: Trend = Trend.NEUTRAL


class IndicatorSnapshot(BaseModel):
    """Indicators derived from the trailing window available on one tick."""

    model_config = ConfigDict(frozen=True)

    rsi: float = 50.0
    vwap: float = 0.0
    ma50: float = 0.0
    ma100: float = 0.0
    golden_cross: bool = False
    death_cross: bool = False
    trend: Trend = Trend.NEUTRAL
    volatility: float = 0.02
    points: int = 0  # Number of price points the snapshot was computed from


class MarketAnalysis(BaseModel):
    """Human-readable classification of the indicators against the price."""

    model_config = ConfigDict(frozen=True)

    rsi_zone: RsiZone = RsiZone.NEUTRAL
    vwap_position: VwapPosition = VwapPosition.AT_LEVEL
    trend_direction: TrendDirection = TrendDirection.SIDEWAYS
    vwap_deviation: float = 0.0


class PriceTargets(BaseModel):
    """Entry, exit, stop and take-profit levels suggested for a signal."""

    model_config = ConfigDict(frozen=True)

    buy: float
    sell: float
    stop_loss: float
    take_profit: float


class Signal(BaseModel):
    """Trading signal produced once per (symbol, tick)."""

    model_config = ConfigDict(frozen=True)

    kind: SignalKind = SignalKind.HOLD
    confidence: float = 0.0
    price_targets: PriceTargets | None = None
    rule: str = "hold"  # Name of the matched rule
    analysis: MarketAnalysis | None = None

    @property
    def direction(self) -> Direction | None:
        return self.kind.direction

    def opposes(self, direction: Direction) -> bool:
        """Check whether this signal points against an open position."""
        own = self.direction
        return own is not None and own != direction
