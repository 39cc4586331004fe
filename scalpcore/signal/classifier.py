"""Signal classifier implementing the intraday scalping rule cascade.

Rules are evaluated strictly in order and the first match wins:
strong buy, buy variants from most to least strict, the mirrored sell
side, then the aggressive-mode momentum fallbacks, else HOLD.
Confidence is a fixed value per rule, not a continuous score.

Aggressive mode (min_confidence <= cutoff) relaxes the oversold and
overbought RSI levels from 35/65 to 45/55 and enables the rules marked
`aggressive_only`. In aggressive mode the two momentum tiers can fire in
either direction depending only on MA ordering; the cascade order is the
tie-break.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from scalpcore.models import (
    IndicatorSnapshot,
    MarketAnalysis,
    RsiZone,
    Signal,
    SignalKind,
    Trend,
    TrendDirection,
    TradingParams,
    VwapPosition,
)
from scalpcore.signal.targets import calculate_price_targets

logger = logging.getLogger(__name__)

CONSERVATIVE_OVERSOLD = 35.0
CONSERVATIVE_OVERBOUGHT = 65.0
AGGRESSIVE_OVERSOLD = 45.0
AGGRESSIVE_OVERBOUGHT = 55.0

# Non-HOLD confidence is clamped into this band
MIN_CONFIDENCE = 40.0
MAX_CONFIDENCE = 95.0

# Analysis label thresholds
ANALYSIS_OVERSOLD = 30.0
ANALYSIS_OVERBOUGHT = 70.0
VWAP_AT_LEVEL_BAND = 0.005


@dataclass(frozen=True, slots=True)
class RuleContext:
    """Inputs every rule predicate sees."""

    price: float
    rsi: float
    vwap: float
    ma50: float
    ma100: float
    oversold_level: float
    overbought_level: float
    aggressive: bool

    @property
    def above_vwap(self) -> bool:
        return self.price > self.vwap

    @property
    def above_ma50(self) -> bool:
        return self.price > self.ma50

    @property
    def below_ma50(self) -> bool:
        return self.price < self.ma50

    @property
    def bullish(self) -> bool:
        return self.ma50 > self.ma100

    @property
    def bearish(self) -> bool:
        return self.ma50 < self.ma100

    @property
    def oversold(self) -> bool:
        return self.rsi <= self.oversold_level

    @property
    def overbought(self) -> bool:
        return self.rsi >= self.overbought_level


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    kind: SignalKind
    confidence: float
    when: Callable[[RuleContext], bool]
    aggressive_only: bool = False


RULES: tuple[Rule, ...] = (
    # Buy side
    Rule("strong_buy", SignalKind.STRONG_BUY, 95,
         lambda c: c.rsi <= 30 and c.above_vwap and c.bullish),
    Rule("buy_rsi35_ma50", SignalKind.BUY, 85,
         lambda c: c.rsi <= 35 and c.above_vwap and c.above_ma50),
    Rule("buy_oversold", SignalKind.BUY, 80,
         lambda c: c.oversold and c.above_vwap),
    Rule("buy_rsi50_trend", SignalKind.BUY, 75,
         lambda c: c.rsi <= 50 and c.above_vwap and c.bullish),
    Rule("buy_rsi55_ma50", SignalKind.BUY, 65,
         lambda c: c.rsi <= 55 and c.above_vwap and c.above_ma50, aggressive_only=True),
    Rule("buy_rsi60", SignalKind.BUY, 55,
         lambda c: c.rsi <= 60 and c.above_vwap, aggressive_only=True),
    # Sell side
    Rule("strong_sell", SignalKind.STRONG_SELL, 95,
         lambda c: c.rsi >= 70 and not c.above_vwap and c.bearish),
    Rule("sell_rsi65_ma50", SignalKind.SELL, 85,
         lambda c: c.rsi >= 65 and not c.above_vwap and c.below_ma50),
    Rule("sell_overbought", SignalKind.SELL, 80,
         lambda c: c.overbought and not c.above_vwap),
    Rule("sell_rsi50_trend", SignalKind.SELL, 75,
         lambda c: c.rsi >= 50 and not c.above_vwap and c.bearish),
    Rule("sell_rsi45_ma50", SignalKind.SELL, 65,
         lambda c: c.rsi >= 45 and not c.above_vwap and c.below_ma50, aggressive_only=True),
    Rule("sell_rsi40", SignalKind.SELL, 55,
         lambda c: c.rsi >= 40 and not c.above_vwap, aggressive_only=True),
    # Momentum
    Rule("momentum_buy", SignalKind.BUY, 60,
         lambda c: c.bullish and c.above_vwap and 40 <= c.rsi <= 60, aggressive_only=True),
    Rule("momentum_sell", SignalKind.SELL, 60,
         lambda c: c.bearish and not c.above_vwap and 40 <= c.rsi <= 60, aggressive_only=True),
    # Trend-only momentum
    Rule("trend_buy", SignalKind.BUY, 52,
         lambda c: c.bullish and c.rsi >= 35, aggressive_only=True),
    Rule("trend_sell", SignalKind.SELL, 52,
         lambda c: c.bearish and c.rsi <= 65, aggressive_only=True),
)


def clamp_confidence(kind: SignalKind, confidence: float) -> float:
    """Clamp non-HOLD confidence into [40, 95]; HOLD passes through."""
    if kind == SignalKind.HOLD:
        return confidence
    return float(min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, round(confidence))))


def analyze(price: float, snapshot: IndicatorSnapshot) -> MarketAnalysis:
    """Label RSI zone, price versus VWAP and overall trend direction."""
    if snapshot.rsi < ANALYSIS_OVERSOLD:
        rsi_zone = RsiZone.OVERSOLD
    elif snapshot.rsi > ANALYSIS_OVERBOUGHT:
        rsi_zone = RsiZone.OVERBOUGHT
    else:
        rsi_zone = RsiZone.NEUTRAL

    vwap_position = VwapPosition.AT_LEVEL
    deviation = 0.0
    if snapshot.vwap > 0:
        deviation = abs(price - snapshot.vwap) / snapshot.vwap
        if deviation > VWAP_AT_LEVEL_BAND:
            vwap_position = VwapPosition.ABOVE if price > snapshot.vwap else VwapPosition.BELOW

    above_ma50 = price > snapshot.ma50
    above_ma100 = price > snapshot.ma100
    if above_ma50 and above_ma100 and snapshot.trend == Trend.BULLISH:
        trend_direction = TrendDirection.UPTREND
    elif not above_ma50 and not above_ma100 and snapshot.trend == Trend.BEARISH:
        trend_direction = TrendDirection.DOWNTREND
    else:
        trend_direction = TrendDirection.SIDEWAYS

    return MarketAnalysis(
        rsi_zone=rsi_zone,
        vwap_position=vwap_position,
        trend_direction=trend_direction,
        vwap_deviation=deviation,
    )


class SignalClassifier:
    """Turn an indicator snapshot and the current price into a Signal."""

    def __init__(self, params: TradingParams):
        self.params = params

    @property
    def aggressive(self) -> bool:
        return self.params.aggressive

    def _context(self, price: float, snapshot: IndicatorSnapshot) -> RuleContext:
        aggressive = self.aggressive
        return RuleContext(
            price=price,
            rsi=snapshot.rsi,
            vwap=snapshot.vwap,
            ma50=snapshot.ma50,
            ma100=snapshot.ma100,
            oversold_level=AGGRESSIVE_OVERSOLD if aggressive else CONSERVATIVE_OVERSOLD,
            overbought_level=AGGRESSIVE_OVERBOUGHT if aggressive else CONSERVATIVE_OVERBOUGHT,
            aggressive=aggressive,
        )

    def match(self, ctx: RuleContext) -> Rule | None:
        """Return the first rule whose conditions hold, or None."""
        for rule in RULES:
            if rule.aggressive_only and not ctx.aggressive:
                continue
            if rule.when(ctx):
                return rule
        return None

    def classify(self, price: float | None, snapshot: IndicatorSnapshot) -> Signal:
        """
        Evaluate the rule cascade.

        Args:
            price: Current price (None when there is no quote)
            snapshot: Indicators for the same symbol and tick

        Returns:
            Signal; HOLD with confidence 0 when price, VWAP or either
            moving average is unavailable
        """
        if not price or not snapshot.vwap or not snapshot.ma50 or not snapshot.ma100:
            return Signal(kind=SignalKind.HOLD, confidence=0.0, rule="no_data")

        ctx = self._context(price, snapshot)
        rule = self.match(ctx)

        if rule is None:
            kind, confidence, name = SignalKind.HOLD, 0.0, "hold"
        else:
            kind = rule.kind
            confidence = clamp_confidence(kind, rule.confidence)
            name = rule.name

        targets = calculate_price_targets(
            price, snapshot.vwap, snapshot.ma50, snapshot.volatility, kind
        )
        signal = Signal(
            kind=kind,
            confidence=confidence,
            price_targets=targets,
            rule=name,
            analysis=analyze(price, snapshot),
        )

        if kind != SignalKind.HOLD and confidence >= self.params.min_confidence:
            logger.debug(
                "Signal %s (%s, %.0f%%) | RSI %.1f | price %.2f | VWAP %.2f | MA50 %.2f",
                kind.value, name, confidence, ctx.rsi, price, ctx.vwap, ctx.ma50,
            )
        return signal
