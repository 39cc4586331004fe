"""Data models."""

from scalpcore.models.market import MarketData, PricePoint, Quote
from scalpcore.models.position import Direction, Position, PositionView
from scalpcore.models.signal import (
    IndicatorSnapshot,
    MarketAnalysis,
    MovingAverageCross,
    PriceTargets,
    RsiZone,
    Signal,
    SignalKind,
    Trend,
    TrendDirection,
    VwapPosition,
)
from scalpcore.models.trade import (
    ExitReason,
    Trade,
    TradeAction,
    entry_action,
    exit_action,
    generate_trade_id,
)
from scalpcore.models.account import Account, AccountSnapshot
from scalpcore.models.config import TradingParams

__all__ = [
    "MarketData",
    "PricePoint",
    "Quote",
    "Direction",
    "Position",
    "PositionView",
    "IndicatorSnapshot",
    "MarketAnalysis",
    "MovingAverageCross",
    "PriceTargets",
    "RsiZone",
    "Signal",
    "SignalKind",
    "Trend",
    "TrendDirection",
    "VwapPosition",
    "ExitReason",
    "Trade",
    "TradeAction",
    "entry_action",
    "exit_action",
    "generate_trade_id",
    "Account",
    "AccountSnapshot",
    "TradingParams",
]
