"""Trade log entry models."""

import hashlib
from datetime import datetime, timedelta
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from scalpcore.models.position import Direction


class TradeAction(str, Enum):
    """Order action (not the position direction)."""

    BUY = "BUY"
    SELL = "SELL"


class ExitReason(str, Enum):
    """Why a position was closed, in sweep priority order."""

    OPPOSING_SIGNAL = "OPPOSING_SIGNAL"
    TAKE_PROFIT = "TAKE_PROFIT"
    STOP_LOSS = "STOP_LOSS"
    TIME_EXIT = "TIME_EXIT"
    MANUAL = "MANUAL"


def entry_action(direction: Direction) -> TradeAction:
    """Action that opens a position: buy for long, sell for short."""
    return TradeAction.BUY if direction == Direction.LONG else TradeAction.SELL


def exit_action(direction: Direction) -> TradeAction:
    """Action that closes a position: sell a long, buy back a short."""
    return TradeAction.SELL if direction == Direction.LONG else TradeAction.BUY


def generate_trade_id(
    symbol: str, action: TradeAction, timestamp: datetime, sequence: int
) -> str:
    """Generate a deterministic trade ID.

    The sequence number (position in the trade log) keeps IDs unique when
    two trades share a timestamp.
    """
    ts_str = timestamp.strftime("%Y%m%d%H%M%S%f")
    key = f"{symbol}:{action.value}:{ts_str}:{sequence}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


class Trade(BaseModel):
    """Append-only ledger entry. Closing trades carry realized P&L."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    action: TradeAction
    price: float
    quantity: int = Field(ge=0)
    timestamp: datetime
    signal: str  # Signal kind for entries, exit reason for closes
    confidence: float
    realized_pnl: float | None = None
    exit_price: float | None = None
    hold_duration: timedelta | None = None
    reserved: float | None = None  # Capital an opening trade took from cash

    @property
    def is_closing(self) -> bool:
        return self.realized_pnl is not None

    @property
    def position_direction(self) -> Direction:
        """Direction of the position this trade opened or closed."""
        if self.is_closing:
            return Direction.LONG if self.action == TradeAction.SELL else Direction.SHORT
        return Direction.LONG if self.action == TradeAction.BUY else Direction.SHORT
