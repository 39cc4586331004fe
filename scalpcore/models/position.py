"""Open position model.

A position is stored as a direction tag plus a positive quantity. The
signed quantity (positive = long, negative = short) is derived for the
P&L arithmetic and never stored.
"""

from datetime import datetime, timedelta
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class Direction(int, Enum):
    """Position direction."""

    LONG = 1
    SHORT = -1


class Position(BaseModel):
    """One open position. At most one exists per symbol."""

    symbol: str
    direction: Direction
    quantity: int = Field(gt=0)
    avg_price: float = Field(gt=0)
    entry_time: datetime
    target_price: float
    stop_loss_price: float
    reserved: float = Field(ge=0)  # Capital taken from available cash at entry

    @property
    def signed_quantity(self) -> int:
        """Quantity with sign: positive for long, negative for short."""
        return self.direction.value * self.quantity

    @property
    def is_long(self) -> bool:
        return self.direction == Direction.LONG

    def price_return_percent(self, price: float) -> float:
        """Price change since entry in percent (not direction-adjusted)."""
        return (price - self.avg_price) / self.avg_price * 100

    def pnl_at(self, price: float) -> float:
        """P&L if the whole position were closed at price.

        Long: (price - avg) * qty. Short: (avg - price) * |qty|.
        """
        return (price - self.avg_price) * self.signed_quantity

    def hold_duration(self, now: datetime) -> timedelta:
        return now - self.entry_time


class PositionView(BaseModel):
    """Read-only projection of a position marked to the last seen price."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    direction: Direction
    quantity: int
    avg_price: float
    entry_time: datetime
    target_price: float
    stop_loss_price: float
    reserved: float
    last_price: float
    unrealized_pnl: float
