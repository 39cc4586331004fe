"""Account aggregate and its read-only snapshot."""

from datetime import date
from pydantic import BaseModel, ConfigDict, Field

from scalpcore.models.position import Position, PositionView
from scalpcore.models.trade import Trade


class Account(BaseModel):
    """Cash ledger, trade log and open positions for one paper account.

    Mutated only by the position manager; everything else reads snapshots.
    """

    initial_cash: float = Field(gt=0)
    available_cash: float
    total_realized_pnl: float = 0.0
    day_realized_pnl: float = 0.0
    trading_day: date | None = None
    trades: list[Trade] = Field(default_factory=list)
    positions: dict[str, Position] = Field(default_factory=dict)

    @classmethod
    def fresh(cls, initial_cash: float) -> "Account":
        """Create an account with all cash available and no history."""
        return cls(initial_cash=initial_cash, available_cash=initial_cash)

    @property
    def reserved_capital(self) -> float:
        """Capital currently locked in open positions."""
        return sum(p.reserved for p in self.positions.values())


class AccountSnapshot(BaseModel):
    """Read-only account projection handed to callers after each tick."""

    model_config = ConfigDict(frozen=True)

    available_cash: float
    total_pnl: float
    day_pnl: float
    reserved_capital: float
    unrealized_pnl: float
    equity: float
    open_positions: list[PositionView] = Field(default_factory=list)
    recent_trades: list[Trade] = Field(default_factory=list)  # Newest first
