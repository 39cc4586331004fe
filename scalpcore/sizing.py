"""Position sizing against available cash.

quantity = floor(min(max_position_notional, cash * utilization) / price)

When risk_per_trade_percent is configured and a stop is known, quantity
is further bounded by floor(cash * risk% / |entry - stop|).
"""

import math
from dataclasses import dataclass

from scalpcore.models import Direction, TradingParams


@dataclass(frozen=True, slots=True)
class SizingResult:
    """Outcome of sizing one entry.

    quantity == 0 means the entry must be skipped; reason says why.
    """

    quantity: int = 0
    notional: float = 0.0
    reserve: float = 0.0  # Capital to take from available cash
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.quantity > 0


class RiskSizer:
    """Size entries from account cash and the configured limits."""

    def __init__(self, params: TradingParams):
        self.params = params

    def reserve_for(self, direction: Direction, notional: float) -> float:
        """Capital reserved for a position: full cost long, margin short."""
        if direction == Direction.LONG:
            return notional
        return notional * self.params.margin_fraction_for_shorts

    def size(
        self,
        available_cash: float,
        price: float,
        direction: Direction,
        stop_loss_price: float | None = None,
    ) -> SizingResult:
        """
        Calculate quantity and required capital for an entry.

        Args:
            available_cash: Cash not reserved by open positions
            price: Entry price
            direction: LONG reserves full cost, SHORT reserves margin
            stop_loss_price: Stop used by the risk-based bound, if enabled

        Returns:
            SizingResult; quantity 0 with a reason when the entry is rejected
        """
        p = self.params

        if price <= 0:
            return SizingResult(reason=f"invalid price {price}")

        if available_cash < p.min_available_cash:
            return SizingResult(
                reason=f"available cash {available_cash:.2f} below floor {p.min_available_cash:.2f}"
            )

        budget = min(p.max_position_notional, available_cash * p.cash_utilization_fraction)
        quantity = math.floor(budget / price)

        if p.risk_per_trade_percent is not None and stop_loss_price is not None:
            risk_per_unit = abs(price - stop_loss_price)
            if risk_per_unit > 0:
                risk_amount = available_cash * p.risk_per_trade_percent / 100
                quantity = min(quantity, math.floor(risk_amount / risk_per_unit))

        if quantity <= 0:
            return SizingResult(reason=f"quantity {quantity} at price {price:.2f}")

        notional = quantity * price
        reserve = self.reserve_for(direction, notional)
        if reserve > available_cash:
            return SizingResult(
                reason=f"required {reserve:.2f} exceeds available {available_cash:.2f}"
            )

        return SizingResult(quantity=quantity, notional=notional, reserve=reserve)
