"""Exception taxonomy for the trading core.

Insufficient history and insufficient capital are not exceptions: the
indicator functions return neutral defaults and the sizer returns an
empty SizingResult. Only contract violations and explicit drift checks
raise.
"""


class ScalpError(Exception):
    """Base class for all trading core errors."""


class InvariantViolation(ScalpError):
    """A caller bypassed the position state machine.

    Raised when opening a second position for a symbol that is already
    open, or closing a position that does not exist.
    """

    def __init__(self, symbol: str, message: str):
        super().__init__(f"{symbol}: {message}")
        self.symbol = symbol


class LedgerDriftError(ScalpError):
    """Replaying the trade log does not reproduce the current balance."""

    def __init__(self, drift: float, calculated_balance: float, current_balance: float):
        super().__init__(
            f"Ledger drift of {drift:.2f} "
            f"(calculated {calculated_balance:.2f}, current {current_balance:.2f})"
        )
        self.drift = drift
        self.calculated_balance = calculated_balance
        self.current_balance = current_balance
