"""Cash ledger, trade log and reconciliation.

Longs reserve their full cost at entry, shorts only a margin fraction.
A close returns the reservation made at entry plus realized P&L. The
reconciliation replays the trade log with the same asymmetry and reports
any drift against the live balance.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable

from scalpcore.errors import InvariantViolation, LedgerDriftError
from scalpcore.models import (
    Account,
    Direction,
    Trade,
    TradeAction,
    generate_trade_id,
)

logger = logging.getLogger(__name__)

# Drift above one cent is a bug, not rounding
DRIFT_TOLERANCE = 0.01


class Ledger:
    """Money side of the account: cash, realized P&L and the trade log."""

    def __init__(self, account: Account):
        self.account = account

    @property
    def available_cash(self) -> float:
        return self.account.available_cash

    @property
    def total_realized_pnl(self) -> float:
        return self.account.total_realized_pnl

    @property
    def day_realized_pnl(self) -> float:
        return self.account.day_realized_pnl

    @property
    def trades(self) -> list[Trade]:
        return self.account.trades

    def reserve(self, symbol: str, amount: float) -> None:
        """Take capital out of available cash for a new position."""
        if amount < 0:
            raise InvariantViolation(symbol, f"negative reservation {amount}")
        if amount > self.account.available_cash:
            raise InvariantViolation(
                symbol,
                f"reservation {amount:.2f} exceeds available cash "
                f"{self.account.available_cash:.2f}",
            )
        self.account.available_cash -= amount

    def release(self, reserved: float, realized_pnl: float) -> None:
        """Return a position's reservation plus its realized P&L."""
        self.account.available_cash += reserved + realized_pnl
        self.account.total_realized_pnl += realized_pnl
        self.account.day_realized_pnl += realized_pnl

    def record(
        self,
        symbol: str,
        action: TradeAction,
        price: float,
        quantity: int,
        timestamp: datetime,
        signal: str,
        confidence: float,
        realized_pnl: float | None = None,
        exit_price: float | None = None,
        hold_duration: timedelta | None = None,
        reserved: float | None = None,
    ) -> Trade:
        """Append one trade to the log and return it.

        Opening trades carry the capital they reserved, so the log can be
        replayed without the margin setting in force at the time.
        """
        trade = Trade(
            id=generate_trade_id(symbol, action, timestamp, len(self.account.trades)),
            symbol=symbol,
            action=action,
            price=price,
            quantity=quantity,
            timestamp=timestamp,
            signal=signal,
            confidence=confidence,
            realized_pnl=realized_pnl,
            exit_price=exit_price,
            hold_duration=hold_duration,
            reserved=reserved,
        )
        self.account.trades.append(trade)
        return trade

    def roll_day(self, today: date) -> bool:
        """Reset day P&L when the calendar date changed.

        Returns:
            True if a new trading day started
        """
        if self.account.trading_day == today:
            return False
        previous = self.account.trading_day
        self.account.trading_day = today
        if previous is not None:
            logger.info(
                "New trading day %s (previous %s day P&L: %.2f)",
                today, previous, self.account.day_realized_pnl,
            )
        self.account.day_realized_pnl = 0.0
        return True

    def reset_day(self, today: date) -> None:
        self.account.trading_day = today
        self.account.day_realized_pnl = 0.0

    def apply_correction(self, report: "ReconciliationReport") -> None:
        """Overwrite balance and P&L with the replayed values."""
        logger.warning(
            "Applying ledger correction: cash %.2f -> %.2f, P&L %.2f -> %.2f",
            self.account.available_cash, report.calculated_balance,
            self.account.total_realized_pnl, report.calculated_pnl,
        )
        self.account.available_cash = report.calculated_balance
        self.account.total_realized_pnl = report.calculated_pnl


@dataclass(frozen=True)
class ReconciliationReport:
    """Result of replaying the trade log."""

    initial_cash: float
    calculated_balance: float
    calculated_pnl: float
    open_reservations: float
    current_balance: float | None = None
    current_pnl: float | None = None
    unmatched_closes: list[str] = field(default_factory=list)

    @property
    def drift(self) -> float:
        """current - calculated balance; 0 when no current balance was given."""
        if self.current_balance is None:
            return 0.0
        return self.current_balance - self.calculated_balance

    @property
    def pnl_drift(self) -> float:
        if self.current_pnl is None:
            return 0.0
        return self.current_pnl - self.calculated_pnl

    @property
    def ok(self) -> bool:
        return (
            abs(self.drift) <= DRIFT_TOLERANCE
            and abs(self.pnl_drift) <= DRIFT_TOLERANCE
            and not self.unmatched_closes
        )

    def raise_for_drift(self) -> None:
        """Raise LedgerDriftError if the replay does not match."""
        if not self.ok:
            raise LedgerDriftError(
                self.drift,
                self.calculated_balance,
                self.current_balance if self.current_balance is not None else self.calculated_balance,
            )


def reconcile(
    trades: Iterable[Trade],
    initial_cash: float,
    margin_fraction: float,
    current_balance: float | None = None,
    current_pnl: float | None = None,
) -> ReconciliationReport:
    """
    Replay a trade log from the initial cash.

    Opening trades deduct the reservation stored on them. Trades logged
    without one deduct quantity * price (long) or quantity * price *
    margin_fraction (short). Closing trades return the reservation of the
    matching open position plus their realized P&L.

    Args:
        trades: Trade log, oldest first
        initial_cash: Starting cash
        margin_fraction: Margin for short entries without a stored reservation
        current_balance: Live available cash to compare against
        current_pnl: Live total realized P&L to compare against

    Returns:
        ReconciliationReport
    """
    balance = initial_cash
    pnl = 0.0
    open_reserved: dict[str, float] = defaultdict(float)
    unmatched: list[str] = []

    for trade in trades:
        if trade.is_closing:
            reserved = open_reserved.pop(trade.symbol, None)
            if reserved is None:
                unmatched.append(trade.id)
                reserved = 0.0
            balance += reserved + trade.realized_pnl
            pnl += trade.realized_pnl
        else:
            reserved = trade.reserved
            if reserved is None:
                reserved = trade.quantity * trade.price
                if trade.position_direction == Direction.SHORT:
                    reserved = reserved * margin_fraction
            balance -= reserved
            open_reserved[trade.symbol] += reserved

    report = ReconciliationReport(
        initial_cash=initial_cash,
        calculated_balance=balance,
        calculated_pnl=pnl,
        open_reservations=sum(open_reserved.values()),
        current_balance=current_balance,
        current_pnl=current_pnl,
        unmatched_closes=unmatched,
    )

    if report.ok:
        logger.info(
            "Ledger reconciled: balance %.2f, P&L %.2f, %.2f reserved in open positions",
            report.calculated_balance, report.calculated_pnl, report.open_reservations,
        )
    else:
        logger.error(
            "Ledger drift: calculated %.2f vs current %s (drift %.2f, P&L drift %.2f, "
            "%d unmatched closes)",
            report.calculated_balance, current_balance, report.drift,
            report.pnl_drift, len(unmatched),
        )
    return report


@dataclass
class SymbolStats:
    closed: int = 0
    wins: int = 0
    losses: int = 0
    realized_pnl: float = 0.0

    @property
    def win_rate(self) -> float:
        if self.closed == 0:
            return 0.0
        return self.wins / self.closed


@dataclass
class TradeStats:
    by_symbol: dict[str, SymbolStats] = field(default_factory=dict)
    trades_today: int = 0

    @property
    def realized_pnl(self) -> float:
        return sum(s.realized_pnl for s in self.by_symbol.values())


def trade_stats(trades: Iterable[Trade], today: date | None = None) -> TradeStats:
    """Summarize closed trades per symbol and count today's trades."""
    stats = TradeStats()
    for trade in trades:
        if today is not None and trade.timestamp.date() == today:
            stats.trades_today += 1
        if not trade.is_closing:
            continue
        s = stats.by_symbol.setdefault(trade.symbol, SymbolStats())
        s.closed += 1
        s.realized_pnl += trade.realized_pnl
        if trade.realized_pnl > 0:
            s.wins += 1
        elif trade.realized_pnl < 0:
            s.losses += 1
    return stats
