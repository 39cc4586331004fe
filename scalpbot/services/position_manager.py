"""Position and risk state machine for the paper account.

Per symbol: FLAT -> OPEN_LONG | OPEN_SHORT -> FLAT. A close always
liquidates the whole position.

All account mutations run under one asyncio.Lock: two symbols entering on
the same tick would otherwise both check and reserve against the same
cash balance.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Mapping

from scalpcore.errors import InvariantViolation
from scalpcore.ledger import Ledger, ReconciliationReport, reconcile
from scalpcore.models import (
    Account,
    AccountSnapshot,
    Direction,
    ExitReason,
    Position,
    PositionView,
    Signal,
    SignalKind,
    Trade,
    TradingParams,
    entry_action,
    exit_action,
)
from scalpcore.sizing import RiskSizer
from scalpbot.services.exit_scheduler import ExitScheduler

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Exit trades are rule-driven, not signal-driven
EXIT_CONFIDENCE = 100.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DecisionAction(str, Enum):
    OPENED = "OPENED"
    AVERAGED = "AVERAGED"
    EXIT_QUEUED = "EXIT_QUEUED"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class Decision:
    """What apply_signal() did for one symbol on one tick."""

    symbol: str
    action: DecisionAction
    reason: str = ""
    trade: Trade | None = None

    @property
    def skipped(self) -> bool:
        return self.action == DecisionAction.SKIPPED


class PositionManager:
    """
    Owns the account and every transition of its positions.

    Entries happen in apply_signal(); exits happen in sweep(), which the
    engine calls once per tick after all entries. Opposing signals are
    queued by apply_signal() and closed first in the next sweep.

    Each entry schedules a time exit at entry_time + max_hold. The timer
    is cancelled when the position closes earlier; a late firing is a
    no-op.
    """

    def __init__(
        self,
        params: TradingParams,
        account: Account | None = None,
        clock: Clock | None = None,
        scheduler: ExitScheduler | None = None,
    ):
        """
        Args:
            params: Risk and execution parameters
            account: Existing account to manage (default: fresh account)
            clock: Returns the current time (default: UTC wall clock)
            scheduler: Exit timer scheduler (for testing)
        """
        self.params = params
        self.account = account or Account.fresh(params.initial_cash)
        self.ledger = Ledger(self.account)
        self.sizer = RiskSizer(params)
        self.scheduler = scheduler or ExitScheduler()
        self._clock = clock or utc_now

        # Last entry/exit time per symbol, for the cooldown
        self._last_trade_at: dict[str, datetime] = {}

        # Last valid price per symbol, for exits without a fresh quote
        self._last_prices: dict[str, float] = {}

        # Symbols with an opposing signal waiting for the next sweep
        self._pending_exits: set[str] = set()

        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def positions(self) -> dict[str, Position]:
        return self.account.positions

    def now(self) -> datetime:
        return self._clock()

    def has_position(self, symbol: str) -> bool:
        return symbol in self.account.positions

    def last_price(self, symbol: str) -> float | None:
        return self._last_prices.get(symbol)

    def snapshot(self, recent: int = 20) -> AccountSnapshot:
        """Read-only account view marked to the last seen prices."""
        views = []
        for symbol in sorted(self.account.positions):
            position = self.account.positions[symbol]
            mark = self._last_prices.get(symbol, position.avg_price)
            views.append(
                PositionView(
                    symbol=symbol,
                    direction=position.direction,
                    quantity=position.quantity,
                    avg_price=position.avg_price,
                    entry_time=position.entry_time,
                    target_price=position.target_price,
                    stop_loss_price=position.stop_loss_price,
                    reserved=position.reserved,
                    last_price=mark,
                    unrealized_pnl=position.pnl_at(mark),
                )
            )

        ledger = self.ledger
        reserved = self.account.reserved_capital
        unrealized = sum(v.unrealized_pnl for v in views)
        trades = ledger.trades[-recent:] if recent > 0 else []
        return AccountSnapshot(
            available_cash=ledger.available_cash,
            total_pnl=ledger.total_realized_pnl,
            day_pnl=ledger.day_realized_pnl,
            reserved_capital=reserved,
            unrealized_pnl=unrealized,
            equity=ledger.available_cash + reserved + unrealized,
            open_positions=views,
            recent_trades=list(reversed(trades)),
        )

    # ------------------------------------------------------------------
    # Entry side
    # ------------------------------------------------------------------

    async def apply_signal(
        self, symbol: str, signal: Signal, price: float | None
    ) -> Decision:
        """
        Apply one symbol's signal for this tick.

        Opens or averages a position, queues an opposing-signal exit, or
        skips with a reason. Never raises for a rejected entry.
        """
        async with self._lock:
            now = self._clock()
            self.ledger.roll_day(now.date())
            if price is not None and price > 0:
                self._last_prices[symbol] = price
            decision = self._decide(symbol, signal, price, now)

        if decision.skipped and signal.kind != SignalKind.HOLD:
            logger.debug("%s %s skipped: %s", symbol, signal.kind.value, decision.reason)
        return decision

    def _decide(
        self, symbol: str, signal: Signal, price: float | None, now: datetime
    ) -> Decision:
        direction = signal.direction
        if direction is None:
            return Decision(symbol, DecisionAction.SKIPPED, "hold")
        if price is None or price <= 0:
            return Decision(symbol, DecisionAction.SKIPPED, "no price")

        p = self.params
        position = self.account.positions.get(symbol)

        if position is not None and signal.opposes(position.direction):
            if signal.confidence < p.min_confidence:
                return Decision(symbol, DecisionAction.SKIPPED, "confidence below minimum")
            if self._in_cooldown(symbol, now):
                return Decision(symbol, DecisionAction.SKIPPED, "cooldown")
            self._pending_exits.add(symbol)
            return Decision(symbol, DecisionAction.EXIT_QUEUED, "opposing signal")

        if position is not None and not p.allow_averaging:
            return Decision(symbol, DecisionAction.SKIPPED, "position already open")

        if position is None and len(self.account.positions) >= p.max_concurrent_positions:
            return Decision(symbol, DecisionAction.SKIPPED, "max concurrent positions")

        if self._in_cooldown(symbol, now):
            return Decision(symbol, DecisionAction.SKIPPED, "cooldown")

        if signal.confidence < p.min_confidence:
            return Decision(symbol, DecisionAction.SKIPPED, "confidence below minimum")

        if self.daily_loss_reached:
            return Decision(symbol, DecisionAction.SKIPPED, "daily loss limit")

        stop, target = self._exit_prices(direction, price)
        sizing = self.sizer.size(self.account.available_cash, price, direction, stop)
        if not sizing.ok:
            logger.warning("%s entry rejected: %s", symbol, sizing.reason)
            return Decision(symbol, DecisionAction.SKIPPED, sizing.reason)

        if position is None:
            trade = self._open(
                symbol, direction, price, sizing.quantity, sizing.reserve,
                signal.kind.value, signal.confidence, now,
            )
            return Decision(symbol, DecisionAction.OPENED, signal.rule, trade)

        trade = self._average(
            position, price, sizing.quantity, sizing.reserve,
            signal.kind.value, signal.confidence, now,
        )
        return Decision(symbol, DecisionAction.AVERAGED, signal.rule, trade)

    @property
    def daily_loss_reached(self) -> bool:
        return abs(self.ledger.day_realized_pnl) >= self.params.max_daily_loss

    def _in_cooldown(self, symbol: str, now: datetime) -> bool:
        last = self._last_trade_at.get(symbol)
        if last is None:
            return False
        return (now - last).total_seconds() < self.params.cooldown_seconds

    def _exit_prices(self, direction: Direction, price: float) -> tuple[float, float]:
        """Stop and target for an entry; mirrored for shorts."""
        sl = self.params.stop_loss_percent / 100
        tp = self.params.take_profit_percent / 100
        if direction == Direction.LONG:
            return price * (1 - sl), price * (1 + tp)
        return price * (1 + sl), price * (1 - tp)

    def _open(
        self,
        symbol: str,
        direction: Direction,
        price: float,
        quantity: int,
        reserve: float,
        signal: str,
        confidence: float,
        now: datetime,
    ) -> Trade:
        if symbol in self.account.positions:
            raise InvariantViolation(symbol, "position already open")

        stop, target = self._exit_prices(direction, price)
        self.ledger.reserve(symbol, reserve)
        self.account.positions[symbol] = Position(
            symbol=symbol,
            direction=direction,
            quantity=quantity,
            avg_price=price,
            entry_time=now,
            target_price=target,
            stop_loss_price=stop,
            reserved=reserve,
        )
        trade = self.ledger.record(
            symbol, entry_action(direction), price, quantity, now, signal, confidence,
            reserved=reserve,
        )
        self._last_trade_at[symbol] = now
        self._schedule_expiry(symbol, now, self.params.max_hold_seconds)

        logger.info(
            "OPEN %s %s %d @ %.2f (reserved %.2f, SL %.2f, TP %.2f, cash %.2f)",
            direction.name, symbol, quantity, price, reserve, stop, target,
            self.account.available_cash,
        )
        return trade

    def _average(
        self,
        position: Position,
        price: float,
        quantity: int,
        reserve: float,
        signal: str,
        confidence: float,
        now: datetime,
    ) -> Trade:
        symbol = position.symbol
        self.ledger.reserve(symbol, reserve)

        total = position.quantity + quantity
        position.avg_price = (position.avg_price * position.quantity + price * quantity) / total
        position.quantity = total
        position.reserved += reserve
        position.stop_loss_price, position.target_price = self._exit_prices(
            position.direction, position.avg_price
        )

        trade = self.ledger.record(
            symbol, entry_action(position.direction), price, quantity, now, signal, confidence,
            reserved=reserve,
        )
        self._last_trade_at[symbol] = now

        logger.info(
            "AVERAGE %s %s +%d @ %.2f -> %d @ %.2f (cash %.2f)",
            position.direction.name, symbol, quantity, price, total,
            position.avg_price, self.account.available_cash,
        )
        return trade

    async def open_position(
        self,
        symbol: str,
        direction: Direction,
        price: float,
        quantity: int | None = None,
        signal: str = "MANUAL",
        confidence: float = EXIT_CONFIDENCE,
    ) -> Trade | None:
        """
        Open a position directly, bypassing the signal gates.

        Args:
            symbol: Symbol to open
            direction: LONG or SHORT
            price: Entry price
            quantity: Units to open (default: sized from available cash)
            signal: Label stored on the trade
            confidence: Confidence stored on the trade

        Returns:
            Entry trade, or None if capital is insufficient

        Raises:
            InvariantViolation: If the symbol already has an open position
        """
        async with self._lock:
            if symbol in self.account.positions:
                raise InvariantViolation(symbol, "position already open")

            now = self._clock()
            self.ledger.roll_day(now.date())
            self._last_prices[symbol] = price

            if quantity is None:
                stop, _ = self._exit_prices(direction, price)
                sizing = self.sizer.size(self.account.available_cash, price, direction, stop)
                if not sizing.ok:
                    logger.warning("%s entry rejected: %s", symbol, sizing.reason)
                    return None
                quantity, reserve = sizing.quantity, sizing.reserve
            else:
                reserve = self.sizer.reserve_for(direction, quantity * price)
                if quantity <= 0 or reserve > self.account.available_cash:
                    logger.warning(
                        "%s entry rejected: %d units need %.2f, available %.2f",
                        symbol, quantity, reserve, self.account.available_cash,
                    )
                    return None

            return self._open(symbol, direction, price, quantity, reserve, signal, confidence, now)

    # ------------------------------------------------------------------
    # Exit side
    # ------------------------------------------------------------------

    async def sweep(self, prices: Mapping[str, float | None]) -> list[Trade]:
        """
        Check every open position for an exit, in symbol order.

        Exit priority: queued opposing signal, take-profit, stop-loss,
        max hold time. A symbol without a price this tick can only hit
        an opposing or time exit, at its last known price.

        Returns:
            Closing trades made by this sweep
        """
        closed: list[Trade] = []
        async with self._lock:
            now = self._clock()
            for symbol, price in prices.items():
                if price is not None and price > 0:
                    self._last_prices[symbol] = price

            for symbol in sorted(self.account.positions):
                position = self.account.positions[symbol]
                price = prices.get(symbol)
                if price is not None and price <= 0:
                    price = None

                reason = self._exit_reason(position, price, now)
                if reason is None:
                    continue
                exit_price = price if price is not None else self._mark(position)
                closed.append(self._close(symbol, reason, exit_price, now))

            self._pending_exits.clear()
        return closed

    def _exit_reason(
        self, position: Position, price: float | None, now: datetime
    ) -> ExitReason | None:
        if position.symbol in self._pending_exits:
            return ExitReason.OPPOSING_SIGNAL

        if price is not None:
            ret = position.price_return_percent(price)
            tp = self.params.take_profit_percent
            sl = self.params.stop_loss_percent
            if position.is_long:
                if ret >= tp:
                    return ExitReason.TAKE_PROFIT
                if ret <= -sl:
                    return ExitReason.STOP_LOSS
            else:
                if ret <= -tp:
                    return ExitReason.TAKE_PROFIT
                if ret >= sl:
                    return ExitReason.STOP_LOSS

        if position.hold_duration(now).total_seconds() >= self.params.max_hold_seconds:
            return ExitReason.TIME_EXIT
        return None

    def _mark(self, position: Position) -> float:
        return self._last_prices.get(position.symbol, position.avg_price)

    def _close(
        self, symbol: str, reason: ExitReason, price: float, now: datetime
    ) -> Trade:
        position = self.account.positions.pop(symbol, None)
        if position is None:
            raise InvariantViolation(symbol, "no open position to close")

        # An exit can be the first mutation of a new day
        self.ledger.roll_day(now.date())
        pnl = position.pnl_at(price)
        self.ledger.release(position.reserved, pnl)
        trade = self.ledger.record(
            symbol,
            exit_action(position.direction),
            price,
            position.quantity,
            now,
            reason.value,
            EXIT_CONFIDENCE,
            realized_pnl=pnl,
            exit_price=price,
            hold_duration=position.hold_duration(now),
        )
        self.scheduler.cancel(symbol)
        self._pending_exits.discard(symbol)
        self._last_trade_at[symbol] = now

        logger.info(
            "CLOSE %s %s %d @ %.2f (%s) P&L %+.2f, cash %.2f",
            position.direction.name, symbol, position.quantity, price,
            reason.value, pnl, self.account.available_cash,
        )
        return trade

    async def close_position(
        self,
        symbol: str,
        reason: ExitReason = ExitReason.MANUAL,
        price: float | None = None,
    ) -> Trade:
        """
        Close a position immediately.

        Args:
            symbol: Symbol to close
            reason: Exit reason stored on the trade
            price: Exit price (default: last seen price, else entry price)

        Raises:
            InvariantViolation: If there is no open position for symbol
        """
        async with self._lock:
            position = self.account.positions.get(symbol)
            if position is None:
                raise InvariantViolation(symbol, "no open position to close")
            if price is not None and price > 0:
                self._last_prices[symbol] = price
            else:
                price = self._mark(position)
            return self._close(symbol, reason, price, self._clock())

    async def expire(self, symbol: str, entry_time: datetime) -> Trade | None:
        """Time exit for the position opened at entry_time.

        No-op if that position has already been closed.
        """
        async with self._lock:
            position = self.account.positions.get(symbol)
            if position is None or position.entry_time != entry_time:
                logger.debug("Time exit for %s ignored: position already closed", symbol)
                return None
            return self._close(symbol, ExitReason.TIME_EXIT, self._mark(position), self._clock())

    def _schedule_expiry(self, symbol: str, entry_time: datetime, delay: float) -> None:
        self.scheduler.schedule(symbol, delay, lambda: self.expire(symbol, entry_time))

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def reconcile(self, apply_correction: bool = False) -> ReconciliationReport:
        """
        Replay the trade log and compare with the live balance.

        Args:
            apply_correction: Overwrite cash and P&L with the replayed values
                when they drift

        Returns:
            ReconciliationReport
        """
        async with self._lock:
            report = reconcile(
                self.account.trades,
                self.account.initial_cash,
                self.params.margin_fraction_for_shorts,
                current_balance=self.account.available_cash,
                current_pnl=self.account.total_realized_pnl,
            )
            if apply_correction and not report.ok:
                self.ledger.apply_correction(report)
            return report

    async def reset(self) -> None:
        """Drop all positions and history; cash back to initial."""
        await self.scheduler.cancel_all()
        async with self._lock:
            a = self.account
            a.positions.clear()
            a.trades.clear()
            a.available_cash = a.initial_cash
            a.total_realized_pnl = 0.0
            a.day_realized_pnl = 0.0
            a.trading_day = None
            self._last_trade_at.clear()
            self._last_prices.clear()
            self._pending_exits.clear()
        logger.info("Account reset to %.2f", self.account.initial_cash)

    async def reset_day(self, today: date | None = None) -> None:
        async with self._lock:
            self.ledger.reset_day(today or self._clock().date())

    async def restore(self, account: Account) -> None:
        """
        Adopt a persisted account.

        Rebuilds cooldown state from the trade log and reschedules time
        exits for the remaining hold time of each open position.
        """
        await self.scheduler.cancel_all()
        async with self._lock:
            self.account = account
            self.ledger = Ledger(account)
            self._last_trade_at.clear()
            self._last_prices.clear()
            self._pending_exits.clear()

            for trade in account.trades:
                self._last_trade_at[trade.symbol] = trade.timestamp

            now = self._clock()
            max_hold = timedelta(seconds=self.params.max_hold_seconds)
            for symbol, position in account.positions.items():
                remaining = max_hold - position.hold_duration(now)
                self._schedule_expiry(
                    symbol, position.entry_time, max(remaining.total_seconds(), 0.0)
                )

        logger.info(
            "Restored account: cash %.2f, %d open positions, %d trades",
            account.available_cash, len(account.positions), len(account.trades),
        )

    async def shutdown(self) -> None:
        """Release all exit timers."""
        await self.scheduler.cancel_all()
