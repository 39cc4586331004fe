"""Tick driver.

Each tick:
1. Fetch market data for every symbol in parallel (each with a timeout)
2. Compute indicators and a signal, then apply the decision, one symbol
   at a time in sorted order
3. Sweep all open positions for exits
4. Save the account
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Protocol

from scalpcore.errors import InvariantViolation
from scalpcore.indicators import IndicatorCalculator
from scalpcore.models import (
    AccountSnapshot,
    IndicatorSnapshot,
    MarketData,
    Signal,
    Trade,
)
from scalpcore.signal import SignalClassifier
from scalpbot.services.position_manager import Decision, PositionManager
from scalpbot.storage import AccountRepository

logger = logging.getLogger(__name__)


class MarketDataSource(Protocol):
    """Returns None for any symbol it cannot serve this tick."""

    async def fetch(self, symbol: str) -> MarketData | None: ...


@dataclass(frozen=True)
class SymbolAnalysis:
    """Per-symbol output of one tick, for display."""

    symbol: str
    price: float | None
    snapshot: IndicatorSnapshot
    signal: Signal
    decision: Decision | None = None


@dataclass(frozen=True)
class TickResult:
    started_at: datetime
    analyses: dict[str, SymbolAnalysis]
    exits: list[Trade] = field(default_factory=list)
    account: AccountSnapshot | None = None

    @property
    def entries(self) -> list[Trade]:
        return [
            a.decision.trade
            for a in self.analyses.values()
            if a.decision is not None and a.decision.trade is not None
        ]


TickCallback = Callable[[TickResult], Awaitable[None]]


class TradingEngine:
    """Drives the position manager from a market data source."""

    def __init__(
        self,
        manager: PositionManager,
        source: MarketDataSource,
        repository: AccountRepository | None = None,
        fetch_timeout: float = 10.0,
        calculator: IndicatorCalculator | None = None,
        classifier: SignalClassifier | None = None,
    ):
        self.manager = manager
        self.source = source
        self.repository = repository
        self.fetch_timeout = fetch_timeout
        self.calculator = calculator or IndicatorCalculator()
        self.classifier = classifier or SignalClassifier(manager.params)

        self._tick_callbacks: list[TickCallback] = []
        self._stop = asyncio.Event()

    def on_tick(self, callback: TickCallback) -> None:
        """Register callback for completed ticks.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._tick_callbacks:
            self._tick_callbacks.append(callback)

    async def _fetch(self, symbol: str) -> MarketData | None:
        try:
            return await asyncio.wait_for(self.source.fetch(symbol), self.fetch_timeout)
        except asyncio.TimeoutError:
            logger.warning("Market data for %s timed out after %.1fs", symbol, self.fetch_timeout)
        except Exception as e:
            logger.warning("Market data for %s failed: %s", symbol, e)
        return None

    def evaluate(self, symbol: str, data: MarketData | None) -> SymbolAnalysis:
        """Indicators and signal for one symbol. Missing data gives HOLD."""
        price = data.price if data is not None else None
        if price is None:
            logger.warning("No actionable market data for %s", symbol)
            return SymbolAnalysis(
                symbol=symbol,
                price=None,
                snapshot=IndicatorSnapshot(),
                signal=Signal(rule="no_data"),
            )

        snapshot = self.calculator.calculate(data.history)
        signal = self.classifier.classify(price, snapshot)
        return SymbolAnalysis(symbol=symbol, price=price, snapshot=snapshot, signal=signal)

    async def tick(self, symbols: Iterable[str]) -> TickResult:
        """Run one tick over symbols."""
        started_at = self.manager.now()
        ordered = sorted(set(symbols))

        fetched = await asyncio.gather(*(self._fetch(s) for s in ordered))

        analyses: dict[str, SymbolAnalysis] = {}
        for symbol, data in zip(ordered, fetched):
            analysis = self.evaluate(symbol, data)
            decision = await self.manager.apply_signal(symbol, analysis.signal, analysis.price)
            analyses[symbol] = replace(analysis, decision=decision)

        exits = await self.manager.sweep({s: a.price for s, a in analyses.items()})

        if self.repository is not None:
            await self.repository.save(self.manager.account)

        result = TickResult(
            started_at=started_at,
            analyses=analyses,
            exits=exits,
            account=self.manager.snapshot(),
        )
        for callback in self._tick_callbacks:
            await callback(result)
        return result

    async def run(
        self,
        symbols: Iterable[str],
        interval: float,
        max_ticks: int | None = None,
    ) -> int:
        """
        Tick until stop() is called or max_ticks is reached.

        A failing tick is logged and the loop continues; InvariantViolation
        propagates. Exit timers are released on the way out.

        Returns:
            Number of ticks run
        """
        symbols = list(symbols)
        self._stop.clear()
        ticks = 0
        logger.info("Engine started: %d symbols, %.2fs interval", len(symbols), interval)

        try:
            while not self._stop.is_set():
                try:
                    await self.tick(symbols)
                except InvariantViolation:
                    raise
                except Exception as e:
                    logger.exception(f"Tick failed: {e}")

                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break

                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            await self.manager.shutdown()
            logger.info("Engine stopped after %d ticks", ticks)

        return ticks

    def stop(self) -> None:
        """Ask run() to return after the current tick."""
        self._stop.set()
