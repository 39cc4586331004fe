"""Time-based exit timers, one per symbol."""

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

ExitCallback = Callable[[], Awaitable[Any]]


class ExitScheduler:
    """
    Schedule a coroutine to run after a delay, keyed by symbol.

    - schedule() replaces any pending timer for the same symbol
    - cancel() only drops a timer that has not fired yet
    - cancel_all() also cancels callbacks that are already running

    Callbacks must themselves be idempotent: a timer can fire right after
    the position it was set for has been closed by other means.
    """

    def __init__(self):
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, symbol: str, delay: float, callback: ExitCallback) -> None:
        """Run callback() after delay seconds."""
        self.cancel(symbol)
        loop = asyncio.get_running_loop()
        self._handles[symbol] = loop.call_later(
            max(delay, 0.0), self._fire, symbol, callback
        )
        logger.debug("Scheduled exit for %s in %.1fs", symbol, delay)

    def cancel(self, symbol: str) -> bool:
        """Cancel the pending timer for symbol.

        Returns:
            True if a pending timer was cancelled
        """
        handle = self._handles.pop(symbol, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    async def cancel_all(self) -> None:
        """Cancel every pending timer and running callback."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def is_scheduled(self, symbol: str) -> bool:
        return symbol in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def _fire(self, symbol: str, callback: ExitCallback) -> None:
        self._handles.pop(symbol, None)
        task = asyncio.ensure_future(callback())
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Scheduled exit failed: %s", exc, exc_info=exc)
