"""Shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from scalpcore.models import PricePoint, Signal, SignalKind, TradingParams


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs) -> None:
        self.now += timedelta(seconds=seconds, **kwargs)


@pytest.fixture
def clock():
    return ManualClock(datetime(2024, 3, 4, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def params():
    """Default parameters (aggressive mode, 5s cooldown)."""
    return TradingParams()


def make_series(closes, volume: float = 1000.0, spread: float = 0.5) -> list[PricePoint]:
    """Build a price series from closes, one bar per minute."""
    start = datetime(2024, 3, 4, 9, 15, tzinfo=timezone.utc)
    return [
        PricePoint(
            date=start + timedelta(minutes=i),
            open=c,
            high=c + spread,
            low=max(c - spread, 0.0),
            close=c,
            volume=volume,
        )
        for i, c in enumerate(closes)
    ]


def make_signal(kind: SignalKind, confidence: float = 90.0) -> Signal:
    return Signal(kind=kind, confidence=confidence, rule="test")
