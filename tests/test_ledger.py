"""Tests for the ledger, reconciliation and trade statistics."""

from datetime import date, datetime, timedelta, timezone

import pytest

from scalpcore.errors import InvariantViolation, LedgerDriftError
from scalpcore.ledger import Ledger, reconcile, trade_stats
from scalpcore.models import Account, TradeAction

T0 = datetime(2024, 3, 4, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def ledger():
    return Ledger(Account.fresh(50_000))


def open_long(ledger, symbol="ACME", price=100.0, qty=100, at=T0):
    ledger.reserve(symbol, qty * price)
    return ledger.record(symbol, TradeAction.BUY, price, qty, at, "BUY", 90)


def close_long(ledger, symbol="ACME", entry=100.0, exit_price=104.0, qty=100, at=T0):
    pnl = (exit_price - entry) * qty
    ledger.release(qty * entry, pnl)
    return ledger.record(
        symbol, TradeAction.SELL, exit_price, qty, at, "TAKE_PROFIT", 100,
        realized_pnl=pnl, exit_price=exit_price, hold_duration=timedelta(minutes=3),
    )


class TestLedger:
    def test_reserve_and_release(self, ledger):
        ledger.reserve("ACME", 10_000)
        assert ledger.available_cash == 40_000

        ledger.release(10_000, 400)
        assert ledger.available_cash == 50_400
        assert ledger.total_realized_pnl == 400
        assert ledger.day_realized_pnl == 400

    def test_reserve_more_than_cash(self, ledger):
        with pytest.raises(InvariantViolation):
            ledger.reserve("ACME", 60_000)
        assert ledger.available_cash == 50_000

    def test_record_appends_with_unique_ids(self, ledger):
        a = ledger.record("ACME", TradeAction.BUY, 100.0, 10, T0, "BUY", 90)
        b = ledger.record("ACME", TradeAction.BUY, 100.0, 10, T0, "BUY", 90)
        assert ledger.trades == [a, b]
        assert a.id != b.id
        assert len(a.id) == 32
        assert not a.is_closing

    def test_roll_day(self, ledger):
        assert ledger.roll_day(date(2024, 3, 4)) is True
        ledger.release(0, -300)
        assert ledger.roll_day(date(2024, 3, 4)) is False
        assert ledger.day_realized_pnl == -300

        assert ledger.roll_day(date(2024, 3, 5)) is True
        assert ledger.day_realized_pnl == 0
        assert ledger.total_realized_pnl == -300


class TestReconcile:
    def test_long_round_trip(self, ledger):
        open_long(ledger)
        close_long(ledger)

        report = reconcile(ledger.trades, 50_000, 0.2, current_balance=ledger.available_cash)
        assert report.calculated_balance == pytest.approx(50_400)
        assert report.calculated_pnl == pytest.approx(400)
        assert report.drift == pytest.approx(0)
        assert report.ok

    def test_short_uses_margin(self, ledger):
        ledger.reserve("ACME", 2_000)
        ledger.record("ACME", TradeAction.SELL, 100.0, 100, T0, "SELL", 90)
        ledger.release(2_000, 300)
        ledger.record(
            "ACME", TradeAction.BUY, 97.0, 100, T0, "TAKE_PROFIT", 100,
            realized_pnl=300, exit_price=97.0,
        )

        report = reconcile(ledger.trades, 50_000, 0.2, current_balance=ledger.available_cash)
        assert report.calculated_balance == pytest.approx(50_300)
        assert report.ok

    def test_stored_reservation_wins_over_margin(self, ledger):
        ledger.reserve("ACME", 2_000)
        ledger.record("ACME", TradeAction.SELL, 100.0, 100, T0, "SELL", 90, reserved=2_000)

        report = reconcile(ledger.trades, 50_000, 0.5, current_balance=ledger.available_cash)
        assert report.calculated_balance == pytest.approx(48_000)
        assert report.open_reservations == pytest.approx(2_000)
        assert report.ok

    def test_open_position_reserved(self, ledger):
        open_long(ledger)
        report = reconcile(ledger.trades, 50_000, 0.2, current_balance=ledger.available_cash)
        assert report.calculated_balance == pytest.approx(40_000)
        assert report.open_reservations == pytest.approx(10_000)
        assert report.ok

    def test_drift_detected(self, ledger):
        open_long(ledger)
        close_long(ledger)

        report = reconcile(ledger.trades, 50_000, 0.2, current_balance=50_000)
        assert report.drift == pytest.approx(-400)
        assert not report.ok
        with pytest.raises(LedgerDriftError) as exc:
            report.raise_for_drift()
        assert exc.value.drift == pytest.approx(-400)

    def test_tolerance(self, ledger):
        open_long(ledger)
        report = reconcile(ledger.trades, 50_000, 0.2, current_balance=40_000.005)
        assert report.ok
        report.raise_for_drift()

    def test_unmatched_close(self, ledger):
        close_long(ledger)
        report = reconcile(ledger.trades, 50_000, 0.2)
        assert report.unmatched_closes == [ledger.trades[0].id]
        assert not report.ok

    def test_empty_log(self):
        report = reconcile([], 50_000, 0.2, current_balance=50_000, current_pnl=0)
        assert report.calculated_balance == 50_000
        assert report.ok


class TestTradeStats:
    def test_per_symbol(self, ledger):
        open_long(ledger, "ACME")
        close_long(ledger, "ACME", exit_price=104.0)
        open_long(ledger, "ACME", at=T0 + timedelta(days=1))
        close_long(ledger, "ACME", exit_price=98.0, at=T0 + timedelta(days=1))
        open_long(ledger, "BETA", price=50.0)

        stats = trade_stats(ledger.trades, today=T0.date())
        acme = stats.by_symbol["ACME"]
        assert acme.closed == 2
        assert acme.wins == 1
        assert acme.losses == 1
        assert acme.realized_pnl == pytest.approx(200)
        assert acme.win_rate == pytest.approx(0.5)
        assert "BETA" not in stats.by_symbol
        assert stats.trades_today == 3
        assert stats.realized_pnl == pytest.approx(200)
