"""CLI entry point for the paper-trading loop.

Usage:
    python -m scalpbot
    python -m scalpbot --symbols RELIANCE,TCS --ticks 100 --interval 1
    python -m scalpbot --config trading.yaml -v
    python -m scalpbot --reconcile
    python -m scalpbot --reset
"""

import argparse
import asyncio
import logging
import signal
import sys

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from scalpcore.ledger import ReconciliationReport, trade_stats
from scalpcore.models import AccountSnapshot
from scalpbot.clients import YahooChartClient
from scalpbot.config import get_settings
from scalpbot.services import PositionManager, TickResult, TradingEngine
from scalpbot.storage import JsonFileAccountRepository
from scalpbot.trading_config import load_trading_config

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Paper-trade intraday scalping signals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m scalpbot --symbols RELIANCE,TCS,INFY
  python -m scalpbot --ticks 200 --interval 0.5
  python -m scalpbot --reconcile
        """,
    )
    parser.add_argument(
        "--symbols",
        type=str,
        default=None,
        help="Comma-separated symbols (default: SCALPBOT_SYMBOLS)",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=None,
        help="Stop after N ticks (default: run until interrupted)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between ticks (default: SCALPBOT_TICK_INTERVAL)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to trading.yaml (default: SCALPBOT_TRADING_CONFIG_PATH)",
    )
    parser.add_argument(
        "--reconcile",
        action="store_true",
        help="Replay the saved trade log, print the report and exit",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Reset the saved account to initial cash before starting",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def print_snapshot(snapshot: AccountSnapshot) -> None:
    print(f"\nCash:       {snapshot.available_cash:>12,.2f}")
    print(f"Reserved:   {snapshot.reserved_capital:>12,.2f}")
    print(f"Unrealized: {snapshot.unrealized_pnl:>+12,.2f}")
    print(f"Equity:     {snapshot.equity:>12,.2f}")
    print(f"Total P&L:  {snapshot.total_pnl:>+12,.2f}   Day P&L: {snapshot.day_pnl:+,.2f}")

    if snapshot.open_positions:
        print(f"\n{'Symbol':<12} {'Side':<6} {'Qty':>6} {'Avg':>10} {'Last':>10} {'P&L':>10}")
        print("-" * 60)
        for p in snapshot.open_positions:
            print(
                f"{p.symbol:<12} {p.direction.name:<6} {p.quantity:>6} "
                f"{p.avg_price:>10.2f} {p.last_price:>10.2f} {p.unrealized_pnl:>+10.2f}"
            )

    if snapshot.recent_trades:
        print(f"\n{'Time':<20} {'Symbol':<12} {'Action':<5} {'Qty':>6} {'Price':>10} {'Signal':<16} {'P&L':>10}")
        print("-" * 85)
        for t in snapshot.recent_trades[:10]:
            pnl = f"{t.realized_pnl:+.2f}" if t.realized_pnl is not None else ""
            print(
                f"{t.timestamp:%Y-%m-%d %H:%M:%S} {t.symbol:<12} {t.action.value:<5} "
                f"{t.quantity:>6} {t.price:>10.2f} {t.signal:<16} {pnl:>10}"
            )
    print()


def print_report(report: ReconciliationReport) -> None:
    print(f"\nInitial cash:        {report.initial_cash:>12,.2f}")
    print(f"Calculated balance:  {report.calculated_balance:>12,.2f}")
    print(f"Current balance:     {report.current_balance:>12,.2f}")
    print(f"Calculated P&L:      {report.calculated_pnl:>+12,.2f}")
    print(f"Current P&L:         {report.current_pnl:>+12,.2f}")
    print(f"Open reservations:   {report.open_reservations:>12,.2f}")
    print(f"Drift:               {report.drift:>+12,.2f}")
    if report.unmatched_closes:
        print(f"Unmatched closes:    {len(report.unmatched_closes)}")
    print("OK" if report.ok else "DRIFT DETECTED")
    print()


async def log_tick(result: TickResult) -> None:
    for trade in result.entries + result.exits:
        logger.debug("Trade %s %s %s", trade.id, trade.symbol, trade.signal)
    if result.account is not None:
        logger.info(
            "Tick: %d symbols, %d entries, %d exits, cash %.2f, equity %.2f",
            len(result.analyses), len(result.entries), len(result.exits),
            result.account.available_cash, result.account.equity,
        )


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    params = load_trading_config(args.config or settings.trading_config_path)
    repository = JsonFileAccountRepository(settings.account_path)

    manager = PositionManager(params)
    account = await repository.load()
    if account is not None:
        await manager.restore(account)

    if args.reset:
        await manager.reset()
        await repository.save(manager.account)

    if args.reconcile:
        report = await manager.reconcile()
        print_report(report)
        await manager.shutdown()
        return 0 if report.ok else 1

    symbols = (
        [s.strip().upper() for s in args.symbols.split(",") if s.strip()]
        if args.symbols
        else settings.symbols
    )
    interval = args.interval if args.interval is not None else settings.tick_interval

    client = YahooChartClient(
        base_url=settings.yahoo_base_url,
        interval=settings.history_interval,
        range_=settings.history_range,
        suffix=settings.symbol_suffix,
        timeout=settings.fetch_timeout,
    )
    engine = TradingEngine(
        manager,
        client,
        repository=repository,
        fetch_timeout=settings.fetch_timeout,
    )
    engine.on_tick(log_tick)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, engine.stop)
        except NotImplementedError:
            pass  # Windows

    try:
        await engine.run(symbols, interval, max_ticks=args.ticks)
    finally:
        await client.close()
        await repository.save(manager.account)

    print_snapshot(manager.snapshot())
    stats = trade_stats(manager.account.trades, today=manager.now().date())
    for symbol, s in sorted(stats.by_symbol.items()):
        print(
            f"{symbol:<12} {s.closed:>4} closed  {s.wins:>3}W/{s.losses:<3}L  "
            f"{s.win_rate * 100:>5.1f}%  {s.realized_pnl:>+10.2f}"
        )
    print(f"Trades today: {stats.trades_today}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
