"""Trading services."""

from scalpbot.services.exit_scheduler import ExitScheduler
from scalpbot.services.position_manager import (
    Decision,
    DecisionAction,
    PositionManager,
)
from scalpbot.services.engine import (
    MarketDataSource,
    SymbolAnalysis,
    TickResult,
    TradingEngine,
)

__all__ = [
    "ExitScheduler",
    "Decision",
    "DecisionAction",
    "PositionManager",
    "MarketDataSource",
    "SymbolAnalysis",
    "TickResult",
    "TradingEngine",
]
