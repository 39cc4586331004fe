"""Signal classification (pure logic, no I/O)."""

from scalpcore.signal.classifier import (
    RULES,
    Rule,
    RuleContext,
    SignalClassifier,
    analyze,
    clamp_confidence,
)
from scalpcore.signal.targets import calculate_price_targets

__all__ = [
    "RULES",
    "Rule",
    "RuleContext",
    "SignalClassifier",
    "analyze",
    "clamp_confidence",
    "calculate_price_targets",
]
