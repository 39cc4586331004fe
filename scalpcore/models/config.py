"""Trading configuration models."""

from __future__ import annotations

from pydantic import BaseModel, field_validator, model_validator


class TradingParams(BaseModel):
    """Risk and execution parameters consumed by the engine.

    Defaults mirror an aggressive intraday scalping setup: 50% minimum
    confidence, 10,000 per trade, 1.5% stop, 2.2% target, 15 minute hold.
    """

    # Signal gating
    min_confidence: float = 50.0
    # min_confidence at or below this switches the classifier to aggressive mode
    aggressive_confidence_cutoff: float = 60.0

    # Sizing
    initial_cash: float = 50_000.0
    max_position_notional: float = 10_000.0
    cash_utilization_fraction: float = 0.90
    risk_per_trade_percent: float | None = None  # None = risk bound disabled
    min_available_cash: float = 500.0
    margin_fraction_for_shorts: float = 0.20

    # Portfolio limits
    max_concurrent_positions: int = 5
    max_daily_loss: float = 2_500.0
    cooldown_seconds: float = 5.0
    allow_averaging: bool = False

    # Exits
    stop_loss_percent: float = 1.5
    take_profit_percent: float = 2.2
    max_hold_minutes: float = 15.0

    @field_validator("min_confidence", "aggressive_confidence_cutoff")
    @classmethod
    def _check_confidence(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError(f"confidence must be within [0, 100], got {v}")
        return v

    @field_validator(
        "initial_cash",
        "max_position_notional",
        "max_daily_loss",
        "stop_loss_percent",
        "take_profit_percent",
        "max_hold_minutes",
    )
    @classmethod
    def _check_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("cash_utilization_fraction", "margin_fraction_for_shorts")
    @classmethod
    def _check_fraction(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError(f"fraction must be within (0, 1], got {v}")
        return v

    @field_validator("risk_per_trade_percent")
    @classmethod
    def _check_risk(cls, v: float | None) -> float | None:
        if v is not None and not 0 < v <= 100:
            raise ValueError(f"risk_per_trade_percent must be within (0, 100], got {v}")
        return v

    @model_validator(mode="after")
    def _validate(self):
        if self.max_concurrent_positions < 1:
            raise ValueError("max_concurrent_positions must be at least 1")
        if self.cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must not be negative")
        if self.min_available_cash < 0:
            raise ValueError("min_available_cash must not be negative")
        return self

    @property
    def aggressive(self) -> bool:
        """Aggressive mode widens RSI bands and enables momentum rules."""
        return self.min_confidence <= self.aggressive_confidence_cutoff

    @property
    def max_hold_seconds(self) -> float:
        return self.max_hold_minutes * 60
