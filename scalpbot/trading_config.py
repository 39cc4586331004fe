"""Trading parameters loaded from trading.yaml.

Supports:
- A flat mapping of TradingParams fields, or the same mapping nested
  under a top-level "trading:" key
- Missing file = built-in defaults (aggressive scalping profile)
"""

import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv

from scalpcore.models import TradingParams

logger = logging.getLogger(__name__)

_DEFAULT_PATH = Path("trading.yaml")


def load_trading_config(path: Path | str | None = None) -> TradingParams:
    """Load trading parameters from a YAML file.

    Falls back to defaults if the file doesn't exist. Raises pydantic
    ValidationError for out-of-range values.
    """
    config_path = Path(path) if path is not None else _DEFAULT_PATH

    # Load .env next to the config so SCALPBOT_* settings resolve the same way
    load_dotenv(config_path.parent / ".env", override=False)

    if not config_path.exists():
        logger.info("No trading config found at %s, using defaults", config_path)
        return TradingParams()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"{config_path}: expected a mapping, got {type(raw).__name__}")

    if "trading" in raw:
        raw = raw["trading"] or {}

    params = TradingParams(**raw)
    logger.info(
        "Loaded trading config: min_confidence=%.0f (%s), max_notional=%.0f, "
        "max_positions=%d, SL=%.2f%%, TP=%.2f%%, max_hold=%.0fm",
        params.min_confidence,
        "aggressive" if params.aggressive else "conservative",
        params.max_position_notional,
        params.max_concurrent_positions,
        params.stop_loss_percent,
        params.take_profit_percent,
        params.max_hold_minutes,
    )
    return params
