"""Market data models (price history and latest quote)."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class PricePoint(BaseModel):
    """One OHLCV bar. Series of these are ordered oldest-first."""

    model_config = ConfigDict(frozen=True)

    date: datetime
    open: float = Field(ge=0)
    high: float = Field(ge=0)
    low: float = Field(ge=0)
    close: float = Field(gt=0)
    volume: float = Field(default=0.0, ge=0)


class Quote(BaseModel):
    """Latest quote for a symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: float = 0.0

    @property
    def is_actionable(self) -> bool:
        """A quote without a positive price carries no tradable information."""
        return self.price > 0


class MarketData(BaseModel):
    """Everything the engine needs for one symbol on one tick."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    quote: Quote | None = None
    history: list[PricePoint] = Field(default_factory=list)

    @property
    def price(self) -> float | None:
        """Current tradable price, or None when there is no actionable quote."""
        if self.quote is None or not self.quote.is_actionable:
            return None
        return self.quote.price
