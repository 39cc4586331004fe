"""Yahoo Finance chart API client for quotes and intraday history."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
import orjson
from pydantic import ValidationError

from scalpcore.models import MarketData, PricePoint, Quote

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36",
    "Accept": "application/json",
}


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 120):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


def _at(values: list | None, index: int) -> float | None:
    if not values or not 0 <= index < len(values):
        return None
    return values[index]


def parse_chart(symbol: str, payload: dict[str, Any]) -> MarketData | None:
    """
    Convert a /v8/finance/chart response into MarketData.

    Bars with a missing or non-positive close are dropped. The quote price
    is the last bar's close, falling back to meta.regularMarketPrice.

    Returns:
        MarketData, or None if the response holds no chart result
    """
    results = (payload.get("chart") or {}).get("result")
    if not results:
        return None
    result = results[0]

    meta = result.get("meta") or {}
    timestamps = result.get("timestamp") or []
    quotes = (result.get("indicators") or {}).get("quote") or [{}]
    bars = quotes[0] or {}

    history = []
    for i, ts in enumerate(timestamps):
        close = _at(bars.get("close"), i)
        if not close or close <= 0:
            continue
        history.append(
            PricePoint(
                date=datetime.fromtimestamp(ts, tz=timezone.utc),
                open=_at(bars.get("open"), i) or 0.0,
                high=_at(bars.get("high"), i) or 0.0,
                low=_at(bars.get("low"), i) or 0.0,
                close=close,
                volume=_at(bars.get("volume"), i) or 0.0,
            )
        )

    last = len(timestamps) - 1
    price = _at(bars.get("close"), last) or meta.get("regularMarketPrice") or 0.0
    quote = None
    if price > 0:
        previous = meta.get("previousClose") or meta.get("chartPreviousClose") or price
        change = price - previous
        quote = Quote(
            symbol=symbol,
            price=round(price, 2),
            change=round(change, 2),
            change_percent=round(change / previous * 100, 2) if previous > 0 else 0.0,
            volume=_at(bars.get("volume"), last) or 0.0,
        )

    return MarketData(symbol=symbol, quote=quote, history=history)


class YahooChartClient:
    """Market data source backed by the Yahoo chart endpoint.

    Every failure (HTTP, JSON, malformed payload) is logged and returned
    as None, so the engine only ever sees "no data".
    """

    BASE_URL = "https://query1.finance.yahoo.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        interval: str = "1m",
        range_: str = "1d",
        suffix: str = ".NS",
        timeout: float = 10.0,
        calls_per_minute: int = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.interval = interval
        self.range = range_
        self.suffix = suffix
        self.timeout = timeout
        self.rate_limiter = RateLimiter(calls_per_minute)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=_HEADERS,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def exchange_symbol(self, symbol: str) -> str:
        """RELIANCE -> RELIANCE.NS (unchanged if already suffixed)."""
        if not self.suffix or symbol.upper().endswith(self.suffix.upper()):
            return symbol
        return f"{symbol}{self.suffix}"

    async def fetch(self, symbol: str) -> MarketData | None:
        """Fetch quote and history for symbol, or None on any failure."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        try:
            response = await client.get(
                f"/v8/finance/chart/{self.exchange_symbol(symbol)}",
                params={"interval": self.interval, "range": self.range},
            )
            response.raise_for_status()
            payload = orjson.loads(response.content)
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.warning("Failed to fetch chart for %s: %s", symbol, e)
            return None

        try:
            data = parse_chart(symbol, payload)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
            logger.warning("Malformed chart payload for %s: %s", symbol, e)
            return None

        if data is None:
            logger.warning("No chart data for %s", symbol)
        return data
