"""Market data clients."""

from scalpbot.clients.yahoo_chart import RateLimiter, YahooChartClient, parse_chart

__all__ = [
    "RateLimiter",
    "YahooChartClient",
    "parse_chart",
]
