"""Price target calculation per signal kind."""

from scalpcore.models import PriceTargets, SignalKind

# Volatility used for target bands is clamped into [1%, 5%]
MIN_VOL_ADJUSTMENT = 0.01
MAX_VOL_ADJUSTMENT = 0.05


def calculate_price_targets(
    price: float,
    vwap: float,
    ma50: float,
    volatility: float,
    kind: SignalKind,
    precision: int = 2,
) -> PriceTargets:
    """
    Calculate entry, exit, stop and take-profit levels around the price.

    Buy signals enter at a discount to price/VWAP and stop no lower than
    just under MA50; sell signals mirror that. Take-profit distance is the
    clamped volatility times 2.5 (regular) or 4 (strong).

    Args:
        price: Current price
        vwap: Volume weighted average price
        ma50: 50-period simple moving average
        volatility: Annualized volatility estimate
        kind: Signal kind the targets are computed for
        precision: Decimal places to round to

    Returns:
        PriceTargets
    """
    vol = max(MIN_VOL_ADJUSTMENT, min(MAX_VOL_ADJUSTMENT, volatility))

    if kind == SignalKind.STRONG_BUY:
        buy = min(price * 0.995, vwap * 0.99)
        sell = price * 1.08
        stop_loss = max(price * 0.92, ma50 * 0.98)
        take_profit = price * (1 + vol * 4)
    elif kind == SignalKind.BUY:
        buy = min(price * 0.998, vwap * 0.995)
        sell = price * 1.05
        stop_loss = max(price * 0.95, ma50 * 0.99)
        take_profit = price * (1 + vol * 2.5)
    elif kind == SignalKind.SELL:
        buy = price * 0.95
        sell = max(price * 1.002, vwap * 1.005)
        stop_loss = min(price * 1.05, ma50 * 1.01)
        take_profit = price * (1 - vol * 2.5)
    elif kind == SignalKind.STRONG_SELL:
        buy = price * 0.92
        sell = max(price * 1.005, vwap * 1.01)
        stop_loss = min(price * 1.08, ma50 * 1.02)
        take_profit = price * (1 - vol * 4)
    else:  # HOLD
        buy = vwap * 0.99
        sell = vwap * 1.01
        stop_loss = price * 0.97
        take_profit = price * 1.03

    return PriceTargets(
        buy=round(buy, precision),
        sell=round(sell, precision),
        stop_loss=round(stop_loss, precision),
        take_profit=round(take_profit, precision),
    )
