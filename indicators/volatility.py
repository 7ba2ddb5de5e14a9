from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from market_data.models import Candle


def true_range(candle: Candle, prev_close: float | None) -> float:
    if prev_close is None:
        return candle.high - candle.low
    return max(
        candle.high - candle.low,
        abs(candle.high - prev_close),
        abs(candle.low - prev_close),
    )


def atr(candles: Sequence[Candle], period: int = 14) -> List[Optional[float]]:
    """Wilder ATR over true ranges that need a previous close.

    The first value sits at index ``period`` and is the mean of the first
    ``period`` true ranges; later values use Wilder smoothing.
    """
    if period <= 0:
        raise ValueError("period must be positive")

    n = len(candles)
    result: List[Optional[float]] = [None] * n
    if n < period + 1:
        return result

    ranges = [0.0] * n
    for i in range(1, n):
        ranges[i] = true_range(candles[i], candles[i - 1].close)

    prev_atr = sum(ranges[1 : period + 1]) / period
    result[period] = prev_atr
    for i in range(period + 1, n):
        prev_atr = (prev_atr * (period - 1) + ranges[i]) / period
        result[i] = prev_atr
    return result


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float
    width_pct: float
    position_pct: float  # clamped to 0..100 for display
    raw_position_pct: float


def population_stddev(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((value - mean) ** 2 for value in values) / len(values))


def bollinger(
    values: Sequence[float],
    period: int = 20,
    multiplier: float = 2.0,
    price: float | None = None,
) -> Optional[BollingerBands]:
    """Bands over the trailing ``period`` values; None when the window is short."""
    if period <= 0:
        raise ValueError("period must be positive")
    if len(values) < period:
        return None

    window = values[-period:]
    middle = sum(window) / period
    deviation = population_stddev(window)
    upper = middle + multiplier * deviation
    lower = middle - multiplier * deviation
    # Rounding can leave the bands a hair off the middle on a flat window.
    upper = max(upper, middle)
    lower = min(lower, middle)

    width_pct = (upper - lower) / middle * 100.0 if middle != 0 else 0.0
    current = values[-1] if price is None else price
    band = upper - lower
    if band > 0:
        raw_position = (current - lower) / band * 100.0
    else:
        raw_position = 50.0
    return BollingerBands(
        upper=upper,
        middle=middle,
        lower=lower,
        width_pct=width_pct,
        position_pct=min(100.0, max(0.0, raw_position)),
        raw_position_pct=raw_position,
    )
