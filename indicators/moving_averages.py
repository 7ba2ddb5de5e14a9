from __future__ import annotations

from typing import List, Optional, Sequence


def sma(values: Sequence[float], period: int) -> List[Optional[float]]:
    if period <= 0:
        raise ValueError("period must be positive")

    result: List[Optional[float]] = [None] * len(values)
    if len(values) < period:
        return result

    window_sum = sum(values[:period])
    result[period - 1] = window_sum / period
    for i in range(period, len(values)):
        window_sum += values[i] - values[i - period]
        result[i] = window_sum / period
    return result


def ema(values: Sequence[float], period: int) -> List[Optional[float]]:
    """Exponential moving average seeded with the simple mean of the first ``period`` values.

    Entries before the seed index are None.
    """
    if period <= 0:
        raise ValueError("period must be positive")

    result: List[Optional[float]] = [None] * len(values)
    if len(values) < period:
        return result

    seed = sum(values[:period]) / period
    result[period - 1] = seed
    k = 2.0 / (period + 1)

    ema_prev = seed
    for i in range(period, len(values)):
        ema_prev = values[i] * k + ema_prev * (1 - k)
        result[i] = ema_prev

    return result


def last_value(series: Sequence[Optional[float]], offset: int = 0) -> Optional[float]:
    """Return the value ``offset`` bars before the end of ``series``, or None."""
    idx = len(series) - 1 - offset
    if idx < 0:
        return None
    return series[idx]
