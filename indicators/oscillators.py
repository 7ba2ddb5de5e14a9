from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .moving_averages import ema


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        # A window without any movement is neutral.
        return 50.0 if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def rsi(values: Sequence[float], period: int = 14) -> List[Optional[float]]:
    """Wilder RSI. The first value appears at index ``period``."""
    if period <= 0:
        raise ValueError("period must be positive")

    result: List[Optional[float]] = [None] * len(values)
    if len(values) < period + 1:
        return result

    gains: List[float] = [0.0] * len(values)
    losses: List[float] = [0.0] * len(values)
    for i in range(1, len(values)):
        change = values[i] - values[i - 1]
        if change > 0:
            gains[i] = change
        else:
            losses[i] = -change

    avg_gain = sum(gains[1 : period + 1]) / period
    avg_loss = sum(losses[1 : period + 1]) / period
    result[period] = _rsi_value(avg_gain, avg_loss)

    # Wilder's smoothing
    for i in range(period + 1, len(values)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return result


@dataclass(frozen=True)
class MacdSeries:
    line: List[Optional[float]]
    signal: List[Optional[float]]
    histogram: List[Optional[float]]


def macd(
    values: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MacdSeries:
    """MACD line, signal line and histogram aligned with ``values``.

    Every series is all-None when fewer than ``slow + signal`` values are given.
    """
    if fast <= 0 or slow <= 0 or signal <= 0:
        raise ValueError("periods must be positive")
    if fast >= slow:
        raise ValueError("fast period must be shorter than slow period")

    n = len(values)
    line: List[Optional[float]] = [None] * n
    signal_line: List[Optional[float]] = [None] * n
    histogram: List[Optional[float]] = [None] * n
    if n < slow + signal:
        return MacdSeries(line=line, signal=signal_line, histogram=histogram)

    fast_ema = ema(values, fast)
    slow_ema = ema(values, slow)
    start = slow - 1
    for i in range(start, n):
        line[i] = fast_ema[i] - slow_ema[i]  # type: ignore[operator]

    compact = [value for value in line[start:] if value is not None]
    compact_signal = ema(compact, signal)
    for offset, value in enumerate(compact_signal):
        if value is None:
            continue
        i = start + offset
        signal_line[i] = value
        histogram[i] = line[i] - value  # type: ignore[operator]

    return MacdSeries(line=line, signal=signal_line, histogram=histogram)
