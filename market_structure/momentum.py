"""Displacement and exhaustion detection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from market_data.models import Candle


class MoveDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    NONE = "NONE"


@dataclass(frozen=True)
class DisplacementResult:
    detected: bool
    direction: MoveDirection
    strength_score: int
    body_atr_ratio: float = 0.0
    start_index: Optional[int] = None
    end_index: Optional[int] = None


@dataclass(frozen=True)
class ExhaustionResult:
    detected: bool
    wick_ratio: float
    follow_through: bool
    volume_slowdown: bool
    index: Optional[int] = None


def _direction_of(candle: Candle) -> MoveDirection:
    if candle.is_bullish:
        return MoveDirection.UP
    if candle.is_bearish:
        return MoveDirection.DOWN
    return MoveDirection.NONE


def detect_displacement(
    candles: Sequence[Candle],
    atr_series: Sequence[Optional[float]],
    *,
    multiple: float = 1.5,
    recent_bars: int = 3,
    max_run: int = 3,
) -> DisplacementResult:
    """Find the most recent run of same-direction bodies that dwarfs the prior ATR.

    The run must end within the last ``recent_bars`` candles; ATR is read from
    the bar before the run starts so the move does not inflate its own yardstick.
    """
    n = len(candles)
    best_ratio = 0.0
    for end in range(n - 1, max(n - 1 - recent_bars, -1), -1):
        direction = _direction_of(candles[end])
        if direction is MoveDirection.NONE:
            continue
        start = end
        while start - 1 >= 0 and end - start + 1 < max_run and _direction_of(candles[start - 1]) is direction:
            start -= 1

        ref_index = start - 1
        if ref_index < 0 or ref_index >= len(atr_series):
            continue
        ref_atr = atr_series[ref_index]
        if not ref_atr:
            continue

        ratio = sum(c.body for c in candles[start : end + 1]) / ref_atr
        best_ratio = max(best_ratio, ratio)
        if ratio >= multiple:
            strength = min(100, int(round(50 + 50 * (ratio - multiple) / multiple)))
            return DisplacementResult(
                detected=True,
                direction=direction,
                strength_score=strength,
                body_atr_ratio=ratio,
                start_index=start,
                end_index=end,
            )
    return DisplacementResult(
        detected=False,
        direction=MoveDirection.NONE,
        strength_score=0,
        body_atr_ratio=best_ratio,
    )


def prevailing_direction(candles: Sequence[Candle], bars: int = 5) -> MoveDirection:
    if len(candles) < bars + 1:
        return MoveDirection.NONE
    change = candles[-1].close - candles[-1 - bars].close
    if change > 0:
        return MoveDirection.UP
    if change < 0:
        return MoveDirection.DOWN
    return MoveDirection.NONE


def _wick_ratio(candle: Candle, direction: MoveDirection) -> float:
    if candle.range <= 0:
        return 0.0
    wick = candle.upper_wick if direction is MoveDirection.UP else candle.lower_wick
    body = max(candle.body, candle.range * 0.01)
    return wick / body


def detect_exhaustion(
    candles: Sequence[Candle],
    direction: MoveDirection,
    *,
    wick_ratio_threshold: float = 2.0,
    volume_ratio: float = 0.8,
    volume_lookback: int = 3,
) -> ExhaustionResult:
    """Look for a rejection wick against ``direction`` on one of the last two bars.

    Exhaustion requires the long opposite wick, volume below ``volume_ratio`` of
    the prior bars' mean, and no close beyond it on the following bar.
    """
    n = len(candles)
    if n == 0 or direction is MoveDirection.NONE:
        ratio = _wick_ratio(candles[-1], MoveDirection.UP) if n else 0.0
        return ExhaustionResult(detected=False, wick_ratio=ratio, follow_through=False, volume_slowdown=False)

    for i in (n - 1, n - 2):
        if i < volume_lookback:
            continue
        candle = candles[i]
        ratio = _wick_ratio(candle, direction)
        if ratio < wick_ratio_threshold:
            continue

        prior = candles[i - volume_lookback : i]
        prior_mean = sum(c.volume for c in prior) / len(prior)
        slowdown = prior_mean > 0 and candle.volume < prior_mean * volume_ratio

        follow_through = False
        if i + 1 < n:
            nxt = candles[i + 1]
            if direction is MoveDirection.UP:
                follow_through = nxt.close > candle.close
            else:
                follow_through = nxt.close < candle.close

        return ExhaustionResult(
            detected=slowdown and not follow_through,
            wick_ratio=ratio,
            follow_through=follow_through,
            volume_slowdown=slowdown,
            index=i,
        )

    return ExhaustionResult(
        detected=False,
        wick_ratio=_wick_ratio(candles[-1], direction),
        follow_through=False,
        volume_slowdown=False,
    )
