"""Swing points, support/resistance clustering and break of structure."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from market_data.models import Candle


class SwingKind(str, Enum):
    HIGH = "HIGH"
    LOW = "LOW"


class BosDirection(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NONE = "NONE"


@dataclass(frozen=True)
class SwingPoint:
    index: int
    price: float
    kind: SwingKind
    time: datetime


@dataclass(frozen=True)
class PriceLevel:
    price: float
    touches: int
    last_index: int


@dataclass(frozen=True)
class SupportResistance:
    support: List[float]  # nearest first, below price
    resistance: List[float]  # nearest first, above price


@dataclass(frozen=True)
class BreakOfStructure:
    direction: BosDirection
    level: Optional[float] = None


def find_swing_points(candles: Sequence[Candle], neighbors: int = 3) -> List[SwingPoint]:
    """Bars whose high (low) is strictly above (below) ``neighbors`` bars on each side.

    Only confirmed swings are returned: the last ``neighbors`` bars can never qualify.
    """
    if neighbors <= 0:
        raise ValueError("neighbors must be positive")

    points: List[SwingPoint] = []
    for i in range(neighbors, len(candles) - neighbors):
        candle = candles[i]
        window = list(candles[i - neighbors : i]) + list(candles[i + 1 : i + neighbors + 1])
        if all(candle.high > other.high for other in window):
            points.append(SwingPoint(index=i, price=candle.high, kind=SwingKind.HIGH, time=candle.open_time))
        if all(candle.low < other.low for other in window):
            points.append(SwingPoint(index=i, price=candle.low, kind=SwingKind.LOW, time=candle.open_time))
    return points


def cluster_swings(points: Sequence[SwingPoint], tolerance_pct: float) -> List[PriceLevel]:
    """Merge swing prices lying within ``tolerance_pct`` of a running cluster mean."""
    if tolerance_pct < 0:
        raise ValueError("tolerance_pct must be non-negative")

    clusters: List[Tuple[List[float], int]] = []
    for point in sorted(points, key=lambda p: p.price):
        if clusters:
            prices, last_index = clusters[-1]
            mean = sum(prices) / len(prices)
            if mean > 0 and abs(point.price - mean) / mean * 100.0 <= tolerance_pct:
                prices.append(point.price)
                clusters[-1] = (prices, max(last_index, point.index))
                continue
        clusters.append(([point.price], point.index))

    return [
        PriceLevel(price=sum(prices) / len(prices), touches=len(prices), last_index=last_index)
        for prices, last_index in clusters
    ]


def support_resistance(
    candles: Sequence[Candle],
    price: float,
    *,
    neighbors: int = 3,
    tolerance_pct: float = 0.3,
    max_levels: int = 3,
    swings: Sequence[SwingPoint] | None = None,
) -> SupportResistance:
    points = list(swings) if swings is not None else find_swing_points(candles, neighbors)
    levels = cluster_swings(points, tolerance_pct)
    below = sorted((lvl.price for lvl in levels if lvl.price <= price), reverse=True)
    above = sorted(lvl.price for lvl in levels if lvl.price > price)
    return SupportResistance(support=below[:max_levels], resistance=above[:max_levels])


def detect_bos(
    candles: Sequence[Candle],
    *,
    neighbors: int = 3,
    swings: Sequence[SwingPoint] | None = None,
) -> BreakOfStructure:
    """Compare the last close against the most recent confirmed swing high and low."""
    if not candles:
        return BreakOfStructure(BosDirection.NONE)
    points = list(swings) if swings is not None else find_swing_points(candles, neighbors)
    last_close = candles[-1].close

    highs = [p for p in points if p.kind is SwingKind.HIGH]
    lows = [p for p in points if p.kind is SwingKind.LOW]
    if highs and last_close > highs[-1].price:
        return BreakOfStructure(BosDirection.BULLISH, highs[-1].price)
    if lows and last_close < lows[-1].price:
        return BreakOfStructure(BosDirection.BEARISH, lows[-1].price)
    return BreakOfStructure(BosDirection.NONE)
