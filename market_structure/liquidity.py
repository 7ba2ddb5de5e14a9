from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from market_data.models import Candle

from .swings import PriceLevel


class LiquidityKind(str, Enum):
    HIGH = "HIGH"
    LOW = "LOW"


class LiquiditySource(str, Enum):
    PDH = "PDH"
    PDL = "PDL"
    ASIAN_HIGH = "ASIAN_HIGH"
    ASIAN_LOW = "ASIAN_LOW"
    WEEKLY_HIGH = "WEEKLY_HIGH"
    WEEKLY_LOW = "WEEKLY_LOW"
    EQUAL_HIGHS = "EQUAL_HIGHS"
    EQUAL_LOWS = "EQUAL_LOWS"
    SWING_HIGH = "SWING_HIGH"
    SWING_LOW = "SWING_LOW"


@dataclass(frozen=True)
class LiquidityCandidate:
    price: float
    kind: LiquidityKind
    label: LiquiditySource
    formed_index: int


@dataclass(frozen=True)
class LiquidityLevel:
    price: float
    kind: LiquidityKind
    label: LiquiditySource
    swept: bool = False
    swept_index: Optional[int] = None
    swept_at: Optional[datetime] = None


def swing_candidates(levels: Iterable[PriceLevel], kind: LiquidityKind, neighbors: int) -> List[LiquidityCandidate]:
    """Clustered swing levels; two or more touches make an equal-highs/lows pool."""
    candidates: List[LiquidityCandidate] = []
    for level in levels:
        if kind is LiquidityKind.HIGH:
            label = LiquiditySource.EQUAL_HIGHS if level.touches >= 2 else LiquiditySource.SWING_HIGH
        else:
            label = LiquiditySource.EQUAL_LOWS if level.touches >= 2 else LiquiditySource.SWING_LOW
        candidates.append(
            LiquidityCandidate(
                price=level.price,
                kind=kind,
                label=label,
                formed_index=level.last_index + neighbors + 1,
            )
        )
    return candidates


def find_sweep(
    candles: Sequence[Candle],
    candidate: LiquidityCandidate,
    *,
    start_index: int,
    min_pierce_pct: float,
) -> Optional[int]:
    """Index of the first bar that wicks through the level and closes back, if any.

    A close beyond the level before any such wick is a clean breakout and ends the scan.
    """
    pierce = candidate.price * min_pierce_pct / 100.0
    for i in range(max(start_index, 0), len(candles)):
        candle = candles[i]
        if candidate.kind is LiquidityKind.HIGH:
            if candle.high >= candidate.price + pierce and candle.close < candidate.price:
                return i
            if candle.close > candidate.price:
                return None
        else:
            if candle.low <= candidate.price - pierce and candle.close > candidate.price:
                return i
            if candle.close < candidate.price:
                return None
    return None


def mark_liquidity(
    candles: Sequence[Candle],
    candidates: Iterable[LiquidityCandidate],
    *,
    sweep_lookback: int = 10,
    min_pierce_pct: float = 0.01,
) -> List[LiquidityLevel]:
    """Resolve each candidate into a level, flagging the first qualifying sweep in the window."""
    window_start = len(candles) - sweep_lookback
    levels: List[LiquidityLevel] = []
    for candidate in candidates:
        if candidate.price <= 0:
            continue
        swept_index = find_sweep(
            candles,
            candidate,
            start_index=max(candidate.formed_index, window_start),
            min_pierce_pct=min_pierce_pct,
        )
        levels.append(
            LiquidityLevel(
                price=candidate.price,
                kind=candidate.kind,
                label=candidate.label,
                swept=swept_index is not None,
                swept_index=swept_index,
                swept_at=candles[swept_index].open_time if swept_index is not None else None,
            )
        )
    return levels
