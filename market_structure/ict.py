"""Order blocks, fair value gaps and swing-labelled market structure."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from market_data.models import Candle


class ZoneBias(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"


class BreakType(str, Enum):
    BOS = "BOS"
    CHOCH = "CHOCH"


class MarketTrend(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    RANGING = "RANGING"


@dataclass(frozen=True)
class OrderBlock:
    bias: ZoneBias
    top: float
    bottom: float
    index: int
    time: datetime
    strength: int
    touches: int


@dataclass(frozen=True)
class FairValueGap:
    bias: ZoneBias
    top: float
    bottom: float
    index: int
    time: datetime
    fill_pct: int


@dataclass(frozen=True)
class StructureBreak:
    kind: BreakType
    bias: ZoneBias
    level: float
    index: int


def detect_order_blocks(
    candles: Sequence[Candle],
    *,
    lookback: int = 50,
    body_multiple: float = 1.5,
    max_touches: int = 3,
    limit: int = 10,
) -> List[OrderBlock]:
    """Last opposite-colour candle before a strong, confirmed impulse.

    Blocks that price has closed through, or revisited ``max_touches`` times,
    are treated as mitigated and dropped. Strongest first.
    """
    n = len(candles)
    if n < 10:
        return []
    offset = max(0, n - lookback)
    recent = candles[offset:]
    avg_body = sum(c.body for c in recent) / len(recent)
    if avg_body <= 0:
        return []

    last_close = candles[-1].close
    blocks: List[OrderBlock] = []
    for i in range(2, len(recent) - 2):
        curr, nxt, nxt2 = recent[i], recent[i + 1], recent[i + 2]
        if nxt.body <= avg_body * body_multiple:
            continue
        if curr.is_bearish and nxt.is_bullish and nxt2.is_bullish:
            bias = ZoneBias.BULLISH
        elif curr.is_bullish and nxt.is_bearish and nxt2.is_bearish:
            bias = ZoneBias.BEARISH
        else:
            continue

        top = max(curr.open, curr.close)
        bottom = min(curr.open, curr.close)
        if bias is ZoneBias.BULLISH and last_close < bottom:
            continue
        if bias is ZoneBias.BEARISH and last_close > top:
            continue

        index = offset + i
        touches = sum(1 for c in candles[index + 3 :] if c.low <= top and c.high >= bottom)
        if touches >= max_touches:
            continue
        blocks.append(
            OrderBlock(
                bias=bias,
                top=top,
                bottom=bottom,
                index=index,
                time=curr.open_time,
                strength=min(100, int(round(nxt.body / avg_body * 30))),
                touches=touches,
            )
        )

    blocks.sort(key=lambda block: block.strength, reverse=True)
    return blocks[:limit]


def detect_fair_value_gaps(
    candles: Sequence[Candle],
    *,
    lookback: int = 50,
    limit: int = 8,
) -> List[FairValueGap]:
    """Three-candle imbalances that later price has not fully filled, newest first."""
    n = len(candles)
    if n < 5:
        return []
    offset = max(0, n - lookback)

    gaps: List[FairValueGap] = []
    for index in range(offset + 1, n - 1):
        first, middle, third = candles[index - 1], candles[index], candles[index + 1]
        if third.low > first.high:
            bias, top, bottom = ZoneBias.BULLISH, third.low, first.high
        elif third.high < first.low:
            bias, top, bottom = ZoneBias.BEARISH, first.low, third.high
        else:
            continue

        size = top - bottom
        fill_pct = 0
        filled = False
        for later in candles[index + 2 :]:
            if bias is ZoneBias.BULLISH and later.low <= top:
                fill_pct = max(fill_pct, min(100, int(round((top - later.low) / size * 100))))
                filled = filled or later.low <= bottom
            elif bias is ZoneBias.BEARISH and later.high >= bottom:
                fill_pct = max(fill_pct, min(100, int(round((later.high - bottom) / size * 100))))
                filled = filled or later.high >= top
        if filled:
            continue
        gaps.append(
            FairValueGap(bias=bias, top=top, bottom=bottom, index=index, time=middle.open_time, fill_pct=fill_pct)
        )

    gaps.sort(key=lambda gap: gap.index, reverse=True)
    return gaps[:limit]


def _labelled_swings(recent: Sequence[Candle], offset: int) -> List[Tuple[str, float, int]]:
    swings: List[Tuple[str, float, int]] = []
    last_high: Optional[float] = None
    last_low: Optional[float] = None
    for i in range(3, len(recent) - 3):
        window = list(recent[i - 2 : i]) + list(recent[i + 1 : i + 3])
        candle = recent[i]
        if all(candle.high >= other.high for other in window):
            label = "HH" if last_high is None or candle.high > last_high else "LH"
            swings.append((label, candle.high, offset + i))
            last_high = candle.high
        if all(candle.low <= other.low for other in window):
            label = "LL" if last_low is None or candle.low < last_low else "HL"
            swings.append((label, candle.low, offset + i))
            last_low = candle.low
    return swings


def detect_market_structure(
    candles: Sequence[Candle],
    *,
    lookback: int = 60,
) -> Tuple[List[StructureBreak], MarketTrend]:
    """Label swings HH/HL/LH/LL and derive BOS/CHoCH events plus the prevailing trend.

    A higher high following a higher low is a break in the bullish direction:
    a BOS when the previous break was also bullish, otherwise a CHoCH.
    """
    if len(candles) < 15:
        return [], MarketTrend.RANGING
    offset = max(0, len(candles) - lookback)
    swings = _labelled_swings(candles[offset:], offset)

    breaks: List[StructureBreak] = []
    prev_bias: Optional[ZoneBias] = None
    for (prev_label, _, _), (label, level, index) in zip(swings, swings[1:]):
        if label == "HH" and prev_label == "HL":
            kind = BreakType.BOS if prev_bias is ZoneBias.BULLISH else BreakType.CHOCH
            breaks.append(StructureBreak(kind=kind, bias=ZoneBias.BULLISH, level=level, index=index))
            prev_bias = ZoneBias.BULLISH
        elif label == "LL" and prev_label == "LH":
            kind = BreakType.BOS if prev_bias is ZoneBias.BEARISH else BreakType.CHOCH
            breaks.append(StructureBreak(kind=kind, bias=ZoneBias.BEARISH, level=level, index=index))
            prev_bias = ZoneBias.BEARISH

    recent_labels = [label for label, _, _ in swings[-6:]]
    bullish = sum(1 for label in recent_labels if label in ("HH", "HL"))
    bearish = sum(1 for label in recent_labels if label in ("LL", "LH"))
    trend = MarketTrend.RANGING
    if bullish >= 4:
        trend = MarketTrend.BULLISH
    elif bearish >= 4:
        trend = MarketTrend.BEARISH
    return breaks[-5:], trend
