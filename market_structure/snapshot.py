from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from indicators.volatility import atr
from market_data.models import Candle

from .ict import (
    FairValueGap,
    MarketTrend,
    OrderBlock,
    StructureBreak,
    detect_fair_value_gaps,
    detect_market_structure,
    detect_order_blocks,
)
from .liquidity import (
    LiquidityCandidate,
    LiquidityKind,
    LiquidityLevel,
    LiquiditySource,
    mark_liquidity,
    swing_candidates,
)
from .momentum import (
    DisplacementResult,
    ExhaustionResult,
    detect_displacement,
    detect_exhaustion,
    prevailing_direction,
)
from .sessions import (
    DEFAULT_ASIAN_SESSION,
    DEFAULT_KILL_ZONES,
    RangeLevels,
    TimeRange,
    active_kill_zone,
    previous_day_range,
    previous_week_range,
    session_range,
    session_vwap,
)
from .swings import (
    BreakOfStructure,
    SwingKind,
    cluster_swings,
    detect_bos,
    find_swing_points,
    support_resistance,
)


@dataclass(frozen=True)
class StructureSettings:
    swing_neighbor_count: int = 3
    liquidity_tolerance_pct: float = 0.3
    max_levels: int = 3
    liquidity_lookback: int = 50
    sweep_lookback: int = 10
    sweep_min_pierce_pct: float = 0.01
    atr_period: int = 14
    displacement_multiple: float = 1.5
    displacement_recent_bars: int = 3
    exhaustion_wick_ratio: float = 2.0
    exhaustion_volume_ratio: float = 0.8
    asian_session: TimeRange = DEFAULT_ASIAN_SESSION
    kill_zones: Tuple[TimeRange, ...] = DEFAULT_KILL_ZONES

    def __post_init__(self) -> None:
        if self.swing_neighbor_count <= 0:
            raise ValueError("swing_neighbor_count must be positive")
        if self.liquidity_tolerance_pct < 0:
            raise ValueError("liquidity_tolerance_pct must be non-negative")
        if self.max_levels <= 0:
            raise ValueError("max_levels must be positive")
        if self.sweep_lookback <= 0 or self.liquidity_lookback <= 0:
            raise ValueError("lookback windows must be positive")
        if self.displacement_multiple <= 0:
            raise ValueError("displacement_multiple must be positive")
        if self.exhaustion_wick_ratio <= 0:
            raise ValueError("exhaustion_wick_ratio must be positive")


@dataclass(frozen=True)
class StructureSnapshot:
    """Structural readout of one instrument at evaluation time."""

    support: List[float]
    resistance: List[float]
    bos: BreakOfStructure
    pdh: Optional[float]
    pdl: Optional[float]
    asian_high: Optional[float]
    asian_low: Optional[float]
    weekly_high: Optional[float]
    weekly_low: Optional[float]
    vwap: Optional[float]
    liquidity: List[LiquidityLevel]
    displacement: DisplacementResult
    exhaustion: ExhaustionResult
    kill_zone: Optional[str]
    order_blocks: List[OrderBlock] = field(default_factory=list)
    fair_value_gaps: List[FairValueGap] = field(default_factory=list)
    structure_breaks: List[StructureBreak] = field(default_factory=list)
    trend: MarketTrend = MarketTrend.RANGING

    def swept_levels(self, kind: LiquidityKind) -> List[LiquidityLevel]:
        return [level for level in self.liquidity if level.kind is kind and level.swept]


def _range_candidates(
    levels: Optional[RangeLevels],
    high_label: LiquiditySource,
    low_label: LiquiditySource,
) -> List[LiquidityCandidate]:
    if levels is None:
        return []
    return [
        LiquidityCandidate(levels.high, LiquidityKind.HIGH, high_label, levels.formed_index),
        LiquidityCandidate(levels.low, LiquidityKind.LOW, low_label, levels.formed_index),
    ]


def analyze_structure(
    candles: Sequence[Candle],
    *,
    now: datetime,
    settings: StructureSettings | None = None,
    price: float | None = None,
) -> StructureSnapshot:
    """Derive every structural input the strategies read, from one candle series."""
    settings = settings or StructureSettings()
    if not candles:
        raise ValueError("candles must not be empty")
    current_price = candles[-1].close if price is None else price
    neighbors = settings.swing_neighbor_count

    swings = find_swing_points(candles, neighbors)
    levels = support_resistance(
        candles,
        current_price,
        neighbors=neighbors,
        tolerance_pct=settings.liquidity_tolerance_pct,
        max_levels=settings.max_levels,
        swings=swings,
    )
    bos = detect_bos(candles, neighbors=neighbors, swings=swings)

    day = previous_day_range(candles)
    asian = session_range(candles, settings.asian_session)
    week = previous_week_range(candles)

    recent_start = len(candles) - settings.liquidity_lookback
    recent_swings = [point for point in swings if point.index >= recent_start]
    candidates: List[LiquidityCandidate] = []
    candidates += _range_candidates(day, LiquiditySource.PDH, LiquiditySource.PDL)
    candidates += _range_candidates(asian, LiquiditySource.ASIAN_HIGH, LiquiditySource.ASIAN_LOW)
    candidates += _range_candidates(week, LiquiditySource.WEEKLY_HIGH, LiquiditySource.WEEKLY_LOW)
    candidates += swing_candidates(
        cluster_swings([p for p in recent_swings if p.kind is SwingKind.HIGH], settings.liquidity_tolerance_pct),
        LiquidityKind.HIGH,
        neighbors,
    )
    candidates += swing_candidates(
        cluster_swings([p for p in recent_swings if p.kind is SwingKind.LOW], settings.liquidity_tolerance_pct),
        LiquidityKind.LOW,
        neighbors,
    )
    liquidity = mark_liquidity(
        candles,
        candidates,
        sweep_lookback=settings.sweep_lookback,
        min_pierce_pct=settings.sweep_min_pierce_pct,
    )

    atr_series = atr(candles, settings.atr_period)
    displacement = detect_displacement(
        candles,
        atr_series,
        multiple=settings.displacement_multiple,
        recent_bars=settings.displacement_recent_bars,
    )
    move = displacement.direction if displacement.detected else prevailing_direction(candles)
    exhaustion = detect_exhaustion(
        candles,
        move,
        wick_ratio_threshold=settings.exhaustion_wick_ratio,
        volume_ratio=settings.exhaustion_volume_ratio,
    )

    breaks, trend = detect_market_structure(candles)
    return StructureSnapshot(
        support=levels.support,
        resistance=levels.resistance,
        bos=bos,
        pdh=day.high if day else None,
        pdl=day.low if day else None,
        asian_high=asian.high if asian else None,
        asian_low=asian.low if asian else None,
        weekly_high=week.high if week else None,
        weekly_low=week.low if week else None,
        vwap=session_vwap(candles),
        liquidity=liquidity,
        displacement=displacement,
        exhaustion=exhaustion,
        kill_zone=active_kill_zone(now, settings.kill_zones),
        order_blocks=detect_order_blocks(candles),
        fair_value_gaps=detect_fair_value_gaps(candles),
        structure_breaks=breaks,
        trend=trend,
    )
