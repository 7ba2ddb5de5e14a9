"""Structure analyzer: swings, sessions, liquidity and smart-money primitives."""

from .ict import (
    BreakType,
    FairValueGap,
    MarketTrend,
    OrderBlock,
    StructureBreak,
    ZoneBias,
    detect_fair_value_gaps,
    detect_market_structure,
    detect_order_blocks,
)
from .liquidity import (
    LiquidityCandidate,
    LiquidityKind,
    LiquidityLevel,
    LiquiditySource,
    find_sweep,
    mark_liquidity,
)
from .momentum import (
    DisplacementResult,
    ExhaustionResult,
    MoveDirection,
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
from .snapshot import StructureSettings, StructureSnapshot, analyze_structure
from .swings import (
    BosDirection,
    BreakOfStructure,
    PriceLevel,
    SupportResistance,
    SwingKind,
    SwingPoint,
    cluster_swings,
    detect_bos,
    find_swing_points,
    support_resistance,
)

__all__ = [
    "BosDirection",
    "BreakOfStructure",
    "BreakType",
    "DEFAULT_ASIAN_SESSION",
    "DEFAULT_KILL_ZONES",
    "DisplacementResult",
    "ExhaustionResult",
    "FairValueGap",
    "LiquidityCandidate",
    "LiquidityKind",
    "LiquidityLevel",
    "LiquiditySource",
    "MarketTrend",
    "MoveDirection",
    "OrderBlock",
    "PriceLevel",
    "RangeLevels",
    "StructureBreak",
    "StructureSettings",
    "StructureSnapshot",
    "SupportResistance",
    "SwingKind",
    "SwingPoint",
    "TimeRange",
    "ZoneBias",
    "active_kill_zone",
    "analyze_structure",
    "cluster_swings",
    "detect_bos",
    "detect_displacement",
    "detect_exhaustion",
    "detect_fair_value_gaps",
    "detect_market_structure",
    "detect_order_blocks",
    "find_swing_points",
    "find_sweep",
    "mark_liquidity",
    "prevailing_direction",
    "previous_day_range",
    "previous_week_range",
    "session_range",
    "session_vwap",
    "support_resistance",
]
