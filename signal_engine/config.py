from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from indicators.snapshot import IndicatorSettings
from market_structure.sessions import DEFAULT_ASIAN_SESSION, DEFAULT_KILL_ZONES, TimeRange
from market_structure.snapshot import StructureSettings

from .trade_setup import TradeSetupSettings

ALLOWED_TIMEFRAMES = (
    "1m",
    "3m",
    "5m",
    "15m",
    "30m",
    "1h",
    "2h",
    "4h",
    "6h",
    "12h",
    "1d",
)
ALLOWED_STRATEGIES = ("classic", "smc", "ict", "bollinger")
DEFAULT_SYMBOLS = ("BTCUSDT", "ETHUSDT", "SOLUSDT", "BNBUSDT", "XRPUSDT", "ADAUSDT")


@dataclass(frozen=True)
class EngineConfig:
    """Options for one orchestrated evaluation of an instrument universe."""

    timeframe: str = "15m"
    strategy: str = "classic"
    lookback_bars: int = 200
    swing_neighbor_count: int = 3
    liquidity_tolerance_pct: float = 0.3
    min_confidence_to_act: int = 40
    kill_zones: Tuple[TimeRange, ...] = DEFAULT_KILL_ZONES

    asian_session: TimeRange = DEFAULT_ASIAN_SESSION
    indicators: IndicatorSettings = field(default_factory=IndicatorSettings)
    setup: TradeSetupSettings = field(default_factory=TradeSetupSettings)

    # Optional trend filter from a slower timeframe, e.g. "1h" for a 5m universe.
    higher_timeframe: Optional[str] = None
    higher_timeframe_bars: int = 100

    max_workers: int = 8
    use_live_price: bool = True
    confidence_age_decay: bool = False
    strict: bool = False  # re-raise computation defects instead of skipping

    def __post_init__(self) -> None:
        if self.timeframe not in ALLOWED_TIMEFRAMES:
            raise ValueError(f"Invalid timeframe: {self.timeframe}")
        if self.strategy not in ALLOWED_STRATEGIES:
            raise ValueError(f"strategy must be one of: {', '.join(ALLOWED_STRATEGIES)}")
        if not self.indicators.min_bars <= self.lookback_bars <= 1000:
            raise ValueError(f"lookback_bars must be in {self.indicators.min_bars}..1000")
        if self.swing_neighbor_count <= 0:
            raise ValueError("swing_neighbor_count must be positive")
        if self.liquidity_tolerance_pct < 0:
            raise ValueError("liquidity_tolerance_pct must be non-negative")
        if not 0 <= self.min_confidence_to_act <= 100:
            raise ValueError("min_confidence_to_act must be within 0..100")
        if self.higher_timeframe is not None:
            if self.higher_timeframe not in ALLOWED_TIMEFRAMES:
                raise ValueError(f"Invalid higher_timeframe: {self.higher_timeframe}")
            if self.higher_timeframe_bars < 30:
                raise ValueError("higher_timeframe_bars must be at least 30")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")

    @property
    def min_bars(self) -> int:
        return self.indicators.min_bars

    @property
    def structure_settings(self) -> StructureSettings:
        return StructureSettings(
            swing_neighbor_count=self.swing_neighbor_count,
            liquidity_tolerance_pct=self.liquidity_tolerance_pct,
            atr_period=self.indicators.atr_period,
            asian_session=self.asian_session,
            kill_zones=tuple(self.kill_zones),
        )
