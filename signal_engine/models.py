"""Data models for scored signals and orchestrator output."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from indicators.snapshot import IndicatorSnapshot
from market_structure.snapshot import StructureSnapshot

from .reasons import ReasonCode


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    WAIT = "WAIT"
    EXIT_BUY = "EXIT_BUY"
    EXIT_SELL = "EXIT_SELL"

    @property
    def is_actionable(self) -> bool:
        return self is not Action.WAIT

    @property
    def is_entry(self) -> bool:
        return self in (Action.BUY, Action.SELL)


class SignalQuality(str, Enum):
    WEAK = "weak"
    NORMAL = "normal"
    STRONG = "strong"


def quality_for(confidence: int) -> SignalQuality:
    if confidence >= 70:
        return SignalQuality.STRONG
    if confidence >= 35:
        return SignalQuality.NORMAL
    return SignalQuality.WEAK


class SkipReason(str, Enum):
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    MALFORMED_DATA = "MALFORMED_DATA"
    FETCH_FAILED = "FETCH_FAILED"
    COMPUTATION_ERROR = "COMPUTATION_ERROR"


@dataclass(frozen=True)
class SignalScore:
    """Directional decision of one strategy for one evaluation.

    ``reasons`` lists the codes that support ``action`` (or explain a WAIT);
    ``cancel_reasons`` lists required conditions that were missing or penalties
    applied. ``invalidation_level`` is the structural price that voids the idea.
    """

    action: Action
    buy_score: float
    sell_score: float
    confidence: int
    reasons: Tuple[ReasonCode, ...] = ()
    cancel_reasons: Tuple[ReasonCode, ...] = ()
    invalidation_level: Optional[float] = None
    target_levels: Tuple[float, ...] = ()

    def __post_init__(self) -> None:
        if not 0 <= self.confidence <= 100:
            raise ValueError("confidence must be within 0..100")


@dataclass(frozen=True)
class TradeSetup:
    entry: float
    stop_loss: float
    target1: float
    target2: float
    risk_reward: float


@dataclass(frozen=True)
class Signal:
    """One instrument's evaluated signal plus continuity metadata."""

    symbol: str
    timeframe: str
    strategy: str
    price: float
    action: Action
    score: SignalScore
    setup: Optional[TradeSetup]
    indicators: IndicatorSnapshot
    structure: StructureSnapshot
    signal_since: datetime
    signal_age_seconds: int
    evaluated_at: datetime
    precision: int = 2

    @property
    def confidence(self) -> int:
        return self.score.confidence

    @property
    def quality(self) -> SignalQuality:
        return quality_for(self.score.confidence)


@dataclass(frozen=True)
class SkippedInstrument:
    symbol: str
    reason: SkipReason
    detail: str = ""


@dataclass(frozen=True)
class EvaluationResult:
    timeframe: str
    strategy: str
    evaluated_at: datetime
    signals: List[Signal] = field(default_factory=list)
    skipped: List[SkippedInstrument] = field(default_factory=list)

    @property
    def actionable(self) -> List[Signal]:
        return [signal for signal in self.signals if signal.action.is_actionable]
