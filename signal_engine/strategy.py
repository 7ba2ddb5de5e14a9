from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from indicators.moving_averages import ema
from indicators.snapshot import IndicatorSnapshot
from market_data.models import Candle
from market_structure.ict import MarketTrend
from market_structure.snapshot import StructureSnapshot

from .config import EngineConfig
from .models import Action, SignalScore
from .reasons import ReasonCode


class SignalStrategy(ABC):
    """Strategy-agnostic scoring interface selected by ``EngineConfig.strategy``."""

    name: str = ""
    # Structure-based setups place stops beyond levels; otherwise fixed ATR multiples.
    uses_structure_setup: bool = False

    @abstractmethod
    def evaluate(
        self,
        candles: Sequence[Candle],
        structure: StructureSnapshot,
        indicators: Optional[IndicatorSnapshot],
        config: EngineConfig,
        *,
        higher_trend: MarketTrend = MarketTrend.RANGING,
    ) -> SignalScore:
        """Score the latest bar; ``indicators`` is None while they are still warming up."""


class ScoreCard:
    """Accumulates weighted reason codes for the buy and sell sides."""

    def __init__(self) -> None:
        self._points: Dict[Action, float] = {Action.BUY: 0.0, Action.SELL: 0.0}
        self._reasons: Dict[Action, List[Tuple[ReasonCode, float]]] = {Action.BUY: [], Action.SELL: []}

    def add(self, side: Action, code: ReasonCode, points: float) -> None:
        self._points[side] += points
        self._reasons[side].append((code, points))

    def points(self, side: Action) -> float:
        return self._points[side]

    def reasons(self, side: Action) -> Tuple[ReasonCode, ...]:
        """Reasons for ``side`` ranked by contribution, ties kept in insertion order."""
        ranked = sorted(self._reasons[side], key=lambda item: item[1], reverse=True)
        return tuple(code for code, _ in ranked)

    @property
    def buy(self) -> float:
        return self._points[Action.BUY]

    @property
    def sell(self) -> float:
        return self._points[Action.SELL]

    def leader(self) -> Optional[Action]:
        if self.buy > self.sell:
            return Action.BUY
        if self.sell > self.buy:
            return Action.SELL
        return None


def clamp_confidence(value: float) -> int:
    return int(max(0, min(100, round(value))))


def opposite(side: Action) -> Action:
    return Action.SELL if side is Action.BUY else Action.BUY


def insufficient_data_score() -> SignalScore:
    return SignalScore(
        action=Action.WAIT,
        buy_score=0.0,
        sell_score=0.0,
        confidence=0,
        reasons=(ReasonCode.INSUFFICIENT_DATA,),
    )


def apply_confidence_floor(score: SignalScore, config: EngineConfig) -> SignalScore:
    """Demote an actionable score below ``min_confidence_to_act`` to WAIT."""
    if not score.action.is_actionable or score.confidence >= config.min_confidence_to_act:
        return score
    return replace(
        score,
        action=Action.WAIT,
        reasons=(ReasonCode.LOW_CONFIDENCE,) + score.reasons,
        invalidation_level=None,
        target_levels=(),
    )


def higher_timeframe_trend(candles: Sequence[Candle], fast: int = 9, slow: int = 21) -> MarketTrend:
    """Trend of a slower timeframe from its EMA alignment and the last close."""
    closes = [c.close for c in candles]
    fast_value = ema(closes, fast)[-1] if closes else None
    slow_value = ema(closes, slow)[-1] if closes else None
    if fast_value is None or slow_value is None:
        return MarketTrend.RANGING
    price = closes[-1]
    if fast_value > slow_value and price > fast_value:
        return MarketTrend.BULLISH
    if fast_value < slow_value and price < fast_value:
        return MarketTrend.BEARISH
    return MarketTrend.RANGING
