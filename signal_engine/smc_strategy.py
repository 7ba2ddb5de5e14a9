"""Smart-money variant: liquidity sweep, displacement and a trigger, without exhaustion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from indicators.snapshot import IndicatorSnapshot
from market_data.models import Candle
from market_structure.ict import MarketTrend
from market_structure.liquidity import LiquidityKind, LiquidityLevel
from market_structure.momentum import MoveDirection
from market_structure.snapshot import StructureSnapshot

from .config import EngineConfig
from .models import Action, SignalScore
from .reasons import ReasonCode
from .strategy import (
    ScoreCard,
    SignalStrategy,
    apply_confidence_floor,
    clamp_confidence,
    insufficient_data_score,
)


@dataclass(frozen=True)
class SmcStrategyConfig:
    base_confidence: float = 40.0
    sweep_points: float = 15.0
    proximity_points: float = 8.0
    displacement_points: float = 10.0
    no_exhaustion_points: float = 5.0
    volume_points: float = 8.0
    level_break_points: float = 5.0
    kill_zone_points: float = 5.0
    multi_trigger_points: float = 5.0
    adverse_penalty: float = 10.0
    trigger_lookback: int = 5
    engulfing_ratio: float = 1.5

    def __post_init__(self) -> None:
        if self.trigger_lookback <= 0:
            raise ValueError("trigger_lookback must be positive")
        if self.engulfing_ratio <= 1:
            raise ValueError("engulfing_ratio must be greater than 1")


class SmcStrategy(SignalStrategy):
    """Trade the reversal after a stop-run into liquidity, confirmed by displacement.

    Every missing precondition is reported in ``cancel_reasons`` so a WAIT
    always explains which piece of the setup is absent.
    """

    name = "smc"
    uses_structure_setup = True

    def __init__(self, config: SmcStrategyConfig | None = None) -> None:
        self._config = config or SmcStrategyConfig()

    def evaluate(
        self,
        candles: Sequence[Candle],
        structure: StructureSnapshot,
        indicators: Optional[IndicatorSnapshot],
        config: EngineConfig,
        *,
        higher_trend: MarketTrend = MarketTrend.RANGING,
    ) -> SignalScore:
        if indicators is None or len(candles) < 3:
            return insufficient_data_score()
        cfg = self._config
        price = indicators.price
        tolerance = config.liquidity_tolerance_pct

        swept_low = _latest_swept(structure.liquidity, LiquidityKind.LOW)
        swept_high = _latest_swept(structure.liquidity, LiquidityKind.HIGH)
        near_low = _nearest_within(structure.liquidity, LiquidityKind.LOW, price, tolerance)
        near_high = _nearest_within(structure.liquidity, LiquidityKind.HIGH, price, tolerance)

        side = self._pick_side(structure, swept_low, swept_high, near_low, near_high)
        triggers = self._triggers(candles, structure, indicators, config)
        if side is None:
            cancel: List[ReasonCode] = []
            if not triggers:
                cancel.append(ReasonCode.NO_TRIGGER)
            if not structure.displacement.detected:
                cancel.append(ReasonCode.NO_DISPLACEMENT)
            if all(level is None for level in (swept_low, swept_high, near_low, near_high)):
                cancel.append(ReasonCode.NO_LIQUIDITY_INTERACTION)
            else:
                # Both sides swept or tested, with no displacement to pick one.
                cancel.append(ReasonCode.CONFLICTING_LIQUIDITY)
            return SignalScore(
                action=Action.WAIT,
                buy_score=0.0,
                sell_score=0.0,
                confidence=0,
                reasons=tuple(code for code, _ in triggers),
                cancel_reasons=tuple(cancel),
            )

        card = ScoreCard()
        missing: List[ReasonCode] = []
        for code, points in triggers:
            card.add(side, code, points)
        if not triggers:
            missing.append(ReasonCode.NO_TRIGGER)
        elif len(triggers) >= 2:
            card.add(side, ReasonCode.MULTIPLE_TRIGGERS, cfg.multi_trigger_points)

        swept = swept_low if side is Action.BUY else swept_high
        near = near_low if side is Action.BUY else near_high
        invalidation: Optional[float] = None
        if swept is not None:
            code = ReasonCode.LIQUIDITY_SWEEP_LOW if side is Action.BUY else ReasonCode.LIQUIDITY_SWEEP_HIGH
            card.add(side, code, cfg.sweep_points)
            sweep_bar = candles[swept.swept_index] if swept.swept_index is not None else None
            if sweep_bar is not None:
                invalidation = sweep_bar.low if side is Action.BUY else sweep_bar.high
            else:
                invalidation = swept.price
        elif near is not None:
            code = ReasonCode.AT_LIQUIDITY_LOW if side is Action.BUY else ReasonCode.AT_LIQUIDITY_HIGH
            card.add(side, code, cfg.proximity_points)
            invalidation = near.price
        else:
            missing.append(ReasonCode.NO_LIQUIDITY_INTERACTION)

        wanted = MoveDirection.UP if side is Action.BUY else MoveDirection.DOWN
        displacement = structure.displacement
        if displacement.detected and displacement.direction is wanted:
            code = ReasonCode.DISPLACEMENT_UP if side is Action.BUY else ReasonCode.DISPLACEMENT_DOWN
            card.add(side, code, cfg.displacement_points + displacement.strength_score // 10)
            if structure.exhaustion.detected:
                missing.append(ReasonCode.EXHAUSTION_DETECTED)
            else:
                card.add(side, ReasonCode.NO_EXHAUSTION, cfg.no_exhaustion_points)
        else:
            missing.append(ReasonCode.NO_DISPLACEMENT)

        if structure.kill_zone is not None:
            card.add(side, ReasonCode.IN_KILL_ZONE, cfg.kill_zone_points)

        penalties = self._adverse(candles, side)
        confidence = clamp_confidence(
            cfg.base_confidence + card.points(side) - cfg.adverse_penalty * len(penalties)
        )
        cancel_reasons = tuple(missing) + penalties
        action = side if not missing else Action.WAIT
        score = SignalScore(
            action=action,
            buy_score=card.buy,
            sell_score=card.sell,
            confidence=confidence,
            reasons=card.reasons(side),
            cancel_reasons=cancel_reasons,
            invalidation_level=invalidation if action is side else None,
            target_levels=self._targets(structure, side, price) if action is side else (),
        )
        return apply_confidence_floor(score, config)

    # ------------------------------------------------------------------ #
    # Building blocks
    # ------------------------------------------------------------------ #

    @staticmethod
    def _pick_side(
        structure: StructureSnapshot,
        swept_low: Optional[LiquidityLevel],
        swept_high: Optional[LiquidityLevel],
        near_low: Optional[LiquidityLevel],
        near_high: Optional[LiquidityLevel],
    ) -> Optional[Action]:
        displacement = structure.displacement
        if displacement.detected:
            return Action.BUY if displacement.direction is MoveDirection.UP else Action.SELL
        if swept_low is not None and swept_high is None:
            return Action.BUY
        if swept_high is not None and swept_low is None:
            return Action.SELL
        if swept_low is None and swept_high is None:
            if near_low is not None and near_high is None:
                return Action.BUY
            if near_high is not None and near_low is None:
                return Action.SELL
        return None

    def _triggers(
        self,
        candles: Sequence[Candle],
        structure: StructureSnapshot,
        indicators: IndicatorSnapshot,
        config: EngineConfig,
    ) -> List[Tuple[ReasonCode, float]]:
        cfg = self._config
        recent = candles[-cfg.trigger_lookback :]
        found: List[Tuple[ReasonCode, float]] = []
        if indicators.volume.spike:
            found.append((ReasonCode.VOLUME_SPIKE, cfg.volume_points))
        if structure.pdh is not None and any(c.high > structure.pdh for c in recent):
            found.append((ReasonCode.PDH_BREAK, cfg.level_break_points))
        if structure.pdl is not None and any(c.low < structure.pdl for c in recent):
            found.append((ReasonCode.PDL_BREAK, cfg.level_break_points))

        session_over = not config.asian_session.contains(candles[-1].open_time)
        if session_over and structure.asian_high is not None and structure.asian_low is not None:
            if any(c.high > structure.asian_high or c.low < structure.asian_low for c in recent):
                found.append((ReasonCode.SESSION_BREAK, cfg.level_break_points))
        return found

    def _adverse(self, candles: Sequence[Candle], side: Action) -> Tuple[ReasonCode, ...]:
        last, prev, prev2 = candles[-1], candles[-2], candles[-3]
        against = last.is_bearish if side is Action.BUY else last.is_bullish
        found: List[ReasonCode] = []
        if against and prev.body > 0 and last.body > prev.body * self._config.engulfing_ratio:
            found.append(ReasonCode.ADVERSE_ENGULFING)
        both_against = against and (prev.is_bearish if side is Action.BUY else prev.is_bullish)
        if both_against and last.volume > prev.volume > prev2.volume:
            found.append(ReasonCode.ADVERSE_VOLUME)
        return tuple(found)

    @staticmethod
    def _targets(structure: StructureSnapshot, side: Action, price: float) -> Tuple[float, ...]:
        levels: List[float] = []
        if side is Action.BUY:
            if structure.vwap is not None and structure.vwap > price:
                levels.append(structure.vwap)
            if structure.pdh is not None and structure.pdh > price:
                levels.append(structure.pdh)
            levels += [
                level.price
                for level in structure.liquidity
                if level.kind is LiquidityKind.HIGH and not level.swept and level.price > price
            ]
        else:
            if structure.vwap is not None and structure.vwap < price:
                levels.append(structure.vwap)
            if structure.pdl is not None and structure.pdl < price:
                levels.append(structure.pdl)
            levels += [
                level.price
                for level in structure.liquidity
                if level.kind is LiquidityKind.LOW and not level.swept and level.price < price
            ]
        return tuple(levels)


def _latest_swept(levels: Sequence[LiquidityLevel], kind: LiquidityKind) -> Optional[LiquidityLevel]:
    swept = [level for level in levels if level.kind is kind and level.swept]
    if not swept:
        return None
    return max(swept, key=lambda level: level.swept_index if level.swept_index is not None else -1)


def _nearest_within(
    levels: Sequence[LiquidityLevel],
    kind: LiquidityKind,
    price: float,
    tolerance_pct: float,
) -> Optional[LiquidityLevel]:
    close = [
        level
        for level in levels
        if level.kind is kind and not level.swept and abs(price - level.price) / level.price * 100 <= tolerance_pct
    ]
    if not close:
        return None
    return min(close, key=lambda level: abs(price - level.price))
