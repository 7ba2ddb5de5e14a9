from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, TypeVar

from indicators.snapshot import IndicatorSnapshot
from market_data.models import Candle
from market_structure.ict import BreakType, FairValueGap, MarketTrend, OrderBlock, ZoneBias
from market_structure.liquidity import LiquidityKind
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

Zone = TypeVar("Zone", OrderBlock, FairValueGap)


@dataclass(frozen=True)
class IctStrategyConfig:
    order_block_points: float = 25.0
    fvg_points: float = 20.0
    choch_points: float = 20.0
    bos_points: float = 15.0
    trend_points: float = 15.0
    htf_points: float = 10.0
    swept_liquidity_points: float = 15.0
    kill_zone_points: float = 5.0
    min_score: float = 40.0
    max_confidence: int = 95
    order_block_atr_band: float = 0.3
    fvg_atr_band: float = 0.2
    sweep_atr_distance: float = 2.0
    break_recency_bars: int = 10

    def __post_init__(self) -> None:
        if self.min_score <= 0:
            raise ValueError("min_score must be positive")
        if not 0 < self.max_confidence <= 100:
            raise ValueError("max_confidence must be within 1..100")
        if self.break_recency_bars <= 0:
            raise ValueError("break_recency_bars must be positive")


class IctStrategy(SignalStrategy):
    """Order blocks, fair value gaps and market structure shifts."""

    name = "ict"
    uses_structure_setup = True

    def __init__(self, config: IctStrategyConfig | None = None) -> None:
        self._config = config or IctStrategyConfig()

    def evaluate(
        self,
        candles: Sequence[Candle],
        structure: StructureSnapshot,
        indicators: Optional[IndicatorSnapshot],
        config: EngineConfig,
        *,
        higher_trend: MarketTrend = MarketTrend.RANGING,
    ) -> SignalScore:
        if indicators is None:
            return insufficient_data_score()
        cfg = self._config
        price = indicators.price
        atr_value = indicators.atr
        card = ScoreCard()

        blocks = {
            Action.BUY: _zone_at(structure.order_blocks, ZoneBias.BULLISH, price, atr_value * cfg.order_block_atr_band),
            Action.SELL: _zone_at(structure.order_blocks, ZoneBias.BEARISH, price, atr_value * cfg.order_block_atr_band),
        }
        if blocks[Action.BUY] is not None:
            card.add(Action.BUY, ReasonCode.AT_BULLISH_ORDER_BLOCK, cfg.order_block_points)
        if blocks[Action.SELL] is not None:
            card.add(Action.SELL, ReasonCode.AT_BEARISH_ORDER_BLOCK, cfg.order_block_points)

        if _zone_at(structure.fair_value_gaps, ZoneBias.BULLISH, price, atr_value * cfg.fvg_atr_band):
            card.add(Action.BUY, ReasonCode.AT_BULLISH_FVG, cfg.fvg_points)
        if _zone_at(structure.fair_value_gaps, ZoneBias.BEARISH, price, atr_value * cfg.fvg_atr_band):
            card.add(Action.SELL, ReasonCode.AT_BEARISH_FVG, cfg.fvg_points)

        first_recent = len(candles) - cfg.break_recency_bars
        recent_breaks = [b for b in reversed(structure.structure_breaks) if b.index >= first_recent]
        for side, bias in ((Action.BUY, ZoneBias.BULLISH), (Action.SELL, ZoneBias.BEARISH)):
            brk = next((b for b in recent_breaks if b.bias is bias), None)
            if brk is None:
                continue
            if brk.kind is BreakType.CHOCH:
                code = ReasonCode.CHOCH_BULLISH if side is Action.BUY else ReasonCode.CHOCH_BEARISH
                card.add(side, code, cfg.choch_points)
            else:
                code = ReasonCode.BOS_BULLISH if side is Action.BUY else ReasonCode.BOS_BEARISH
                card.add(side, code, cfg.bos_points)

        if structure.trend is MarketTrend.BULLISH:
            card.add(Action.BUY, ReasonCode.STRUCTURE_BULLISH, cfg.trend_points)
        elif structure.trend is MarketTrend.BEARISH:
            card.add(Action.SELL, ReasonCode.STRUCTURE_BEARISH, cfg.trend_points)

        if higher_trend is MarketTrend.BULLISH:
            card.add(Action.BUY, ReasonCode.HTF_TREND_BULLISH, cfg.htf_points)
        elif higher_trend is MarketTrend.BEARISH:
            card.add(Action.SELL, ReasonCode.HTF_TREND_BEARISH, cfg.htf_points)

        max_distance = atr_value * cfg.sweep_atr_distance
        for level in structure.liquidity:
            if not level.swept or abs(level.price - price) >= max_distance:
                continue
            if level.kind is LiquidityKind.LOW and ReasonCode.LIQUIDITY_SWEEP_LOW not in card.reasons(Action.BUY):
                card.add(Action.BUY, ReasonCode.LIQUIDITY_SWEEP_LOW, cfg.swept_liquidity_points)
            elif level.kind is LiquidityKind.HIGH and ReasonCode.LIQUIDITY_SWEEP_HIGH not in card.reasons(Action.SELL):
                card.add(Action.SELL, ReasonCode.LIQUIDITY_SWEEP_HIGH, cfg.swept_liquidity_points)

        if structure.kill_zone is not None and card.leader() is not None:
            card.add(card.leader(), ReasonCode.IN_KILL_ZONE, cfg.kill_zone_points)

        leader = card.leader()
        if leader is None or card.points(leader) < cfg.min_score:
            best = max(card.buy, card.sell)
            reasons = card.reasons(leader) if leader is not None else ()
            return SignalScore(
                action=Action.WAIT,
                buy_score=card.buy,
                sell_score=card.sell,
                confidence=clamp_confidence(min(cfg.max_confidence, best)),
                reasons=(ReasonCode.INSUFFICIENT_MOMENTUM,) + reasons,
            )

        block = blocks[leader]
        invalidation = None
        if block is not None:
            invalidation = block.bottom if leader is Action.BUY else block.top
        score = SignalScore(
            action=leader,
            buy_score=card.buy,
            sell_score=card.sell,
            confidence=clamp_confidence(min(cfg.max_confidence, card.points(leader))),
            reasons=card.reasons(leader),
            invalidation_level=invalidation,
            target_levels=_opposing_liquidity(structure, leader, price),
        )
        return apply_confidence_floor(score, config)


def _zone_at(zones: Sequence[Zone], bias: ZoneBias, price: float, band: float) -> Optional[Zone]:
    """First zone of ``bias`` whose range, widened by ``band``, contains ``price``."""
    for zone in zones:
        if zone.bias is bias and zone.bottom - band <= price <= zone.top + band:
            return zone
    return None


def _opposing_liquidity(structure: StructureSnapshot, side: Action, price: float) -> Tuple[float, ...]:
    if side is Action.BUY:
        found: List[float] = sorted(
            level.price for level in structure.liquidity
            if level.kind is LiquidityKind.HIGH and not level.swept and level.price > price
        )
    else:
        found = sorted(
            (level.price for level in structure.liquidity
             if level.kind is LiquidityKind.LOW and not level.swept and level.price < price),
            reverse=True,
        )
    return tuple(found)
