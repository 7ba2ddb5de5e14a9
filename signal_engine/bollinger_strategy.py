from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from indicators.snapshot import IndicatorSnapshot
from market_data.models import Candle
from market_structure.ict import MarketTrend
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
class BollingerStrategyConfig:
    band_touch_points: float = 30.0
    close_beyond_points: float = 10.0
    rsi_extreme_points: float = 25.0
    rsi_elevated_points: float = 10.0
    rsi_turn_points: float = 10.0
    reversal_candle_points: float = 10.0
    squeeze_penalty: float = 15.0
    squeeze_width_pct: float = 2.0
    min_score: float = 35.0
    max_confidence: int = 95
    rsi_extreme_high: float = 70.0
    rsi_elevated_high: float = 60.0
    rsi_elevated_low: float = 40.0
    rsi_extreme_low: float = 30.0

    def __post_init__(self) -> None:
        if self.min_score <= 0:
            raise ValueError("min_score must be positive")
        if not self.rsi_extreme_low < self.rsi_elevated_low < self.rsi_elevated_high < self.rsi_extreme_high:
            raise ValueError("RSI thresholds must be strictly increasing")


class BollingerStrategy(SignalStrategy):
    """Mean reversion from the outer bands back toward the middle band."""

    name = "bollinger"
    uses_structure_setup = True

    def __init__(self, config: BollingerStrategyConfig | None = None) -> None:
        self._config = config or BollingerStrategyConfig()

    def evaluate(
        self,
        candles: Sequence[Candle],
        structure: StructureSnapshot,
        indicators: Optional[IndicatorSnapshot],
        config: EngineConfig,
        *,
        higher_trend: MarketTrend = MarketTrend.RANGING,
    ) -> SignalScore:
        if indicators is None or not candles:
            return insufficient_data_score()
        cfg = self._config
        bands = indicators.bollinger
        last = candles[-1]
        rsi, prev_rsi = indicators.rsi, indicators.prev_rsi
        card = ScoreCard()

        at_upper = last.high >= bands.upper
        at_lower = last.low <= bands.lower

        if at_upper:
            card.add(Action.SELL, ReasonCode.AT_UPPER_BAND, cfg.band_touch_points)
        if last.close > bands.upper:
            card.add(Action.SELL, ReasonCode.CLOSE_ABOVE_UPPER_BAND, cfg.close_beyond_points)
        if rsi >= cfg.rsi_extreme_high:
            card.add(Action.SELL, ReasonCode.RSI_OVERBOUGHT, cfg.rsi_extreme_points)
        elif rsi >= cfg.rsi_elevated_high:
            card.add(Action.SELL, ReasonCode.RSI_HIGH, cfg.rsi_elevated_points)
        if prev_rsi > rsi >= cfg.rsi_elevated_high:
            card.add(Action.SELL, ReasonCode.RSI_TURNING_DOWN, cfg.rsi_turn_points)
        if last.is_bearish and at_upper:
            card.add(Action.SELL, ReasonCode.BEARISH_REVERSAL_CANDLE, cfg.reversal_candle_points)

        if at_lower:
            card.add(Action.BUY, ReasonCode.AT_LOWER_BAND, cfg.band_touch_points)
        if last.close < bands.lower:
            card.add(Action.BUY, ReasonCode.CLOSE_BELOW_LOWER_BAND, cfg.close_beyond_points)
        if rsi <= cfg.rsi_extreme_low:
            card.add(Action.BUY, ReasonCode.RSI_OVERSOLD, cfg.rsi_extreme_points)
        elif rsi <= cfg.rsi_elevated_low:
            card.add(Action.BUY, ReasonCode.RSI_LOW, cfg.rsi_elevated_points)
        if prev_rsi < rsi <= cfg.rsi_elevated_low:
            card.add(Action.BUY, ReasonCode.RSI_TURNING_UP, cfg.rsi_turn_points)
        if last.is_bullish and at_lower:
            card.add(Action.BUY, ReasonCode.BULLISH_REVERSAL_CANDLE, cfg.reversal_candle_points)

        # A squeeze precedes expansion, so both sides are discounted alike.
        squeeze = bands.width_pct < cfg.squeeze_width_pct
        penalty = cfg.squeeze_penalty if squeeze else 0.0
        buy, sell = card.buy - penalty, card.sell - penalty
        cancel = (ReasonCode.BAND_SQUEEZE,) if squeeze else ()

        leader: Optional[Action] = None
        if buy > sell and buy >= cfg.min_score:
            leader = Action.BUY
        elif sell > buy and sell >= cfg.min_score:
            leader = Action.SELL

        if leader is None:
            side = card.leader()
            return SignalScore(
                action=Action.WAIT,
                buy_score=max(0.0, buy),
                sell_score=max(0.0, sell),
                confidence=clamp_confidence(min(cfg.max_confidence, max(buy, sell))),
                reasons=card.reasons(side) if side is not None else (),
                cancel_reasons=cancel,
            )

        lead_points = buy if leader is Action.BUY else sell
        score = SignalScore(
            action=leader,
            buy_score=max(0.0, buy),
            sell_score=max(0.0, sell),
            confidence=clamp_confidence(min(cfg.max_confidence, lead_points)),
            reasons=card.reasons(leader),
            cancel_reasons=cancel,
            invalidation_level=bands.lower if leader is Action.BUY else bands.upper,
            target_levels=(bands.middle, bands.upper) if leader is Action.BUY else (bands.middle, bands.lower),
        )
        return apply_confidence_floor(score, config)
