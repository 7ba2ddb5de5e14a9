from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from indicators.snapshot import IndicatorSnapshot
from market_data.models import Candle
from market_structure.ict import MarketTrend
from market_structure.snapshot import StructureSnapshot
from market_structure.swings import BosDirection

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
class ClassicStrategyConfig:
    min_score: float = 6.0
    min_margin: float = 3.0
    points_weight: float = 4.0
    reason_weight: float = 5.0
    rsi_upper_zone: float = 70.0
    rsi_lower_zone: float = 30.0
    rsi_exit_high: float = 75.0
    rsi_exit_low: float = 25.0
    near_level_pct: float = 0.8

    def __post_init__(self) -> None:
        if self.min_score <= 0 or self.min_margin < 0:
            raise ValueError("min_score must be positive and min_margin non-negative")
        if not 50 < self.rsi_upper_zone <= self.rsi_exit_high <= 100:
            raise ValueError("RSI upper thresholds must satisfy 50 < zone <= exit <= 100")
        if not 0 <= self.rsi_exit_low <= self.rsi_lower_zone < 50:
            raise ValueError("RSI lower thresholds must satisfy 0 <= exit <= zone < 50")
        if self.near_level_pct <= 0:
            raise ValueError("near_level_pct must be positive")


class ClassicStrategy(SignalStrategy):
    """Trend-following confluence of EMAs, RSI, MACD, structure and volume."""

    name = "classic"

    def __init__(self, config: ClassicStrategyConfig | None = None) -> None:
        self._config = config or ClassicStrategyConfig()

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

        exit_score = self._exit_signal(structure, indicators)
        if exit_score is not None:
            return apply_confidence_floor(exit_score, config)

        card = self._score(structure, indicators, config)
        leader = card.leader()
        if leader is None:
            return SignalScore(
                action=Action.WAIT,
                buy_score=card.buy,
                sell_score=card.sell,
                confidence=0,
                reasons=(ReasonCode.INSUFFICIENT_MOMENTUM,),
            )

        lead_points = card.points(leader)
        margin = abs(card.buy - card.sell)
        lead_reasons = card.reasons(leader)
        confidence = clamp_confidence(
            self._config.points_weight * lead_points + self._config.reason_weight * len(lead_reasons)
        )

        if lead_points < self._config.min_score or margin < self._config.min_margin:
            return SignalScore(
                action=Action.WAIT,
                buy_score=card.buy,
                sell_score=card.sell,
                confidence=confidence,
                reasons=(ReasonCode.INSUFFICIENT_MOMENTUM,) + lead_reasons,
            )

        if (leader is Action.BUY and higher_trend is MarketTrend.BEARISH) or (
            leader is Action.SELL and higher_trend is MarketTrend.BULLISH
        ):
            return SignalScore(
                action=Action.WAIT,
                buy_score=card.buy,
                sell_score=card.sell,
                confidence=confidence,
                reasons=(ReasonCode.HTF_TREND_CONFLICT,) + lead_reasons,
            )

        score = SignalScore(
            action=leader,
            buy_score=card.buy,
            sell_score=card.sell,
            confidence=confidence,
            reasons=lead_reasons,
        )
        return apply_confidence_floor(score, config)

    # ------------------------------------------------------------------ #
    # Scoring
    # ------------------------------------------------------------------ #

    def _score(self, structure: StructureSnapshot, ind: IndicatorSnapshot, config: EngineConfig) -> ScoreCard:
        cfg = self._config
        card = ScoreCard()
        settings = config.indicators
        price = ind.price
        # Differences below this are float noise, e.g. on a perfectly flat series.
        eps = abs(price) * 1e-9

        prev_fast = ind.prev_emas[settings.ema_fast]
        prev_slow = ind.prev_emas[settings.ema_slow]
        if ind.ema_fast - ind.ema_slow > eps:
            card.add(Action.BUY, ReasonCode.EMA_FAST_ABOVE_SLOW, 3)
            if prev_fast <= prev_slow:
                card.add(Action.BUY, ReasonCode.EMA_BULLISH_CROSS, 1)
        elif ind.ema_slow - ind.ema_fast > eps:
            card.add(Action.SELL, ReasonCode.EMA_FAST_BELOW_SLOW, 3)
            if prev_fast >= prev_slow:
                card.add(Action.SELL, ReasonCode.EMA_BEARISH_CROSS, 1)

        if price - ind.ema_trend > eps:
            card.add(Action.BUY, ReasonCode.PRICE_ABOVE_TREND_EMA, 2)
        elif ind.ema_trend - price > eps:
            card.add(Action.SELL, ReasonCode.PRICE_BELOW_TREND_EMA, 2)

        ema200 = ind.ema(200)
        if ema200 is not None:
            if price - ema200 > eps:
                card.add(Action.BUY, ReasonCode.PRICE_ABOVE_EMA200, 1)
            elif ema200 - price > eps:
                card.add(Action.SELL, ReasonCode.PRICE_BELOW_EMA200, 1)

        if 50 < ind.rsi < cfg.rsi_upper_zone:
            card.add(Action.BUY, ReasonCode.RSI_BULLISH_ZONE, 2)
        elif cfg.rsi_lower_zone < ind.rsi < 50:
            card.add(Action.SELL, ReasonCode.RSI_BEARISH_ZONE, 2)

        hist, line = ind.macd.histogram, ind.macd.line
        if hist > eps and line > 0:
            card.add(Action.BUY, ReasonCode.MACD_BULLISH, 3)
        elif hist > eps:
            card.add(Action.BUY, ReasonCode.MACD_HISTOGRAM_POSITIVE, 1)
        elif hist < -eps and line < 0:
            card.add(Action.SELL, ReasonCode.MACD_BEARISH, 3)
        elif hist < -eps:
            card.add(Action.SELL, ReasonCode.MACD_HISTOGRAM_NEGATIVE, 1)

        if structure.bos.direction is BosDirection.BULLISH:
            card.add(Action.BUY, ReasonCode.BOS_BULLISH, 3)
        elif structure.bos.direction is BosDirection.BEARISH:
            card.add(Action.SELL, ReasonCode.BOS_BEARISH, 3)

        if ind.volume.spike:
            leader = card.leader()
            if leader is not None:
                card.add(leader, ReasonCode.VOLUME_SPIKE, 2)

        if structure.support and (price - structure.support[0]) / price * 100 <= cfg.near_level_pct:
            card.add(Action.BUY, ReasonCode.NEAR_SUPPORT, 2)
        if structure.resistance and (structure.resistance[0] - price) / price * 100 <= cfg.near_level_pct:
            card.add(Action.SELL, ReasonCode.NEAR_RESISTANCE, 2)
        return card

    def _exit_signal(self, structure: StructureSnapshot, ind: IndicatorSnapshot) -> Optional[SignalScore]:
        """Exit advice when an established move is stretched and momentum rolls over."""
        cfg = self._config
        fading_up = ind.macd.histogram < ind.macd.prev_histogram
        fading_down = ind.macd.histogram > ind.macd.prev_histogram

        card = ScoreCard()
        if ind.ema_fast > ind.ema_slow and ind.rsi >= cfg.rsi_exit_high and fading_up:
            side, action = Action.SELL, Action.EXIT_BUY
            card.add(side, ReasonCode.RSI_OVERBOUGHT, 8)
            card.add(side, ReasonCode.MOMENTUM_FADING, 4)
            if ind.macd.histogram < 0:
                card.add(side, ReasonCode.MACD_HISTOGRAM_NEGATIVE, 2)
            if structure.bos.direction is BosDirection.BEARISH:
                card.add(side, ReasonCode.BOS_BEARISH, 3)
        elif ind.ema_fast < ind.ema_slow and ind.rsi <= cfg.rsi_exit_low and fading_down:
            side, action = Action.BUY, Action.EXIT_SELL
            card.add(side, ReasonCode.RSI_OVERSOLD, 8)
            card.add(side, ReasonCode.MOMENTUM_FADING, 4)
            if ind.macd.histogram > 0:
                card.add(side, ReasonCode.MACD_HISTOGRAM_POSITIVE, 2)
            if structure.bos.direction is BosDirection.BULLISH:
                card.add(side, ReasonCode.BOS_BULLISH, 3)
        else:
            return None

        reasons = card.reasons(side)
        return SignalScore(
            action=action,
            buy_score=card.buy,
            sell_score=card.sell,
            confidence=clamp_confidence(cfg.points_weight * card.points(side) + cfg.reason_weight * len(reasons)),
            reasons=reasons,
        )
