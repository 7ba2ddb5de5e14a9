import unittest
from dataclasses import replace
from datetime import timedelta

from indicators import build_indicator_snapshot
from market_structure import (
    DisplacementResult,
    ExhaustionResult,
    FairValueGap,
    LiquidityKind,
    LiquidityLevel,
    LiquiditySource,
    MarketTrend,
    MoveDirection,
    OrderBlock,
    ZoneBias,
    analyze_structure,
)
from signal_engine import (
    Action,
    BollingerStrategy,
    ClassicStrategy,
    EngineConfig,
    IctStrategy,
    ReasonCode,
    SmcStrategy,
    build_strategy,
)
from signal_engine.ict_strategy import _zone_at
from signal_engine.strategy import ScoreCard, apply_confidence_floor, higher_timeframe_trend
from signal_engine.models import SignalScore
from tests.helpers import START, candles_from_closes, falling_closes, flat_candles, make_candle, rising_closes


def _inputs(candles, config=None):
    config = config or EngineConfig()
    now = candles[-1].close_time + timedelta(milliseconds=1)
    structure = analyze_structure(candles, now=now, settings=config.structure_settings)
    indicators = build_indicator_snapshot(candles, config.indicators)
    return structure, indicators, config


class TestClassicStrategy(unittest.TestCase):
    def setUp(self):
        self.strategy = ClassicStrategy()

    def test_flat_series_waits(self):
        candles = flat_candles(80)
        structure, indicators, config = _inputs(candles)
        score = self.strategy.evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.WAIT)
        self.assertEqual(score.confidence, 0)
        self.assertIn(ReasonCode.INSUFFICIENT_MOMENTUM, score.reasons)

    def test_rising_series_buys(self):
        candles = candles_from_closes(rising_closes(120))
        structure, indicators, config = _inputs(candles)
        score = self.strategy.evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.BUY)
        self.assertGreaterEqual(score.confidence, config.min_confidence_to_act)
        self.assertGreater(score.buy_score, score.sell_score)
        self.assertEqual(score.reasons[0], ReasonCode.EMA_FAST_ABOVE_SLOW)
        self.assertIn(ReasonCode.RSI_BULLISH_ZONE, score.reasons)

    def test_falling_series_sells(self):
        candles = candles_from_closes(falling_closes(120))
        structure, indicators, config = _inputs(candles)
        score = self.strategy.evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.SELL)
        self.assertIn(ReasonCode.PRICE_BELOW_TREND_EMA, score.reasons)

    def test_higher_timeframe_conflict_waits(self):
        candles = candles_from_closes(rising_closes(120))
        structure, indicators, config = _inputs(candles)
        score = self.strategy.evaluate(
            candles, structure, indicators, config, higher_trend=MarketTrend.BEARISH
        )
        self.assertIs(score.action, Action.WAIT)
        self.assertEqual(score.reasons[0], ReasonCode.HTF_TREND_CONFLICT)

    def test_missing_indicators(self):
        candles = flat_candles(20)
        structure, _, config = _inputs(candles)
        score = self.strategy.evaluate(candles, structure, None, config)
        self.assertIs(score.action, Action.WAIT)
        self.assertEqual(score.reasons, (ReasonCode.INSUFFICIENT_DATA,))

    def test_min_confidence_demotes(self):
        candles = candles_from_closes(rising_closes(120))
        structure, indicators, _ = _inputs(candles)
        config = EngineConfig(min_confidence_to_act=100)
        score = self.strategy.evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.WAIT)
        self.assertEqual(score.reasons[0], ReasonCode.LOW_CONFIDENCE)

    def test_stretched_rally_that_stalls_exits_long(self):
        closes = [100.0 + 2.0 * i for i in range(75)]
        for _ in range(4):
            closes.append(closes[-1] + 0.3)
        candles = candles_from_closes(closes)
        structure, indicators, config = _inputs(candles)
        score = self.strategy.evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.EXIT_BUY)
        self.assertEqual(score.reasons[:2], (ReasonCode.RSI_OVERBOUGHT, ReasonCode.MOMENTUM_FADING))
        self.assertGreaterEqual(score.confidence, config.min_confidence_to_act)

    def test_stretched_selloff_that_stalls_exits_short(self):
        closes = [400.0 - 2.0 * i for i in range(75)]
        for _ in range(4):
            closes.append(closes[-1] - 0.3)
        candles = candles_from_closes(closes)
        structure, indicators, config = _inputs(candles)
        score = self.strategy.evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.EXIT_SELL)
        self.assertEqual(score.reasons[:2], (ReasonCode.RSI_OVERSOLD, ReasonCode.MOMENTUM_FADING))


def _smc_inputs(candles, **fields):
    """Real indicators with a structure reduced to the given liquidity and momentum readings."""
    structure, indicators, config = _inputs(candles)
    quiet = {
        "pdh": None,
        "pdl": None,
        "asian_high": None,
        "asian_low": None,
        "vwap": None,
        "kill_zone": None,
        "liquidity": [],
        "displacement": DisplacementResult(False, MoveDirection.NONE, 0),
        "exhaustion": ExhaustionResult(False, 0.0, False, False),
    }
    quiet.update(fields)
    return replace(structure, **quiet), indicators, config


def _level(price, kind, swept_index=None):
    label = LiquiditySource.SWING_LOW if kind is LiquidityKind.LOW else LiquiditySource.SWING_HIGH
    return LiquidityLevel(price, kind, label, swept=swept_index is not None, swept_index=swept_index)


def _sweep_then_rally(last_two):
    """Flat base, a bar wicking down to 98.5, then the two given bars."""
    candles = flat_candles(60)
    candles.append(make_candle(60, 100.0, 100.1, 98.5, 99.9))
    for offset, bar in enumerate(last_two):
        candles.append(make_candle(61 + offset, *bar))
    return candles


RALLY = ((99.9, 102.1, 99.8, 102.0, 400.0), (102.0, 104.1, 101.9, 104.0, 400.0))
UP_MOVE = DisplacementResult(True, MoveDirection.UP, 80, 2.5, 61, 62)
DOWN_MOVE = DisplacementResult(True, MoveDirection.DOWN, 80, 2.5, 61, 62)


class TestSmcStrategy(unittest.TestCase):
    def test_quiet_market_lists_missing_conditions(self):
        candles = flat_candles(80)
        structure, indicators, config = _inputs(candles)
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.WAIT)
        self.assertIn(ReasonCode.NO_DISPLACEMENT, score.cancel_reasons)
        self.assertIsNone(score.invalidation_level)

    def test_no_liquidity_nearby(self):
        candles = flat_candles(80)
        structure, indicators, config = _smc_inputs(candles)
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertEqual(
            score.cancel_reasons,
            (ReasonCode.NO_TRIGGER, ReasonCode.NO_DISPLACEMENT, ReasonCode.NO_LIQUIDITY_INTERACTION),
        )

    def test_liquidity_on_both_sides_is_a_conflict(self):
        candles = flat_candles(80)
        structure, indicators, config = _smc_inputs(
            candles, liquidity=[_level(99.8, LiquidityKind.LOW), _level(100.2, LiquidityKind.HIGH)]
        )
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.WAIT)
        self.assertNotIn(ReasonCode.NO_LIQUIDITY_INTERACTION, score.cancel_reasons)
        self.assertEqual(
            score.cancel_reasons,
            (ReasonCode.NO_TRIGGER, ReasonCode.NO_DISPLACEMENT, ReasonCode.CONFLICTING_LIQUIDITY),
        )

    def test_both_sides_swept_is_a_conflict(self):
        candles = flat_candles(80)
        structure, indicators, config = _smc_inputs(
            candles, liquidity=[_level(99.0, LiquidityKind.LOW, 70), _level(101.0, LiquidityKind.HIGH, 72)]
        )
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertIn(ReasonCode.CONFLICTING_LIQUIDITY, score.cancel_reasons)
        self.assertNotIn(ReasonCode.NO_LIQUIDITY_INTERACTION, score.cancel_reasons)

    def test_sweep_displacement_and_volume_buy(self):
        candles = _sweep_then_rally(RALLY)
        structure, indicators, config = _smc_inputs(
            candles,
            liquidity=[_level(99.0, LiquidityKind.LOW, 60), _level(106.0, LiquidityKind.HIGH)],
            displacement=UP_MOVE,
        )
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.BUY)
        self.assertEqual(
            score.reasons,
            (
                ReasonCode.DISPLACEMENT_UP,
                ReasonCode.LIQUIDITY_SWEEP_LOW,
                ReasonCode.VOLUME_SPIKE,
                ReasonCode.NO_EXHAUSTION,
            ),
        )
        self.assertEqual(score.cancel_reasons, ())
        self.assertEqual(score.confidence, 86)
        self.assertEqual(score.invalidation_level, 98.5)
        self.assertEqual(score.target_levels, (106.0,))

    def test_exhausted_displacement_waits(self):
        candles = _sweep_then_rally(RALLY)
        structure, indicators, config = _smc_inputs(
            candles,
            liquidity=[_level(99.0, LiquidityKind.LOW, 60)],
            displacement=UP_MOVE,
            exhaustion=ExhaustionResult(True, 3.0, False, True, index=62),
        )
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.WAIT)
        self.assertIn(ReasonCode.EXHAUSTION_DETECTED, score.cancel_reasons)
        self.assertIsNone(score.invalidation_level)
        self.assertEqual(score.target_levels, ())

    def test_sweep_of_highs_sells(self):
        candles = flat_candles(60)
        candles += [
            make_candle(60, 100.0, 101.5, 99.9, 100.1),
            make_candle(61, 100.1, 100.2, 97.9, 98.0, 400.0),
            make_candle(62, 98.0, 98.1, 95.9, 96.0, 400.0),
        ]
        structure, indicators, config = _smc_inputs(
            candles,
            liquidity=[_level(101.0, LiquidityKind.HIGH, 60), _level(94.0, LiquidityKind.LOW)],
            displacement=DOWN_MOVE,
        )
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.SELL)
        self.assertIn(ReasonCode.LIQUIDITY_SWEEP_HIGH, score.reasons)
        self.assertIn(ReasonCode.DISPLACEMENT_DOWN, score.reasons)
        self.assertEqual(score.invalidation_level, 101.5)
        self.assertEqual(score.target_levels, (94.0,))

    def test_adverse_engulfing_costs_confidence(self):
        candles = _sweep_then_rally(((99.9, 100.7, 99.8, 100.5, 400.0), (100.5, 100.6, 99.3, 99.4, 400.0)))
        structure, indicators, config = _smc_inputs(
            candles, liquidity=[_level(99.0, LiquidityKind.LOW, 60)], displacement=UP_MOVE
        )
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.BUY)
        self.assertEqual(score.cancel_reasons, (ReasonCode.ADVERSE_ENGULFING,))
        self.assertEqual(score.confidence, 76)

    def test_rising_volume_against_the_trade(self):
        candles = _sweep_then_rally(((100.4, 100.5, 99.9, 100.0, 200.0), (100.0, 100.1, 99.7, 99.8, 300.0)))
        structure, indicators, config = _smc_inputs(
            candles, liquidity=[_level(99.0, LiquidityKind.LOW, 60)], displacement=UP_MOVE
        )
        score = SmcStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.BUY)
        self.assertEqual(score.cancel_reasons, (ReasonCode.ADVERSE_VOLUME,))
        self.assertEqual(score.confidence, 76)

    def test_missing_indicators(self):
        candles = flat_candles(20)
        structure, _, config = _inputs(candles)
        score = SmcStrategy().evaluate(candles, structure, None, config)
        self.assertEqual(score.reasons, (ReasonCode.INSUFFICIENT_DATA,))


class TestIctStrategy(unittest.TestCase):
    def test_flat_market_waits(self):
        candles = flat_candles(80)
        structure, indicators, config = _inputs(candles)
        score = IctStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.WAIT)
        self.assertEqual(score.reasons[0], ReasonCode.INSUFFICIENT_MOMENTUM)
        self.assertLessEqual(score.confidence, 95)

    def test_higher_timeframe_adds_points(self):
        candles = flat_candles(80)
        structure, indicators, config = _inputs(candles)
        score = IctStrategy().evaluate(
            candles, structure, indicators, config, higher_trend=MarketTrend.BULLISH
        )
        self.assertGreaterEqual(score.buy_score, 10.0)
        self.assertIn(ReasonCode.HTF_TREND_BULLISH, score.reasons)

    def test_zone_lookup_covers_blocks_and_gaps(self):
        block = OrderBlock(ZoneBias.BULLISH, top=100.0, bottom=99.0, index=3, time=START, strength=70, touches=0)
        gap = FairValueGap(ZoneBias.BEARISH, top=105.0, bottom=104.0, index=5, time=START, fill_pct=0)
        self.assertIs(_zone_at([block, gap], ZoneBias.BULLISH, 100.4, 0.5), block)
        self.assertIsNone(_zone_at([block, gap], ZoneBias.BULLISH, 100.6, 0.5))
        self.assertIs(_zone_at([block, gap], ZoneBias.BEARISH, 104.5, 0.0), gap)
        self.assertIsNone(_zone_at([gap], ZoneBias.BULLISH, 104.5, 0.0))


class TestBollingerStrategy(unittest.TestCase):
    def test_squeeze_cancels_both_sides(self):
        candles = flat_candles(80)
        structure, indicators, config = _inputs(candles)
        score = BollingerStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.WAIT)
        self.assertEqual(score.cancel_reasons, (ReasonCode.BAND_SQUEEZE,))
        self.assertEqual(score.buy_score, score.sell_score)

    def test_close_above_upper_band_sells(self):
        closes = [100.0 if i % 2 == 0 else 104.0 for i in range(61)] + [112.0]
        candles = candles_from_closes(closes)
        structure, indicators, config = _inputs(candles)
        score = BollingerStrategy().evaluate(candles, structure, indicators, config)
        self.assertIs(score.action, Action.SELL)
        self.assertEqual(score.reasons[0], ReasonCode.AT_UPPER_BAND)
        self.assertIn(ReasonCode.CLOSE_ABOVE_UPPER_BAND, score.reasons)
        self.assertEqual(score.invalidation_level, indicators.bollinger.upper)
        self.assertEqual(score.target_levels, (indicators.bollinger.middle, indicators.bollinger.lower))
        self.assertLessEqual(score.confidence, 95)


class TestStrategyHelpers(unittest.TestCase):
    def test_registry(self):
        for name in ("classic", "smc", "ict", "bollinger"):
            self.assertEqual(build_strategy(name).name, name)
        with self.assertRaises(ValueError):
            build_strategy("martingale")

    def test_score_card_ranks_reasons(self):
        card = ScoreCard()
        card.add(Action.BUY, ReasonCode.VOLUME_SPIKE, 2)
        card.add(Action.BUY, ReasonCode.MACD_BULLISH, 3)
        card.add(Action.BUY, ReasonCode.NEAR_SUPPORT, 2)
        self.assertEqual(
            card.reasons(Action.BUY),
            (ReasonCode.MACD_BULLISH, ReasonCode.VOLUME_SPIKE, ReasonCode.NEAR_SUPPORT),
        )
        self.assertIs(card.leader(), Action.BUY)

    def test_confidence_floor_leaves_wait_alone(self):
        score = SignalScore(action=Action.WAIT, buy_score=0.0, sell_score=0.0, confidence=10)
        self.assertIs(apply_confidence_floor(score, EngineConfig()), score)

    def test_higher_timeframe_trend(self):
        self.assertIs(higher_timeframe_trend(candles_from_closes(rising_closes(60))), MarketTrend.BULLISH)
        self.assertIs(higher_timeframe_trend(candles_from_closes(falling_closes(60))), MarketTrend.BEARISH)
        self.assertIs(higher_timeframe_trend(flat_candles(10)), MarketTrend.RANGING)

    def test_confidence_bounds_enforced(self):
        with self.assertRaises(ValueError):
            SignalScore(action=Action.BUY, buy_score=1.0, sell_score=0.0, confidence=101)


if __name__ == "__main__":
    unittest.main()
