"""Evaluates a universe of instruments in parallel and assembles signal records."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Union

from indicators.snapshot import build_indicator_snapshot
from market_data.feed import CandleFeed, PriceFeed
from market_data.models import Candle, normalize_symbol
from market_structure.ict import MarketTrend
from market_structure.snapshot import StructureSnapshot, analyze_structure

from .config import EngineConfig
from .continuity import ContinuityKey, ContinuityStore, InMemoryContinuityStore
from .errors import ComputationError, FetchError, InsufficientDataError, MalformedDataError, SignalEngineError
from .models import Action, EvaluationResult, Signal, SignalScore, SkippedInstrument, SkipReason, TradeSetup
from .reasons import ReasonCode
from .registry import build_strategy
from .strategy import SignalStrategy, higher_timeframe_trend
from .trade_setup import atr_trade_setup, price_precision, structure_trade_setup
from .validation import validate_candles

Outcome = Union[Signal, SkippedInstrument]

# (age in seconds that must be exceeded, confidence penalty), checked from the oldest bracket down.
AGE_DECAY_STEPS = ((600, 20), (300, 10), (120, 5))
AGE_DECAY_FLOOR = 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def decay_confidence(confidence: int, age_seconds: int) -> int:
    """Lower the confidence of a signal that has stood unchanged for a while."""
    for threshold, penalty in AGE_DECAY_STEPS:
        if age_seconds > threshold:
            return min(confidence, max(AGE_DECAY_FLOOR, confidence - penalty))
    return confidence


class SignalOrchestrator:
    """Runs fetch, indicators, structure, scoring and setup for each instrument.

    A failure for one instrument becomes a ``SkippedInstrument``; the rest of
    the batch is unaffected. The continuity store is the only state carried
    between calls.
    """

    def __init__(
        self,
        candle_feed: CandleFeed,
        *,
        price_feed: PriceFeed | None = None,
        store: ContinuityStore | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._candles = candle_feed
        self._prices = price_feed
        self._store = store or InMemoryContinuityStore()
        self._config = config or EngineConfig()
        self._clock = clock or _utc_now
        self._log = logger or logging.getLogger(__name__)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> ContinuityStore:
        return self._store

    def evaluate(
        self,
        symbols: Iterable[str],
        config: EngineConfig | None = None,
        *,
        now: datetime | None = None,
    ) -> EvaluationResult:
        cfg = config or self._config
        now = now or self._clock()
        strategy = build_strategy(cfg.strategy)

        ordered: List[str] = []
        for raw in symbols:
            symbol = normalize_symbol(raw)
            if symbol and symbol not in ordered:
                ordered.append(symbol)

        result = EvaluationResult(timeframe=cfg.timeframe, strategy=cfg.strategy, evaluated_at=now)
        if not ordered:
            return result

        outcomes: Dict[str, Outcome] = {}
        max_workers = min(cfg.max_workers, len(ordered))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self._evaluate_guarded, symbol, cfg, strategy, now): symbol
                for symbol in ordered
            }
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()

        for symbol in ordered:
            outcome = outcomes[symbol]
            if isinstance(outcome, Signal):
                result.signals.append(outcome)
            else:
                result.skipped.append(outcome)

        self._log.info(
            f"Evaluated {len(ordered)} instruments: {len(result.actionable)} actionable, "
            f"{len(result.skipped)} skipped",
            extra={"timeframe": cfg.timeframe, "strategy": cfg.strategy},
        )
        return result

    # ------------------------------------------------------------------ #
    # Per-instrument pipeline
    # ------------------------------------------------------------------ #

    def _evaluate_guarded(
        self,
        symbol: str,
        cfg: EngineConfig,
        strategy: SignalStrategy,
        now: datetime,
    ) -> Outcome:
        context = {"symbol": symbol, "timeframe": cfg.timeframe, "strategy": cfg.strategy}
        try:
            return self.evaluate_symbol(symbol, cfg, strategy=strategy, now=now)
        except InsufficientDataError as exc:
            self._log.info(f"Skipping {symbol}: {exc}", extra=context)
            return SkippedInstrument(symbol=symbol, reason=SkipReason.INSUFFICIENT_DATA, detail=str(exc))
        except MalformedDataError as exc:
            self._log.warning(f"Skipping {symbol}: {exc}", extra=context)
            return SkippedInstrument(symbol=symbol, reason=SkipReason.MALFORMED_DATA, detail=str(exc))
        except FetchError as exc:
            self._log.warning(f"Skipping {symbol}: {exc}", extra=context)
            return SkippedInstrument(symbol=symbol, reason=SkipReason.FETCH_FAILED, detail=str(exc))
        except Exception as exc:
            if cfg.strict:
                raise
            self._log.exception(f"Signal computation failed for {symbol}: {exc}", extra=context)
            return SkippedInstrument(symbol=symbol, reason=SkipReason.COMPUTATION_ERROR, detail=str(exc))

    def evaluate_symbol(
        self,
        symbol: str,
        config: EngineConfig | None = None,
        *,
        strategy: SignalStrategy | None = None,
        now: datetime | None = None,
    ) -> Signal:
        """Evaluate one instrument, raising a ``SignalEngineError`` subclass when it must be skipped."""
        cfg = config or self._config
        strategy = strategy or build_strategy(cfg.strategy)
        now = now or self._clock()
        symbol = normalize_symbol(symbol)

        candles = self._fetch_candles(symbol, cfg)
        validate_candles(candles, symbol=symbol)
        if len(candles) < cfg.min_bars:
            raise InsufficientDataError(
                f"{len(candles)} candles available, {cfg.min_bars} required",
                symbol=symbol,
                available=len(candles),
                required=cfg.min_bars,
            )
        candles = self._apply_live_price(symbol, candles, cfg)
        higher_trend = self._higher_trend(symbol, cfg)

        indicators = build_indicator_snapshot(candles, cfg.indicators)
        if indicators is None:
            raise InsufficientDataError(
                "indicators are still warming up",
                symbol=symbol,
                available=len(candles),
                required=cfg.min_bars,
            )
        try:
            structure = analyze_structure(candles, now=now, settings=cfg.structure_settings)
            score = strategy.evaluate(candles, structure, indicators, cfg, higher_trend=higher_trend)
        except SignalEngineError:
            raise
        except Exception as exc:
            raise ComputationError(f"{strategy.name} scoring failed: {exc}", symbol=symbol) from exc

        price = candles[-1].close
        precision = price_precision(price)
        setup: Optional[TradeSetup] = None
        if score.action.is_entry:
            setup = self._build_setup(strategy, score, price, indicators.atr, structure, cfg, precision)
            if setup is None:
                score = replace(
                    score,
                    action=Action.WAIT,
                    reasons=(ReasonCode.NO_VALID_SETUP,) + score.reasons,
                    invalidation_level=None,
                    target_levels=(),
                )

        key = ContinuityKey(symbol=symbol, timeframe=cfg.timeframe, strategy=cfg.strategy)
        record = self._store.observe(key, score.action, now)
        age = record.age_seconds(now)
        if cfg.confidence_age_decay and score.action.is_actionable:
            score = self._decay(score, age)

        return Signal(
            symbol=symbol,
            timeframe=cfg.timeframe,
            strategy=cfg.strategy,
            price=round(price, precision),
            action=score.action,
            score=score,
            setup=setup,
            indicators=indicators,
            structure=structure,
            signal_since=record.since,
            signal_age_seconds=age,
            evaluated_at=now,
            precision=precision,
        )

    def _fetch_candles(self, symbol: str, cfg: EngineConfig) -> List[Candle]:
        try:
            candles = self._candles.get_candles(symbol, cfg.timeframe, cfg.lookback_bars)
        except SignalEngineError:
            raise
        except Exception as exc:
            raise FetchError(f"candle fetch failed: {exc}", symbol=symbol) from exc
        return list(candles)

    def _apply_live_price(self, symbol: str, candles: List[Candle], cfg: EngineConfig) -> List[Candle]:
        if not cfg.use_live_price or self._prices is None:
            return candles
        try:
            price = float(self._prices.get_last_price(symbol))
        except Exception as exc:
            self._log.warning("Live price unavailable for %s, using last close: %s", symbol, exc)
            return candles
        if not math.isfinite(price) or price <= 0:
            self._log.warning("Ignoring invalid live price %s for %s", price, symbol)
            return candles
        return candles[:-1] + [candles[-1].with_live_price(price)]

    def _higher_trend(self, symbol: str, cfg: EngineConfig) -> MarketTrend:
        if cfg.higher_timeframe is None:
            return MarketTrend.RANGING
        try:
            candles = self._candles.get_candles(symbol, cfg.higher_timeframe, cfg.higher_timeframe_bars)
        except Exception as exc:
            self._log.warning("Higher timeframe %s unavailable for %s: %s", cfg.higher_timeframe, symbol, exc)
            return MarketTrend.RANGING
        return higher_timeframe_trend(candles, cfg.indicators.ema_fast, cfg.indicators.ema_slow)

    @staticmethod
    def _build_setup(
        strategy: SignalStrategy,
        score: SignalScore,
        price: float,
        atr_value: float,
        structure: StructureSnapshot,
        cfg: EngineConfig,
        precision: int,
    ) -> Optional[TradeSetup]:
        if not strategy.uses_structure_setup:
            return atr_trade_setup(score.action, price, atr_value, cfg.setup, precision)
        return structure_trade_setup(
            score.action,
            price,
            atr_value,
            support=structure.support,
            resistance=structure.resistance,
            invalidation_level=score.invalidation_level,
            target_levels=score.target_levels,
            settings=cfg.setup,
            precision=precision,
        )

    @staticmethod
    def _decay(score: SignalScore, age_seconds: int) -> SignalScore:
        decayed = decay_confidence(score.confidence, age_seconds)
        if decayed == score.confidence:
            return score
        return replace(score, confidence=decayed, reasons=score.reasons + (ReasonCode.SIGNAL_AGING,))

