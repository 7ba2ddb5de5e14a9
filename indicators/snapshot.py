from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from market_data.models import Candle

from .moving_averages import ema, last_value
from .oscillators import macd, rsi
from .volatility import BollingerBands, atr, bollinger
from .volume import VolumeReading, analyze_volume


@dataclass(frozen=True)
class IndicatorSettings:
    """Periods used when reading the indicator snapshot."""

    ema_fast: int = 9
    ema_slow: int = 21
    ema_periods: Tuple[int, ...] = (9, 20, 21, 50, 200)
    ema_trend: int = 50
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    atr_period: int = 14
    bollinger_period: int = 20
    bollinger_multiplier: float = 2.0
    volume_window: int = 20
    volume_spike_ratio: float = 1.5

    def __post_init__(self) -> None:
        periods = (
            self.ema_fast,
            self.ema_slow,
            self.ema_trend,
            self.rsi_period,
            self.macd_fast,
            self.macd_slow,
            self.macd_signal,
            self.atr_period,
            self.bollinger_period,
            self.volume_window,
        ) + tuple(self.ema_periods)
        if min(periods) <= 0:
            raise ValueError("indicator periods must be positive")
        if self.ema_fast >= self.ema_slow:
            raise ValueError("ema_fast must be shorter than ema_slow")
        if self.macd_fast >= self.macd_slow:
            raise ValueError("macd_fast must be shorter than macd_slow")
        if self.bollinger_multiplier <= 0:
            raise ValueError("bollinger_multiplier must be positive")
        if self.volume_spike_ratio <= 1:
            raise ValueError("volume_spike_ratio must be greater than 1")

    @property
    def min_bars(self) -> int:
        """Bars needed before every required reading (including previous-bar values) exists."""
        return max(
            self.ema_slow + 1,
            self.ema_trend + 1,
            self.macd_slow + self.macd_signal,
            self.bollinger_period,
            self.rsi_period + 2,
            self.atr_period + 1,
            self.volume_window + 1,
        )


@dataclass(frozen=True)
class MacdReading:
    line: float
    signal: float
    histogram: float
    prev_histogram: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Last-value readout of every indicator for one evaluation."""

    price: float
    emas: Dict[int, float]
    prev_emas: Dict[int, float]
    ema_fast: float
    ema_slow: float
    ema_trend: float
    rsi: float
    prev_rsi: float
    macd: MacdReading
    atr: float
    bollinger: BollingerBands
    volume: VolumeReading
    bars: int = field(default=0)

    def ema(self, period: int) -> Optional[float]:
        return self.emas.get(period)


def build_indicator_snapshot(
    candles: Sequence[Candle],
    settings: IndicatorSettings | None = None,
    price: float | None = None,
) -> Optional[IndicatorSnapshot]:
    """Compute the snapshot, or return None when any required reading is still warming up.

    Optional EMAs (e.g. EMA200 on a short history) are simply left out of ``emas``.
    """
    settings = settings or IndicatorSettings()
    if len(candles) < settings.min_bars:
        return None

    closes = [c.close for c in candles]
    current_price = closes[-1] if price is None else price

    periods = sorted(set(settings.ema_periods) | {settings.ema_fast, settings.ema_slow, settings.ema_trend})
    emas: Dict[int, float] = {}
    prev_emas: Dict[int, float] = {}
    for period in periods:
        series = ema(closes, period)
        value = last_value(series)
        if value is None:
            continue
        emas[period] = value
        prev = last_value(series, 1)
        if prev is not None:
            prev_emas[period] = prev

    rsi_series = rsi(closes, settings.rsi_period)
    macd_series = macd(closes, settings.macd_fast, settings.macd_slow, settings.macd_signal)
    atr_value = last_value(atr(candles, settings.atr_period))
    bands = bollinger(closes, settings.bollinger_period, settings.bollinger_multiplier, price=current_price)
    volume = analyze_volume(candles, settings.volume_window, settings.volume_spike_ratio)

    rsi_now = last_value(rsi_series)
    rsi_prev = last_value(rsi_series, 1)
    line = last_value(macd_series.line)
    signal = last_value(macd_series.signal)
    hist = last_value(macd_series.histogram)
    prev_hist = last_value(macd_series.histogram, 1)

    required = (
        emas.get(settings.ema_fast),
        emas.get(settings.ema_slow),
        emas.get(settings.ema_trend),
        prev_emas.get(settings.ema_fast),
        prev_emas.get(settings.ema_slow),
        rsi_now,
        rsi_prev,
        line,
        signal,
        hist,
        prev_hist,
        atr_value,
        bands,
        volume,
    )
    if any(value is None for value in required):
        return None

    return IndicatorSnapshot(
        price=current_price,
        emas=emas,
        prev_emas=prev_emas,
        ema_fast=emas[settings.ema_fast],
        ema_slow=emas[settings.ema_slow],
        ema_trend=emas[settings.ema_trend],
        rsi=rsi_now,  # type: ignore[arg-type]
        prev_rsi=rsi_prev,  # type: ignore[arg-type]
        macd=MacdReading(line=line, signal=signal, histogram=hist, prev_histogram=prev_hist),  # type: ignore[arg-type]
        atr=atr_value,  # type: ignore[arg-type]
        bollinger=bands,  # type: ignore[arg-type]
        volume=volume,  # type: ignore[arg-type]
        bars=len(candles),
    )
