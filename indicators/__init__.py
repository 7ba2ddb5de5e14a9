"""Indicator library: pure functions over closes and candles."""

from .moving_averages import ema, last_value, sma
from .oscillators import MacdSeries, macd, rsi
from .snapshot import IndicatorSettings, IndicatorSnapshot, MacdReading, build_indicator_snapshot
from .volatility import BollingerBands, atr, bollinger, population_stddev, true_range
from .volume import VolumeReading, analyze_volume

__all__ = [
    "BollingerBands",
    "IndicatorSettings",
    "IndicatorSnapshot",
    "MacdReading",
    "MacdSeries",
    "VolumeReading",
    "analyze_volume",
    "atr",
    "bollinger",
    "build_indicator_snapshot",
    "ema",
    "last_value",
    "macd",
    "population_stddev",
    "rsi",
    "sma",
    "true_range",
]
