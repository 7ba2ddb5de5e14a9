from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from market_data.feed import CandleFeed, PriceFeed
from market_data.models import Candle

START = datetime(2024, 3, 4, 0, 0, tzinfo=timezone.utc)  # a Monday


def make_candle(
    index: int,
    open_: float,
    high: float,
    low: float,
    close: float,
    volume: float = 100.0,
    *,
    symbol: str = "BTCUSDT",
    start: datetime = START,
    minutes: int = 15,
) -> Candle:
    open_time = start + timedelta(minutes=minutes * index)
    return Candle(
        symbol=symbol,
        interval=f"{minutes}m",
        open_time=open_time,
        close_time=open_time + timedelta(minutes=minutes) - timedelta(milliseconds=1),
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


def candles_from_closes(
    closes: Sequence[float],
    *,
    volumes: Optional[Sequence[float]] = None,
    spread: float = 0.2,
    symbol: str = "BTCUSDT",
    start: datetime = START,
    minutes: int = 15,
) -> List[Candle]:
    """Each bar opens at the previous close; wicks extend ``spread`` beyond the body."""
    candles: List[Candle] = []
    previous = closes[0]
    for idx, close in enumerate(closes):
        open_ = previous
        volume = volumes[idx] if volumes is not None else 100.0
        candles.append(
            make_candle(
                idx,
                open_,
                max(open_, close) + spread,
                min(open_, close) - spread,
                close,
                volume,
                symbol=symbol,
                start=start,
                minutes=minutes,
            )
        )
        previous = close
    return candles


def flat_candles(count: int, price: float = 100.0, **kwargs) -> List[Candle]:
    return candles_from_closes([price] * count, spread=0.0, **kwargs)


def rising_closes(count: int, start: float = 100.0) -> List[float]:
    """Zig-zag uptrend: +1.0 then -0.5, ending on an up bar."""
    closes = [start]
    for i in range(1, count):
        closes.append(closes[-1] + (1.0 if i % 2 == 1 else -0.5))
    if closes[-1] < closes[-2]:
        closes.append(closes[-1] + 1.0)
    return closes


def falling_closes(count: int, start: float = 300.0) -> List[float]:
    closes = [start]
    for i in range(1, count):
        closes.append(closes[-1] - (1.0 if i % 2 == 1 else -0.5))
    if closes[-1] > closes[-2]:
        closes.append(closes[-1] - 1.0)
    return closes


class StaticCandleFeed(CandleFeed, PriceFeed):
    """In-memory feed; a value that is an Exception is raised instead of returned."""

    def __init__(self, candles: Dict[str, object], prices: Optional[Dict[str, object]] = None) -> None:
        self._candles = candles
        self._prices = prices or {}
        self.calls: List[tuple] = []

    def get_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        self.calls.append((symbol, timeframe, limit))
        value = self._candles.get(symbol)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise RuntimeError(f"unknown symbol {symbol}")
        return list(value)[-limit:]

    def get_last_price(self, symbol: str) -> float:
        value = self._prices.get(symbol)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise RuntimeError(f"no price for {symbol}")
        return float(value)


def replace_symbol(candles: Iterable[Candle], symbol: str) -> List[Candle]:
    return [replace(candle, symbol=symbol) for candle in candles]
