from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Sequence


def to_datetime(milliseconds: int) -> datetime:
    """Convert milliseconds since epoch to an aware UTC datetime."""
    return datetime.fromtimestamp(milliseconds / 1000, tz=timezone.utc)


def to_milliseconds(moment: datetime) -> int:
    """Convert a datetime to integer milliseconds since epoch."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


@dataclass(frozen=True, slots=True)
class Candle:
    """Immutable OHLCV bar for one instrument on one timeframe."""

    symbol: str
    interval: str
    open_time: datetime
    close_time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_binance(cls, symbol: str, interval: str, payload: Sequence[str | int | float]) -> "Candle":
        """Build a candle instance from the Binance kline payload."""
        open_time_ms = int(payload[0])
        close_time_ms = int(payload[6])
        return cls(
            symbol=symbol,
            interval=interval,
            open_time=to_datetime(open_time_ms),
            close_time=to_datetime(close_time_ms),
            open=float(payload[1]),
            high=float(payload[2]),
            low=float(payload[3]),
            close=float(payload[4]),
            volume=float(payload[5]),
        )

    @property
    def open_time_ms(self) -> int:
        return to_milliseconds(self.open_time)

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3.0

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    def with_live_price(self, price: float) -> "Candle":
        """Return a copy whose close is ``price`` with the range widened to contain it."""
        return replace(
            self,
            close=price,
            high=max(self.high, price),
            low=min(self.low, price),
        )


def normalize_symbol(symbol: str) -> str:
    return symbol.upper().strip()
