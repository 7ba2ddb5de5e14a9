from __future__ import annotations

import math
from typing import Sequence

from market_data.models import Candle

from .errors import MalformedDataError


def validate_candles(candles: Sequence[Candle], *, symbol: str | None = None) -> None:
    """Raise ``MalformedDataError`` unless every bar is finite, consistent and in time order."""
    previous: Candle | None = None
    for idx, candle in enumerate(candles):
        values = (candle.open, candle.high, candle.low, candle.close, candle.volume)
        if not all(math.isfinite(value) for value in values):
            raise MalformedDataError(f"non-finite value in candle {idx}", symbol=symbol)
        if candle.high < max(candle.open, candle.close):
            raise MalformedDataError(f"high below body in candle {idx}", symbol=symbol)
        if candle.low > min(candle.open, candle.close):
            raise MalformedDataError(f"low above body in candle {idx}", symbol=symbol)
        if candle.volume < 0:
            raise MalformedDataError(f"negative volume in candle {idx}", symbol=symbol)
        if candle.low <= 0:
            raise MalformedDataError(f"non-positive price in candle {idx}", symbol=symbol)
        if previous is not None and candle.open_time <= previous.open_time:
            raise MalformedDataError(f"candle {idx} is out of chronological order", symbol=symbol)
        previous = candle
