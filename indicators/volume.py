from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from market_data.models import Candle


@dataclass(frozen=True)
class VolumeReading:
    current: float
    average: float
    ratio: float
    spike: bool


def analyze_volume(
    candles: Sequence[Candle],
    window: int = 20,
    spike_ratio: float = 1.5,
) -> Optional[VolumeReading]:
    """Compare the last bar's volume against the ``window`` bars before it."""
    if window <= 0:
        raise ValueError("window must be positive")
    if len(candles) < window + 1:
        return None

    current = candles[-1].volume
    previous = candles[-window - 1 : -1]
    average = sum(c.volume for c in previous) / window
    ratio = current / average if average > 0 else 0.0
    return VolumeReading(
        current=current,
        average=average,
        ratio=ratio,
        spike=average > 0 and current >= spike_ratio * average,
    )
