"""Calendar-based levels: previous day/week ranges, session extremes, VWAP and kill zones.

All calendar arithmetic is done in UTC on candle open times.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Sequence

from market_data.models import Candle


@dataclass(frozen=True)
class TimeRange:
    """UTC time-of-day window; ``end`` is exclusive and may wrap past midnight."""

    name: str
    start: time
    end: time

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("time range name must not be empty")
        if self.start == self.end:
            raise ValueError(f"time range {self.name} must not be empty")

    def contains(self, moment: datetime) -> bool:
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        current = moment.time().replace(tzinfo=None)
        if self.start < self.end:
            return self.start <= current < self.end
        return current >= self.start or current < self.end

    @classmethod
    def parse(cls, value: str) -> "TimeRange":
        """Parse ``name=HH:MM-HH:MM``."""
        try:
            name, span = value.split("=", 1)
            start_raw, end_raw = span.split("-", 1)
            return cls(
                name=name.strip(),
                start=time.fromisoformat(start_raw.strip()),
                end=time.fromisoformat(end_raw.strip()),
            )
        except ValueError as exc:
            raise ValueError(f"Invalid time range {value!r}, expected name=HH:MM-HH:MM") from exc


DEFAULT_KILL_ZONES = (
    TimeRange("asia", time(0, 0), time(4, 0)),
    TimeRange("london", time(7, 0), time(10, 0)),
    TimeRange("new_york", time(13, 0), time(16, 0)),
)
DEFAULT_ASIAN_SESSION = TimeRange("asian_session", time(0, 0), time(8, 0))


@dataclass(frozen=True)
class RangeLevels:
    high: float
    low: float
    # First bar index at which the range is complete and tradable against.
    formed_index: int


def utc_day(candle: Candle) -> date:
    return candle.open_time.astimezone(timezone.utc).date()


def _range_of(candles: Sequence[Candle], formed_index: int) -> RangeLevels:
    return RangeLevels(
        high=max(c.high for c in candles),
        low=min(c.low for c in candles),
        formed_index=formed_index,
    )


def previous_day_range(candles: Sequence[Candle]) -> Optional[RangeLevels]:
    """High/low of the calendar day before the last candle's day (PDH/PDL)."""
    if not candles:
        return None
    today = utc_day(candles[-1])
    yesterday = today - timedelta(days=1)
    previous = [c for c in candles if utc_day(c) == yesterday]
    if not previous:
        return None
    first_today = next(i for i, c in enumerate(candles) if utc_day(c) == today)
    return _range_of(previous, first_today)


def previous_week_range(candles: Sequence[Candle]) -> Optional[RangeLevels]:
    """High/low of the ISO week before the last candle's week, when fully covered."""
    if not candles:
        return None
    today = utc_day(candles[-1])
    this_monday = today - timedelta(days=today.weekday())
    last_monday = this_monday - timedelta(days=7)
    if utc_day(candles[0]) > last_monday:
        return None
    previous = [c for c in candles if last_monday <= utc_day(c) < this_monday]
    if not previous:
        return None
    first_this_week = next(i for i, c in enumerate(candles) if utc_day(c) >= this_monday)
    return _range_of(previous, first_this_week)


def session_range(candles: Sequence[Candle], window: TimeRange) -> Optional[RangeLevels]:
    """Extremes of ``window`` on the last candle's day, falling back to the previous day."""
    if not candles:
        return None
    today = utc_day(candles[-1])
    for day in (today, today - timedelta(days=1)):
        indices = [
            i for i, c in enumerate(candles) if utc_day(c) == day and window.contains(c.open_time)
        ]
        if indices:
            return _range_of([candles[i] for i in indices], indices[-1] + 1)
    return None


def session_vwap(candles: Sequence[Candle]) -> Optional[float]:
    """Volume-weighted typical price over the last candle's UTC day."""
    if not candles:
        return None
    today = utc_day(candles[-1])
    session: List[Candle] = [c for c in candles if utc_day(c) == today]
    total_volume = sum(c.volume for c in session)
    if total_volume <= 0:
        return None
    return sum(c.typical_price * c.volume for c in session) / total_volume


def active_kill_zone(moment: datetime, windows: Sequence[TimeRange]) -> Optional[str]:
    for window in windows:
        if window.contains(moment):
            return window.name
    return None
