"""Tracks how long each (symbol, timeframe, strategy) has held its current action."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, NamedTuple, Optional

from .models import Action


class ContinuityKey(NamedTuple):
    symbol: str
    timeframe: str
    strategy: str


@dataclass(frozen=True)
class ContinuityRecord:
    action: Action
    since: datetime
    last_seen: datetime

    def age_seconds(self, now: datetime) -> int:
        return max(0, int((now - self.since).total_seconds()))


class ContinuityStore(ABC):
    """Remembers the last action per key across evaluations."""

    @abstractmethod
    def observe(self, key: ContinuityKey, action: Action, now: datetime) -> ContinuityRecord:
        """Record ``action`` for ``key`` and return the record with its start time."""

    @abstractmethod
    def get(self, key: ContinuityKey) -> Optional[ContinuityRecord]:
        """Current record for ``key`` without updating it."""

    @abstractmethod
    def clear(self) -> None:
        """Forget every key."""


class InMemoryContinuityStore(ContinuityStore):
    """Thread-safe in-process store.

    ``since`` is kept while the action repeats and reset to ``now`` when it
    changes. With ``ttl_seconds`` set, a key not observed within the TTL is
    treated as new on its next observation.
    """

    def __init__(self, ttl_seconds: float | None = None) -> None:
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds is not None else None
        self._records: Dict[ContinuityKey, ContinuityRecord] = {}
        self._lock = threading.Lock()

    def observe(self, key: ContinuityKey, action: Action, now: datetime) -> ContinuityRecord:
        with self._lock:
            self._evict_expired(now)
            previous = self._records.get(key)
            if previous is not None and previous.action is action and now >= previous.since:
                record = ContinuityRecord(action=action, since=previous.since, last_seen=now)
            else:
                record = ContinuityRecord(action=action, since=now, last_seen=now)
            self._records[key] = record
            return record

    def get(self, key: ContinuityKey) -> Optional[ContinuityRecord]:
        with self._lock:
            return self._records.get(key)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _evict_expired(self, now: datetime) -> None:
        if self._ttl is None:
            return
        cutoff = now - self._ttl
        expired = [key for key, record in self._records.items() if record.last_seen < cutoff]
        for key in expired:
            del self._records[key]
