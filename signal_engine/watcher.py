from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from market_data.binance import interval_to_milliseconds
from market_data.models import normalize_symbol

from .config import DEFAULT_SYMBOLS
from .models import EvaluationResult
from .orchestrator import SignalOrchestrator
from .serialization import result_to_dict


@dataclass(frozen=True)
class SignalWatcherSettings:
    symbols: Sequence[str] = DEFAULT_SYMBOLS
    poll_epsilon_minutes: float = 0.1
    snapshot_file: Optional[Path] = None
    max_cycles: Optional[int] = None

    def __post_init__(self) -> None:
        if self.poll_epsilon_minutes < 0:
            raise ValueError("poll_epsilon_minutes cannot be negative.")
        if self.max_cycles is not None and self.max_cycles <= 0:
            raise ValueError("max_cycles must be positive.")


class SignalWatcher:
    """Re-evaluates the universe shortly after each candle close and logs actionable signals."""

    def __init__(
        self,
        orchestrator: SignalOrchestrator,
        settings: SignalWatcherSettings | None = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._settings = settings or SignalWatcherSettings()
        self._log = logger or logging.getLogger(__name__)

        timeframe = orchestrator.config.timeframe
        self._interval_seconds = interval_to_milliseconds(timeframe) / 1000.0
        self._epsilon_seconds = self._settings.poll_epsilon_minutes * 60.0

    @property
    def symbols(self) -> List[str]:
        return [normalize_symbol(symbol) for symbol in self._settings.symbols if symbol.strip()]

    def run(self) -> None:
        symbols = self.symbols
        if not symbols:
            raise RuntimeError("No symbols available to monitor.")

        self._log.info(
            "Watching %s symbols on %s timeframe with %s strategy",
            len(symbols),
            self._orchestrator.config.timeframe,
            self._orchestrator.config.strategy,
        )

        cycles = 0
        next_poll = self._next_poll_time()
        try:
            while self._settings.max_cycles is None or cycles < self._settings.max_cycles:
                sleep_for = next_poll - datetime.now(timezone.utc).timestamp()
                if sleep_for > 0:
                    time.sleep(sleep_for)

                self._log.info("Starting new evaluation cycle...")
                try:
                    self.run_once()
                except Exception:
                    self._log.exception("Evaluation cycle failed")
                cycles += 1
                next_poll = self._next_poll_time()
        except KeyboardInterrupt:
            self._log.info("Signal watcher stopped by user.")

    def run_once(self) -> EvaluationResult:
        result = self._orchestrator.evaluate(self.symbols)
        for signal in result.actionable:
            setup = signal.setup
            self._log.info(
                f"{signal.action.value} {signal.symbol} @ {signal.price} "
                f"confidence={signal.confidence} ({signal.quality.value}) "
                f"since={signal.signal_since.isoformat()}"
                + (f" sl={setup.stop_loss} tp1={setup.target1} rr={setup.risk_reward}" if setup else ""),
                extra={"symbol": signal.symbol, "action": signal.action.value},
            )
        for skipped in result.skipped:
            self._log.warning("Skipped %s: %s %s", skipped.symbol, skipped.reason.value, skipped.detail)
        self._write_snapshot(result)
        return result

    def _next_poll_time(self) -> float:
        """Return the next UTC timestamp (epoch seconds) to poll."""
        now_epoch = datetime.now(timezone.utc).timestamp()
        interval = self._interval_seconds
        base = math.floor(now_epoch / interval) * interval
        candidate = base + self._epsilon_seconds
        if candidate <= now_epoch:
            candidate += interval
        return candidate

    def _write_snapshot(self, result: EvaluationResult) -> None:
        path = self._settings.snapshot_file
        if not path:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(result_to_dict(result), handle, indent=2)
