import json
import tempfile
import unittest
from datetime import timedelta
from pathlib import Path
from unittest import mock

from signal_engine import SignalOrchestrator, SignalWatcher, SignalWatcherSettings
from tests.helpers import START, StaticCandleFeed, candles_from_closes, flat_candles, rising_closes

NOW = START + timedelta(days=2)


def _orchestrator():
    feed = StaticCandleFeed(
        {
            "BTCUSDT": candles_from_closes(rising_closes(120)),
            "ETHUSDT": flat_candles(120, symbol="ETHUSDT"),
            "BNBUSDT": RuntimeError("boom"),
        }
    )
    return SignalOrchestrator(feed, clock=lambda: NOW)


class TestSignalWatcher(unittest.TestCase):
    def test_run_once_writes_snapshot(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "signals.json"
            settings = SignalWatcherSettings(symbols=["btcusdt", "ethusdt", "bnbusdt"], snapshot_file=path)
            watcher = SignalWatcher(_orchestrator(), settings)
            with self.assertLogs("signal_engine.watcher", level="INFO") as logs:
                result = watcher.run_once()

            self.assertEqual([s.symbol for s in result.actionable], ["BTCUSDT"])
            self.assertTrue(any("BUY BTCUSDT" in line for line in logs.output))
            self.assertTrue(any("Skipped BNBUSDT" in line for line in logs.output))

            data = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(data["actionable"], ["BTCUSDT"])
            self.assertEqual(len(data["signals"]), 2)
            self.assertEqual(data["skipped"][0]["reason"], "FETCH_FAILED")

    def test_symbols_are_normalized(self):
        watcher = SignalWatcher(_orchestrator(), SignalWatcherSettings(symbols=["btcusdt", " ", "ethusdt "]))
        self.assertEqual(watcher.symbols, ["BTCUSDT", "ETHUSDT"])

    def test_run_stops_after_max_cycles(self):
        settings = SignalWatcherSettings(symbols=["BTCUSDT"], max_cycles=2)
        watcher = SignalWatcher(_orchestrator(), settings)
        with mock.patch("signal_engine.watcher.time.sleep"), mock.patch.object(
            watcher, "run_once", wraps=watcher.run_once
        ) as run_once:
            watcher.run()
        self.assertEqual(run_once.call_count, 2)

    def test_failed_cycle_does_not_stop_loop(self):
        settings = SignalWatcherSettings(symbols=["BTCUSDT"], max_cycles=2)
        watcher = SignalWatcher(_orchestrator(), settings)
        with mock.patch("signal_engine.watcher.time.sleep"), mock.patch.object(
            watcher, "run_once", side_effect=RuntimeError("down")
        ) as run_once:
            watcher.run()
        self.assertEqual(run_once.call_count, 2)

    def test_empty_symbols(self):
        watcher = SignalWatcher(_orchestrator(), SignalWatcherSettings(symbols=[]))
        with self.assertRaises(RuntimeError):
            watcher.run()

    def test_next_poll_time_is_after_close(self):
        watcher = SignalWatcher(_orchestrator())
        with mock.patch("signal_engine.watcher.datetime") as fake:
            fake.now.return_value.timestamp.return_value = 900.0 * 10 + 3.0
            self.assertAlmostEqual(watcher._next_poll_time(), 900.0 * 10 + 6.0)
            fake.now.return_value.timestamp.return_value = 900.0 * 10 + 7.0
            self.assertAlmostEqual(watcher._next_poll_time(), 900.0 * 11 + 6.0)

    def test_settings_validation(self):
        with self.assertRaises(ValueError):
            SignalWatcherSettings(poll_epsilon_minutes=-1)
        with self.assertRaises(ValueError):
            SignalWatcherSettings(max_cycles=0)


if __name__ == "__main__":
    unittest.main()
