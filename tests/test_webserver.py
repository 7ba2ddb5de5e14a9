import unittest
from datetime import timedelta

from fastapi.testclient import TestClient

from signal_engine import SignalOrchestrator
from tests.helpers import START, StaticCandleFeed, candles_from_closes, flat_candles, rising_closes
from webserver.app import create_app

NOW = START + timedelta(days=2)


class TestSignalsApi(unittest.TestCase):
    def setUp(self):
        feed = StaticCandleFeed(
            {
                "BTCUSDT": candles_from_closes(rising_closes(120)),
                "SOLUSDT": flat_candles(120, symbol="SOLUSDT"),
                "BNBUSDT": RuntimeError("connection reset"),
            }
        )
        orchestrator = SignalOrchestrator(feed, clock=lambda: NOW)
        app = create_app(
            orchestrator,
            default_symbols=["BTCUSDT", "SOLUSDT"],
            trusted_hosts=["testserver"],
            force_https=False,
        )
        self.client = TestClient(app)

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["timeframe"], "15m")
        self.assertEqual(body["strategy"], "classic")
        self.assertEqual(response.headers["X-Frame-Options"], "DENY")
        self.assertEqual(response.headers["Cache-Control"], "no-store")

    def test_default_universe(self):
        response = self.client.get("/api/signals")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([s["symbol"] for s in body["signals"]], ["BTCUSDT", "SOLUSDT"])
        self.assertEqual(body["actionable"], ["BTCUSDT"])
        self.assertEqual(body["counts"]["BUY"], 1)
        self.assertEqual(body["counts"]["WAIT"], 1)
        self.assertEqual(body["counts"]["EXIT_SELL"], 0)

        btc = body["signals"][0]
        self.assertEqual(btc["action"], "BUY")
        self.assertIn("EMA_FAST_ABOVE_SLOW", btc["reasons"])
        self.assertEqual(len(btc["reasons"]), len(btc["reason_labels"]))
        self.assertLess(btc["setup"]["stop_loss"], btc["setup"]["entry"])
        self.assertEqual(btc["signal_age_seconds"], 0)
        self.assertIsNone(body["signals"][1]["setup"])

    def test_actionable_only(self):
        body = self.client.get("/api/signals", params={"actionable_only": "true"}).json()
        self.assertEqual([s["symbol"] for s in body["signals"]], ["BTCUSDT"])
        self.assertEqual(body["counts"]["WAIT"], 1)

    def test_requested_symbols_with_failure(self):
        body = self.client.get("/api/signals", params={"symbols": "btcusdt,bnbusdt"}).json()
        self.assertEqual([s["symbol"] for s in body["signals"]], ["BTCUSDT"])
        self.assertEqual(body["skipped"][0]["symbol"], "BNBUSDT")
        self.assertEqual(body["skipped"][0]["reason"], "FETCH_FAILED")

    def test_strategy_override(self):
        body = self.client.get("/api/signals", params={"strategy": "bollinger"}).json()
        self.assertEqual(body["strategy"], "bollinger")
        self.assertTrue(all(s["strategy"] == "bollinger" for s in body["signals"]))

    def test_invalid_parameters(self):
        self.assertEqual(self.client.get("/api/signals", params={"timeframe": "7m"}).status_code, 400)
        self.assertEqual(self.client.get("/api/signals", params={"strategy": "grid"}).status_code, 400)
        self.assertEqual(self.client.get("/api/signals", params={"symbols": " , "}).status_code, 400)

    def test_untrusted_host_rejected(self):
        response = self.client.get("/api/health", headers={"host": "evil.example"})
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
