import unittest

from indicators import (
    IndicatorSettings,
    analyze_volume,
    atr,
    bollinger,
    build_indicator_snapshot,
    ema,
    macd,
    rsi,
    sma,
)
from tests.helpers import candles_from_closes, flat_candles, make_candle, rising_closes


class TestMovingAverages(unittest.TestCase):
    def test_sma_window(self):
        self.assertEqual(sma([1, 2, 3, 4, 5], 3), [None, None, 2.0, 3.0, 4.0])

    def test_ema_seeded_with_simple_mean(self):
        values = [1.0, 2.0, 3.0, 4.0]
        series = ema(values, 3)
        self.assertIsNone(series[0])
        self.assertIsNone(series[1])
        self.assertAlmostEqual(series[2], 2.0)
        # k = 0.5 for period 3
        self.assertAlmostEqual(series[3], 4.0 * 0.5 + 2.0 * 0.5)

    def test_ema_short_input_is_all_none(self):
        self.assertEqual(ema([1.0, 2.0], 5), [None, None])

    def test_invalid_period(self):
        with self.assertRaises(ValueError):
            ema([1.0], 0)


class TestOscillators(unittest.TestCase):
    def test_rsi_flat_series_is_neutral(self):
        series = rsi([100.0] * 30, 14)
        self.assertIsNone(series[13])
        self.assertEqual(series[14], 50.0)
        self.assertEqual(series[-1], 50.0)

    def test_rsi_only_gains_is_100(self):
        series = rsi([float(i) for i in range(30)], 14)
        self.assertEqual(series[-1], 100.0)

    def test_rsi_bounds(self):
        closes = rising_closes(80)
        for value in rsi(closes, 14):
            if value is not None:
                self.assertTrue(0.0 <= value <= 100.0)

    def test_macd_requires_slow_plus_signal(self):
        series = macd([float(i) for i in range(34)], 12, 26, 9)
        self.assertTrue(all(value is None for value in series.histogram))
        series = macd([float(i) for i in range(35)], 12, 26, 9)
        self.assertIsNotNone(series.histogram[-1])

    def test_macd_histogram_is_line_minus_signal(self):
        series = macd(rising_closes(60))
        self.assertAlmostEqual(series.histogram[-1], series.line[-1] - series.signal[-1])

    def test_macd_rejects_inverted_periods(self):
        with self.assertRaises(ValueError):
            macd([1.0] * 50, 26, 12, 9)


class TestVolatility(unittest.TestCase):
    def test_atr_constant_range(self):
        candles = [make_candle(i, 100.0, 101.0, 99.0, 100.0) for i in range(20)]
        series = atr(candles, 14)
        self.assertIsNone(series[13])
        self.assertAlmostEqual(series[14], 2.0)
        self.assertAlmostEqual(series[-1], 2.0)

    def test_atr_uses_gaps(self):
        candles = [make_candle(0, 100.0, 101.0, 99.0, 100.0), make_candle(1, 105.0, 106.0, 104.0, 105.0)]
        series = atr(candles, 1)
        # true range reaches back to the previous close
        self.assertAlmostEqual(series[1], 6.0)

    def test_bollinger_flat_window(self):
        bands = bollinger([100.0] * 20, 20, 2.0)
        self.assertEqual(bands.upper, 100.0)
        self.assertEqual(bands.lower, 100.0)
        self.assertEqual(bands.width_pct, 0.0)
        self.assertEqual(bands.position_pct, 50.0)

    def test_bollinger_ordering_and_position(self):
        values = [100.0 + (i % 5) for i in range(20)]
        bands = bollinger(values, 20, 2.0, price=200.0)
        self.assertTrue(bands.lower <= bands.middle <= bands.upper)
        self.assertEqual(bands.position_pct, 100.0)
        self.assertGreater(bands.raw_position_pct, 100.0)

    def test_bollinger_short_window(self):
        self.assertIsNone(bollinger([1.0] * 5, 20))


class TestVolume(unittest.TestCase):
    def test_spike_against_previous_bars(self):
        volumes = [100.0] * 20 + [200.0]
        reading = analyze_volume(candles_from_closes([100.0] * 21, volumes=volumes), 20, 1.5)
        self.assertAlmostEqual(reading.average, 100.0)
        self.assertAlmostEqual(reading.ratio, 2.0)
        self.assertTrue(reading.spike)

    def test_no_spike(self):
        reading = analyze_volume(flat_candles(30), 20, 1.5)
        self.assertFalse(reading.spike)

    def test_short_history(self):
        self.assertIsNone(analyze_volume(flat_candles(10), 20))


class TestIndicatorSnapshot(unittest.TestCase):
    def test_min_bars(self):
        self.assertEqual(IndicatorSettings().min_bars, 51)

    def test_warming_up_returns_none(self):
        self.assertIsNone(build_indicator_snapshot(flat_candles(50)))

    def test_flat_snapshot(self):
        snapshot = build_indicator_snapshot(flat_candles(60))
        self.assertIsNotNone(snapshot)
        self.assertEqual(snapshot.rsi, 50.0)
        self.assertAlmostEqual(snapshot.ema_fast, 100.0)
        self.assertIsNone(snapshot.ema(200))
        self.assertAlmostEqual(snapshot.bollinger.width_pct, 0.0, places=6)

    def test_rising_snapshot(self):
        snapshot = build_indicator_snapshot(candles_from_closes(rising_closes(120)))
        self.assertGreater(snapshot.ema_fast, snapshot.ema_slow)
        self.assertGreater(snapshot.price, snapshot.ema_trend)
        self.assertTrue(50.0 < snapshot.rsi < 100.0)
        self.assertGreater(snapshot.atr, 0.0)

    def test_settings_validation(self):
        with self.assertRaises(ValueError):
            IndicatorSettings(ema_fast=21, ema_slow=9)


if __name__ == "__main__":
    unittest.main()
