import unittest

from signal_engine import Action, TradeSetupSettings, atr_trade_setup, price_precision, structure_trade_setup


class TestPricePrecision(unittest.TestCase):
    def test_tiers(self):
        self.assertEqual(price_precision(64000.0), 2)
        self.assertEqual(price_precision(1000.0), 2)
        self.assertEqual(price_precision(2.5), 4)
        self.assertEqual(price_precision(0.35), 6)


class TestAtrTradeSetup(unittest.TestCase):
    def test_buy(self):
        setup = atr_trade_setup(Action.BUY, 100.0, 2.0)
        self.assertEqual((setup.stop_loss, setup.target1, setup.target2), (98.0, 103.0, 105.0))
        self.assertEqual(setup.risk_reward, 1.5)
        self.assertTrue(setup.stop_loss < setup.entry < setup.target1 <= setup.target2)

    def test_sell(self):
        setup = atr_trade_setup(Action.SELL, 100.0, 2.0)
        self.assertEqual((setup.stop_loss, setup.target1, setup.target2), (102.0, 97.0, 95.0))
        self.assertTrue(setup.stop_loss > setup.entry > setup.target1 >= setup.target2)

    def test_missing_atr_falls_back_to_one_percent(self):
        setup = atr_trade_setup(Action.BUY, 100.0, None)
        self.assertEqual((setup.stop_loss, setup.target1, setup.target2), (99.0, 101.5, 102.5))

    def test_non_entry_actions(self):
        for action in (Action.WAIT, Action.EXIT_BUY, Action.EXIT_SELL):
            self.assertIsNone(atr_trade_setup(action, 100.0, 2.0))

    def test_rounding_collapse_gives_no_setup(self):
        self.assertIsNone(atr_trade_setup(Action.BUY, 0.5, 1e-9))

    def test_settings_validation(self):
        with self.assertRaises(ValueError):
            TradeSetupSettings(target1_atr_multiple=3.0, target2_atr_multiple=2.0)


class TestStructureTradeSetup(unittest.TestCase):
    def test_levels_drive_stop_and_targets(self):
        setup = structure_trade_setup(
            Action.BUY, 100.0, 1.0, support=[99.0, 95.0], resistance=[102.0, 104.0]
        )
        self.assertEqual(setup.stop_loss, 98.8)
        self.assertEqual((setup.target1, setup.target2), (102.0, 104.0))
        self.assertEqual(setup.risk_reward, 1.67)

    def test_close_target_is_skipped_for_reward(self):
        setup = structure_trade_setup(Action.BUY, 100.0, 1.0, support=[99.0], resistance=[100.5])
        self.assertEqual(setup.stop_loss, 98.8)
        self.assertEqual((setup.target1, setup.target2), (101.8, 103.0))
        self.assertGreaterEqual(setup.risk_reward, 1.0)

    def test_far_level_uses_atr_stop(self):
        setup = structure_trade_setup(Action.BUY, 100.0, 1.0, support=[90.0])
        self.assertEqual(setup.stop_loss, 99.0)

    def test_invalidation_hint_for_sell(self):
        setup = structure_trade_setup(
            Action.SELL,
            100.0,
            1.0,
            invalidation_level=101.0,
            target_levels=(98.0, 96.0),
        )
        self.assertEqual(setup.stop_loss, 101.2)
        self.assertEqual((setup.target1, setup.target2), (98.0, 96.0))
        self.assertTrue(setup.stop_loss > setup.entry > setup.target1 >= setup.target2)

    def test_wrong_side_hint_is_ignored(self):
        setup = structure_trade_setup(Action.BUY, 100.0, 1.0, invalidation_level=101.0)
        self.assertEqual(setup.stop_loss, 99.0)


if __name__ == "__main__":
    unittest.main()
