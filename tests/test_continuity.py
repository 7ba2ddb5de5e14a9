import threading
import unittest
from datetime import timedelta

from signal_engine import Action, ContinuityKey, InMemoryContinuityStore
from tests.helpers import START

KEY = ContinuityKey("BTCUSDT", "15m", "classic")


class TestInMemoryContinuityStore(unittest.TestCase):
    def test_repeated_action_keeps_start_time(self):
        store = InMemoryContinuityStore()
        store.observe(KEY, Action.BUY, START)
        record = store.observe(KEY, Action.BUY, START + timedelta(minutes=15))
        self.assertEqual(record.since, START)
        self.assertEqual(record.age_seconds(START + timedelta(minutes=15)), 900)

    def test_changed_action_resets(self):
        store = InMemoryContinuityStore()
        store.observe(KEY, Action.BUY, START)
        later = START + timedelta(minutes=30)
        record = store.observe(KEY, Action.WAIT, later)
        self.assertEqual(record.since, later)
        self.assertEqual(record.age_seconds(later), 0)

    def test_keys_are_independent(self):
        store = InMemoryContinuityStore()
        store.observe(KEY, Action.BUY, START)
        other = KEY._replace(strategy="smc")
        record = store.observe(other, Action.BUY, START + timedelta(minutes=5))
        self.assertEqual(record.since, START + timedelta(minutes=5))
        self.assertEqual(len(store), 2)

    def test_ttl_expires_stale_keys(self):
        store = InMemoryContinuityStore(ttl_seconds=600)
        store.observe(KEY, Action.SELL, START)
        later = START + timedelta(minutes=20)
        record = store.observe(KEY, Action.SELL, later)
        self.assertEqual(record.since, later)

    def test_ttl_refreshed_by_observation(self):
        store = InMemoryContinuityStore(ttl_seconds=600)
        store.observe(KEY, Action.SELL, START)
        store.observe(KEY, Action.SELL, START + timedelta(minutes=8))
        record = store.observe(KEY, Action.SELL, START + timedelta(minutes=16))
        self.assertEqual(record.since, START)

    def test_clock_going_backwards_resets(self):
        store = InMemoryContinuityStore()
        store.observe(KEY, Action.BUY, START)
        earlier = START - timedelta(minutes=1)
        record = store.observe(KEY, Action.BUY, earlier)
        self.assertEqual(record.since, earlier)
        self.assertEqual(record.age_seconds(earlier), 0)

    def test_get_and_clear(self):
        store = InMemoryContinuityStore()
        self.assertIsNone(store.get(KEY))
        store.observe(KEY, Action.BUY, START)
        self.assertIs(store.get(KEY).action, Action.BUY)
        store.clear()
        self.assertIsNone(store.get(KEY))

    def test_invalid_ttl(self):
        with self.assertRaises(ValueError):
            InMemoryContinuityStore(ttl_seconds=0)

    def test_concurrent_observers(self):
        store = InMemoryContinuityStore()
        keys = [ContinuityKey(f"SYM{i}USDT", "15m", "classic") for i in range(20)]

        def worker(key):
            for minute in range(10):
                store.observe(key, Action.BUY, START + timedelta(minutes=minute))

        threads = [threading.Thread(target=worker, args=(key,)) for key in keys]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(store), 20)
        for key in keys:
            self.assertEqual(store.get(key).since, START)


if __name__ == "__main__":
    unittest.main()
