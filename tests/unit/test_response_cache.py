import unittest
from unittest.mock import MagicMock

from insightsmith.errors import CacheReadAnomaly
from insightsmith.models import ProviderDescriptor, Response, Timing
from insightsmith.utils.caching import RedisBackend, ResponseCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_response(content="insight"):
    return Response(
        query_id="q_1",
        content=content,
        confidence=0.8,
        provider=ProviderDescriptor(name="openai", model="gpt-4o"),
        timing=Timing(start=0.0, end=5.0, duration=5.0),
    )


class TestResponseCache(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = ResponseCache(max_entries=2, default_ttl=60, clock=self.clock)

    def test_miss_then_hit(self):
        self.assertIsNone(self.cache.get("k"))
        self.cache.set("k", make_response(), ttl=60)
        cached = self.cache.get("k")
        self.assertEqual(cached.content, "insight")
        self.assertTrue(cached.cached)
        self.assertEqual(self.cache.stats.hits, 1)
        self.assertEqual(self.cache.stats.misses, 1)
        self.assertEqual(self.cache.stats.sets, 1)

    def test_stored_value_is_a_snapshot(self):
        original = make_response()
        self.cache.set("k", original, ttl=60)
        original.content = "mutated"
        self.assertFalse(original.cached)
        first = self.cache.get("k")
        first.content = "also mutated"
        self.assertEqual(self.cache.get("k").content, "insight")

    def test_expired_entry_is_a_miss_and_dropped(self):
        self.cache.set("k", make_response(), ttl=10)
        self.clock.now += 9
        self.assertIsNotNone(self.cache.get("k"))
        self.clock.now += 1
        self.assertIsNone(self.cache.get("k"))
        self.assertEqual(self.cache.size(), 0)
        self.assertEqual(self.cache.stats.expirations, 1)

    def test_zero_ttl_is_not_stored(self):
        self.cache.set("k", make_response(), ttl=0)
        self.assertFalse(self.cache.has("k"))
        self.assertEqual(self.cache.size(), 0)

    def test_default_ttl_applies(self):
        self.cache.set("k", make_response())
        self.clock.now += 59
        self.assertTrue(self.cache.has("k"))
        self.clock.now += 1
        self.assertFalse(self.cache.has("k"))

    def test_eviction_is_insertion_order(self):
        self.cache.set("a", make_response("a"), ttl=60)
        self.cache.set("b", make_response("b"), ttl=60)
        # reading "a" does not protect it
        self.assertIsNotNone(self.cache.get("a"))
        self.cache.set("c", make_response("c"), ttl=60)
        self.assertFalse(self.cache.has("a"))
        self.assertTrue(self.cache.has("b"))
        self.assertTrue(self.cache.has("c"))
        self.assertEqual(self.cache.stats.evictions, 1)
        self.assertEqual(self.cache.size(), 2)

    def test_overwrite_does_not_evict(self):
        self.cache.set("a", make_response("a"), ttl=60)
        self.cache.set("b", make_response("b"), ttl=60)
        self.cache.set("a", make_response("a2"), ttl=60)
        self.assertEqual(self.cache.size(), 2)
        self.assertEqual(self.cache.get("a").content, "a2")
        self.assertEqual(self.cache.stats.evictions, 0)

    def test_clear(self):
        self.cache.set("a", make_response(), ttl=60)
        self.cache.clear()
        self.assertEqual(self.cache.size(), 0)
        self.assertIsNone(self.cache.get("a"))

    def test_summary(self):
        self.cache.set("a", make_response(), ttl=60)
        summary = self.cache.summary()
        self.assertEqual(summary["size"], 1)
        self.assertEqual(summary["max_entries"], 2)
        self.assertIn("hit_rate", summary)


class TestRedisMirror(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.client.ping.return_value = True
        self.client.get.return_value = None
        self.redis = RedisBackend(client=self.client)
        self.cache = ResponseCache(max_entries=10, clock=FakeClock(), redis=self.redis)

    def test_enabled_after_ping(self):
        self.assertTrue(self.redis.enabled)

    def test_set_writes_json_with_ttl(self):
        self.cache.set("k", make_response(), ttl=30)
        args = self.client.setex.call_args[0]
        self.assertEqual(args[0], "insightsmith:response:k")
        self.assertEqual(args[1], 30)
        self.assertIn('"content":"insight"', args[2])

    def test_local_miss_reads_mirror(self):
        self.client.get.return_value = make_response("from redis").model_dump_json()
        cached = self.cache.get("other")
        self.assertEqual(cached.content, "from redis")

    def test_invalid_payload_raises_anomaly(self):
        self.client.get.return_value = "not json"
        with self.assertRaises(CacheReadAnomaly):
            self.cache.get("k")
        self.assertEqual(self.cache.stats.anomalies, 1)

    def test_unreachable_redis_disables_mirror(self):
        client = MagicMock()
        client.ping.side_effect = ConnectionError("down")
        backend = RedisBackend(client=client)
        self.assertFalse(backend.enabled)
        self.assertIsNone(backend.get("k"))


if __name__ == '__main__':
    unittest.main()
