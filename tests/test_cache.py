from __future__ import annotations

import os
import tempfile
import unittest

from cache import TTLCache
from durable_store import DurableStore, FileBackend, KVBackend
from fakes import FakeClock, FakeKV


class _Compute:
    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


class FileModeCacheTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "cache.json")
        self.clock = FakeClock()
        self.store = DurableStore("cache", FileBackend("cache", self.path, delay=0.01))
        self.cache = TTLCache(self.store, clock=self.clock)

    async def asyncTearDown(self):
        await self.store.close()
        self.tmp.cleanup()

    async def test_value_is_served_until_window_ends(self):
        compute = _Compute(42)
        self.assertEqual(await self.cache.cached("k", 60, compute), 42)
        self.clock.advance(30)
        self.assertEqual(await self.cache.cached("k", 60, compute), 42)
        self.assertEqual(compute.calls, 1)

        self.clock.advance(31)
        compute.value = 43
        self.assertEqual(await self.cache.cached("k", 60, compute), 43)
        self.assertEqual(compute.calls, 2)

    async def test_two_second_window(self):
        compute = _Compute(42)
        self.assertEqual(await self.cache.cached("k", 2, compute), 42)
        self.assertEqual(await self.cache.cached("k", 2, compute), 42)
        self.assertEqual(compute.calls, 1)
        self.clock.advance(2.5)
        self.assertEqual(await self.cache.cached("k", 2, compute), 42)
        self.assertEqual(compute.calls, 2)

    async def test_record_shape_uses_until_in_epoch_ms(self):
        await self.cache.cached("k", 60, _Compute({"a": 1}))
        record = self.store.backend.data["k"]
        self.assertEqual(record["data"], {"a": 1})
        self.assertEqual(record["until"], int(self.clock.now * 1000) + 60_000)

    async def test_failure_is_not_cached(self):
        failing = _Compute(error=RuntimeError("upstream down"))
        with self.assertRaises(RuntimeError):
            await self.cache.cached("k", 60, failing)
        self.assertNotIn("k", self.store.backend.data)

        ok = _Compute("fine")
        self.assertEqual(await self.cache.cached("k", 60, ok), "fine")
        self.assertEqual(ok.calls, 1)

    async def test_malformed_record_is_a_miss(self):
        self.store.put("k", {"data": "no until"})
        compute = _Compute("fresh")
        self.assertEqual(await self.cache.cached("k", 60, compute), "fresh")
        self.assertEqual(compute.calls, 1)

    async def test_expired_records_are_dropped_on_write(self):
        await self.cache.cached("old", 1, _Compute("a"))
        await self.cache.cached("keep", 600, _Compute("b"))
        self.clock.advance(5)

        await self.cache.cached("new", 60, _Compute("c"))

        self.assertEqual(set(self.store.backend.data), {"keep", "new"})

    async def test_stats_and_clear(self):
        compute = _Compute(1)
        await self.cache.cached("k", 60, compute)
        await self.cache.cached("k", 60, compute)
        self.assertEqual(self.cache.stats(), {"hits": 1, "misses": 1, "remote": False})
        self.assertTrue(await self.cache.clear())
        await self.cache.cached("k", 60, compute)
        self.assertEqual(compute.calls, 2)


class RemoteModeCacheTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.kv = FakeKV()
        self.store = DurableStore("cache", KVBackend("cache", self.kv, "cache:"))
        self.cache = TTLCache(self.store)

    async def test_native_expiry_and_plain_payload(self):
        compute = _Compute({"system": "Sol"})
        await self.cache.cached("edsm:sys", 300, compute)
        await self.store.drain()

        self.assertEqual(self.kv.ttls["cache:edsm:sys"], 300)
        self.assertEqual(self.kv.data["cache:edsm:sys"], '{"system": "Sol"}')

        self.assertEqual(await self.cache.cached("edsm:sys", 300, compute), {"system": "Sol"})
        self.assertEqual(compute.calls, 1)

    async def test_unreadable_backend_counts_as_miss(self):
        self.kv.data["cache:k"] = '"stale"'
        self.kv.fail_reads = True
        compute = _Compute("fresh")
        self.assertEqual(await self.cache.cached("k", 60, compute), "fresh")
        self.assertEqual(compute.calls, 1)

    async def test_clear_is_a_noop_remotely(self):
        self.assertFalse(await self.cache.clear())


if __name__ == "__main__":
    unittest.main()
