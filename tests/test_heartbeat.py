from __future__ import annotations

import asyncio
import json
import threading
import unittest
from unittest import mock

import health
from constants import HEARTBEAT_KEY
from fakes import FakeClock, FakeKV
from health import create_app
from heartbeat import HeartbeatPublisher, evaluate_heartbeat, read_heartbeat
from storage import NullKV


class _BrokenKV(FakeKV):
    async def set(self, key, value, ttl=None):
        raise RuntimeError("network down")


def _identity():
    return {"bot": "Kael#0001", "user_id": "99", "ready": True}


class HeartbeatPublisherTests(unittest.IsolatedAsyncioTestCase):
    async def test_publish_writes_payload_with_ttl(self):
        kv = FakeKV()
        clock = FakeClock(1_700_000_000.5)
        publisher = HeartbeatPublisher(kv, _identity, clock=clock)

        self.assertTrue(await publisher.publish())

        self.assertEqual(kv.ttls[HEARTBEAT_KEY], 120)
        payload = json.loads(kv.data[HEARTBEAT_KEY])
        self.assertEqual(payload["ts"], 1_700_000_000_500)
        self.assertEqual(payload["bot"], "Kael#0001")
        self.assertEqual(payload["user_id"], "99")
        self.assertTrue(payload["ready"])
        self.assertEqual(payload["pid"], publisher.pid)
        self.assertEqual(payload["hostname"], publisher.hostname)
        self.assertEqual(publisher.last_payload, payload)

    async def test_publish_failure_is_swallowed(self):
        publisher = HeartbeatPublisher(_BrokenKV(), _identity)
        self.assertFalse(await publisher.publish())
        self.assertIsNotNone(publisher.last_payload)

    async def test_identity_failure_still_publishes(self):
        def broken():
            raise RuntimeError("client not ready")

        kv = FakeKV()
        publisher = HeartbeatPublisher(kv, broken)
        self.assertTrue(await publisher.publish())
        self.assertFalse(json.loads(kv.data[HEARTBEAT_KEY])["ready"])

    async def test_start_publishes_until_stopped(self):
        kv = FakeKV()
        publisher = HeartbeatPublisher(kv, _identity, interval=0.01)
        publisher.start()
        self.assertTrue(publisher.running)
        await asyncio.sleep(0.05)
        await publisher.stop()
        self.assertFalse(publisher.running)
        writes = [c for c in kv.calls if c[0] == "set"]
        self.assertGreaterEqual(len(writes), 2)

    async def test_read_heartbeat(self):
        kv = FakeKV()
        self.assertIsNone(await read_heartbeat(kv))
        kv.data[HEARTBEAT_KEY] = "not json"
        self.assertIsNone(await read_heartbeat(kv))
        kv.data[HEARTBEAT_KEY] = json.dumps({"ts": 1})
        self.assertEqual(await read_heartbeat(kv), {"ts": 1})


class EvaluateHeartbeatTests(unittest.TestCase):
    NOW = 1_700_000_000_000

    def test_never_started(self):
        result = evaluate_heartbeat(None, self.NOW)
        self.assertEqual(result["status"], "never_started")
        self.assertFalse(result["ok"])
        self.assertTrue(result["stale"])
        self.assertIsNone(result["last_heartbeat"])

    def test_fresh_and_ready(self):
        payload = {"ts": self.NOW - 5_000, "ready": True, "hostname": "h", "bot": "b",
                   "user_id": "1", "pid": 7}
        result = evaluate_heartbeat(payload, self.NOW)
        self.assertTrue(result["ok"])
        self.assertEqual(result["status"], "fresh")
        self.assertEqual(result["source_host"], "h")
        self.assertEqual(result["bot_user_id"], "1")
        self.assertEqual(result["pid"], 7)

    def test_fresh_but_not_ready(self):
        result = evaluate_heartbeat({"ts": self.NOW, "ready": False}, self.NOW)
        self.assertEqual(result["status"], "fresh")
        self.assertFalse(result["ok"])

    def test_stale(self):
        result = evaluate_heartbeat({"ts": self.NOW - 121_000, "ready": True}, self.NOW)
        self.assertEqual(result["status"], "stale")
        self.assertFalse(result["ok"])


class HealthEndpointTests(unittest.IsolatedAsyncioTestCase):
    async def test_local_payload_is_reported(self):
        publisher = HeartbeatPublisher(NullKV(), _identity)
        await publisher.publish()
        client = create_app(NullKV(), publisher).test_client()

        response = client.get("/health")

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["bot"], "Kael#0001")
        self.assertIn("env", body)

    def test_no_heartbeat_is_unavailable(self):
        client = create_app(NullKV(), HeartbeatPublisher(NullKV())).test_client()
        response = client.get("/health")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.get_json()["status"], "never_started")


class _HangingKV(FakeKV):
    def __init__(self):
        super().__init__()
        self.cancelled = threading.Event()

    async def get(self, key):
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            self.cancelled.set()
            raise


class HealthReadTimeoutTests(unittest.TestCase):
    def setUp(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self.thread.start()

    def tearDown(self):
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(timeout=2)
        self.loop.close()

    def test_timed_out_read_is_cancelled(self):
        kv = _HangingKV()
        client = create_app(kv, loop=self.loop).test_client()

        with mock.patch.object(health, "READ_TIMEOUT", 0.05):
            response = client.get("/health")

        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.get_json()["ok"])
        self.assertTrue(kv.cancelled.wait(timeout=2))


if __name__ == "__main__":
    unittest.main()
