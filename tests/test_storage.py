from __future__ import annotations

import asyncio
import unittest

import aiohttp

from storage import KVError, NullKV, UpstashKV, make_kv


class _Response:
    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload
        self._text = text

    async def text(self):
        return self._text

    async def json(self, content_type=None):
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _Session:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.requests = []
        self.closed = False

    def post(self, url, json=None, headers=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)

    async def close(self):
        self.closed = True


class NullKVTests(unittest.IsolatedAsyncioTestCase):
    async def test_reads_miss_and_writes_succeed(self):
        kv = NullKV()
        self.assertFalse(kv.configured)
        self.assertTrue(await kv.set("k", "v", 10))
        self.assertIsNone(await kv.get("k"))
        self.assertTrue(await kv.delete("k"))


class MakeKVTests(unittest.TestCase):
    def test_missing_credentials_fall_back(self):
        self.assertIsInstance(make_kv("", "token"), NullKV)
        self.assertIsInstance(make_kv("https://x.upstash.io", ""), NullKV)

    def test_credentials_build_remote(self):
        kv = make_kv("https://x.upstash.io/", "token", timeout=5)
        self.assertIsInstance(kv, UpstashKV)
        self.assertEqual(kv.url, "https://x.upstash.io")
        self.assertTrue(kv.configured)


class UpstashKVTests(unittest.IsolatedAsyncioTestCase):
    def _kv(self, session):
        return UpstashKV("https://x.upstash.io", "secret", session=session)

    async def test_set_with_ttl_sends_ex(self):
        session = _Session(_Response(payload={"result": "OK"}))
        self.assertTrue(await self._kv(session).set("health:heartbeat", "{}", 120))
        request = session.requests[0]
        self.assertEqual(request["json"], ["SET", "health:heartbeat", "{}", "EX", 120])
        self.assertEqual(request["headers"]["Authorization"], "Bearer secret")

    async def test_set_without_ttl(self):
        session = _Session(_Response(payload={"result": "OK"}))
        await self._kv(session).set("k", "v")
        self.assertEqual(session.requests[0]["json"], ["SET", "k", "v"])

    async def test_get_returns_string_or_none(self):
        session = _Session(
            _Response(payload={"result": "value"}),
            _Response(payload={"result": None}),
            _Response(payload={"result": {"nested": 1}}),
        )
        kv = self._kv(session)
        self.assertEqual(await kv.get("a"), "value")
        self.assertIsNone(await kv.get("b"))
        self.assertEqual(await kv.get("c"), '{"nested": 1}')

    async def test_http_error_fails_reads_and_writes(self):
        session = _Session(_Response(status=500, text="boom"), _Response(status=401))
        kv = self._kv(session)
        with self.assertRaises(KVError):
            await kv.get("a")
        self.assertFalse(await kv.set("a", "v"))

    async def test_error_payload_fails_delete(self):
        session = _Session(_Response(payload={"error": "WRONGTYPE"}))
        self.assertFalse(await self._kv(session).delete("a"))

    async def test_transport_failures(self):
        kv = self._kv(_Session(error=aiohttp.ClientConnectionError("refused")))
        with self.assertRaises(KVError):
            await kv.get("a")
        kv = self._kv(_Session(error=asyncio.TimeoutError()))
        self.assertFalse(await kv.set("a", "v", 5))

    async def test_command_raises_kv_error(self):
        kv = self._kv(_Session(_Response(payload=["not", "a", "dict"])))
        with self.assertRaises(KVError):
            await kv._command("GET", "a")

    async def test_close_leaves_borrowed_session_open(self):
        session = _Session()
        await self._kv(session).close()
        self.assertFalse(session.closed)


if __name__ == "__main__":
    unittest.main()
