from __future__ import annotations

import json
import unittest
from types import SimpleNamespace
from unittest import mock

from durable_store import DurableStore, KVBackend
from fakes import FakeKV
from memory import MemoryStore
from persona import PersonaStore, default_persona
from providers import AIProvider, trim_reply


def _message(content=None, tool_calls=None):
    return SimpleNamespace(content=content, tool_calls=tool_calls)


def _response(message):
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class _Tools:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def run(self, name, args):
        self.calls.append((name, args))
        return self.result


class TrimReplyTests(unittest.TestCase):
    def test_trim(self):
        self.assertEqual(trim_reply("  hi  "), "hi")
        self.assertEqual(trim_reply(None), "")
        self.assertEqual(trim_reply("x" * 20, max_chars=10), "x" * 7 + "...")


class AIProviderTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        kv = FakeKV()
        self.personas = PersonaStore(DurableStore("persona", KVBackend("persona", kv, "persona:"),
                                                  default_factory=default_persona))
        self.memories = MemoryStore(DurableStore("memory", KVBackend("memory", kv, "mem:")))
        self.create = mock.AsyncMock()
        self.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=self.create)))

    def _provider(self, tools=None):
        return AIProvider(self.personas, self.memories, tools or _Tools({}),
                          api_key="test", model="gpt-test", timeout=5, client=self.client)

    async def test_plain_reply_uses_persona_and_memories(self):
        await self.memories.remember("7", "Oblivion Fleet hit our outpost")
        self.create.return_value = _response(_message("  Copy that.  "))

        reply = await self._provider().chat([{"role": "user", "content": "status?"}],
                                            channel_id="7", user_id="42")

        self.assertEqual(reply, "Copy that.")
        kwargs = self.create.await_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-test")
        self.assertEqual(kwargs["temperature"], 0.9)
        self.assertEqual(kwargs["user"], "42")
        self.assertIn("tools", kwargs)
        system = kwargs["messages"][0]["content"]
        self.assertIn("CMDR Kael", system)
        self.assertIn("• Oblivion Fleet hit our outpost", system)
        self.assertEqual(kwargs["messages"][-1], {"role": "user", "content": "status?"})

    async def test_zero_memory_window_omits_context(self):
        await self.memories.remember("7", "secret")
        await (await self.personas.patch("7", {"max_history": 0})).saved
        self.create.return_value = _response(_message("ok"))

        await self._provider().chat([{"role": "user", "content": "hi"}], channel_id="7")

        self.assertNotIn("MEMORY CONTEXT", self.create.await_args.kwargs["messages"][0]["content"])

    async def test_tool_round_trip(self):
        tools = _Tools({"name": "Sol"})
        call = _tool_call("call_1", "toolLIVE", '{"detail": "snapshot", "system": "Sol"}')
        self.create.side_effect = [
            _response(_message(None, [call])),
            _response(_message("Sol is quiet.")),
        ]

        reply = await self._provider(tools).chat([{"role": "user", "content": "Sol?"}])

        self.assertEqual(reply, "Sol is quiet.")
        self.assertEqual(tools.calls, [("toolLIVE", '{"detail": "snapshot", "system": "Sol"}')])
        second = self.create.await_args_list[1].kwargs
        self.assertNotIn("tools", second)
        assistant, tool_message = second["messages"][-2:]
        self.assertEqual(assistant["tool_calls"][0]["id"], "call_1")
        self.assertEqual(tool_message["tool_call_id"], "call_1")
        self.assertEqual(json.loads(tool_message["content"]), {"name": "Sol"})

    async def test_completion_errors_propagate(self):
        self.create.side_effect = RuntimeError("rate limited")
        with self.assertRaises(RuntimeError):
            await self._provider().chat([{"role": "user", "content": "hi"}])


if __name__ == "__main__":
    unittest.main()
