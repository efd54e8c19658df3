"""
CMDR Kael - AI Provider
OpenAI-compatible chat with persona, memory context and tool calls.
"""

import asyncio
import json
import logging
import time
from typing import List, Optional

from openai import AsyncOpenAI

from character import build_system_prompt
from constants import LLM_REPLY_MAX_CHARS, DEFAULT_MEMORY_CONTEXT
from memory import MemoryStore
from persona import PersonaStore, persona_text, model_params
from prometheus_metrics import metrics_manager
from tools import TOOL_SPECS, ToolRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)-8s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger("providers")


def trim_reply(text: str, max_chars: int = LLM_REPLY_MAX_CHARS) -> str:
    if not text:
        return ""
    text = text.strip()
    return text[:max_chars - 3] + "..." if len(text) > max_chars else text


class AIProvider:
    """Single OpenAI chat provider with one round of tool calls."""

    def __init__(self, personas: PersonaStore, memories: MemoryStore, tools: ToolRegistry,
                 api_key: str, model: str, timeout: float = 60.0, client: Optional[AsyncOpenAI] = None):
        self.personas = personas
        self.memories = memories
        self.tools = tools
        self.model = model
        self.timeout = timeout
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout)
        logger.info(f"AIProvider ready | model={model} | timeout={timeout}s")

    async def _complete(self, messages: List[dict], params: dict, with_tools: bool):
        kwargs = dict(model=self.model, messages=messages, **params)
        if with_tools:
            kwargs["tools"] = TOOL_SPECS
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(**kwargs),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            metrics_manager.record_llm_request("timeout", time.monotonic() - started)
            logger.error(f"✗ TIMEOUT after {self.timeout}s")
            raise
        except Exception:
            metrics_manager.record_llm_request("error", time.monotonic() - started)
            logger.exception("✗ Chat completion failed")
            raise
        metrics_manager.record_llm_request("ok", time.monotonic() - started)
        return response.choices[0].message

    async def chat(self, user_messages: List[dict], channel_id: str = "global", user_id: str = None) -> str:
        """Generate a reply for a channel, running any requested tools once."""
        persona = await self.personas.get(channel_id)
        memory_text = await self.memories.context(channel_id, persona.get("max_history", DEFAULT_MEMORY_CONTEXT))
        system = build_system_prompt(persona_text(persona), memory_text)
        params = model_params(persona)
        if user_id:
            params["user"] = str(user_id)

        messages = [{"role": "system", "content": system}] + list(user_messages)
        logger.debug(f"Sending {len(messages)} messages for channel {channel_id}, temp={params['temperature']}")
        first = await self._complete(messages, params, with_tools=True)

        calls = first.tool_calls or []
        if not calls:
            return trim_reply(first.content or "")

        messages.append({
            "role": "assistant",
            "content": first.content or "",
            "tool_calls": [
                {"id": c.id, "type": "function",
                 "function": {"name": c.function.name, "arguments": c.function.arguments or "{}"}}
                for c in calls
            ],
        })
        for call in calls:
            logger.info(f"Tool call: {call.function.name}({call.function.arguments})")
            result = await self.tools.run(call.function.name, call.function.arguments)
            messages.append({
                "role": "tool",
                "tool_call_id": call.id,
                "content": json.dumps(result, ensure_ascii=False, default=str)[:20000],
            })

        second = await self._complete(messages, params, with_tools=False)
        return trim_reply(second.content or "")
