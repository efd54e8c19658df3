"""
CMDR Kael - Persona
Per-channel voice sliders, clamped whenever they change.
"""

import asyncio
from typing import Any, Dict, NamedTuple

import logger as log
from durable_store import DurableStore
from storage import KVError

TONES = ("friendly", "neutral", "gruff", "acerbic")

# field -> (type, min, max)
BOUNDS = {
    "temperature": (float, 0.2, 1.2),
    "humor": (int, 0, 10),          # dry -> playful
    "snark": (int, 0, 10),
    "formality": (int, 0, 10),      # 0 casual, 10 very formal
    "verbosity": (int, 0, 10),
    "drone": (int, 0, 10),          # storyteller cadence
    "darkness": (int, 0, 10),       # grit / gallows humor
    "colloquial": (int, 0, 10),     # contractions, fragments
    "max_history": (int, 0, 50),    # memories injected into the prompt
}

SLIDERS = ("humor", "snark", "formality", "verbosity", "drone", "darkness", "colloquial")

DEFAULT_PERSONA = {
    "temperature": 0.9,
    "humor": 4,
    "snark": 7,
    "formality": 3,
    "verbosity": 6,
    "drone": 7,
    "tone": "acerbic",
    "max_history": 10,
    "darkness": 8,
    "colloquial": 8,
}

TONE_TEXT = {
    "friendly": "measured, professional warmth",
    "neutral": "dry, clipped professionalism",
    "gruff": "hard-bitten, terse, mission-first",
    "acerbic": "acerbic, darkly pragmatic, veteran's edge",
}


class PersonaUpdate(NamedTuple):
    """Result of a persona mutation.

    ``persona`` is the clamped record that was written; ``saved`` resolves to
    True once the backend confirms the write (eventually, in remote mode).
    """
    persona: Dict[str, Any]
    saved: asyncio.Future


def default_persona() -> Dict[str, Any]:
    return dict(DEFAULT_PERSONA)


def _clamp_field(name: str, value: Any) -> Any:
    kind, low, high = BOUNDS[name]
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_PERSONA[name]
    if number != number:  # NaN
        return DEFAULT_PERSONA[name]
    number = max(low, min(high, number))
    return round(number) if kind is int else number


def clamp_persona(record: Any) -> Dict[str, Any]:
    """Return a complete persona with every field inside its bounds.

    Missing fields take defaults, unknown keys are dropped and an unknown
    tone falls back to the default tone.
    """
    source = record if isinstance(record, dict) else {}
    persona = {}
    for name in DEFAULT_PERSONA:
        if name == "tone":
            tone = str(source.get("tone", DEFAULT_PERSONA["tone"])).lower()
            persona["tone"] = tone if tone in TONES else DEFAULT_PERSONA["tone"]
        else:
            persona[name] = _clamp_field(name, source.get(name, DEFAULT_PERSONA[name]))
    return persona


class PersonaStore:
    """Persona records keyed by channel id."""

    def __init__(self, store: DurableStore):
        self.store = store

    async def _read(self, channel_id: str) -> Dict[str, Any]:
        return clamp_persona(await self.store.get(str(channel_id)))

    async def get(self, channel_id: str) -> Dict[str, Any]:
        """Persona for a channel, creating the defaults on first read.

        When the store cannot be read the defaults are returned for this
        reply only; nothing is persisted.
        """
        try:
            return await self._read(channel_id)
        except KVError as e:
            log.warn(f"Persona read failed for {channel_id}, using defaults: {e}", "persona")
            return default_persona()

    async def patch(self, channel_id: str, changes: Dict[str, Any]) -> PersonaUpdate:
        """Merge changes into the channel's persona, clamp, and persist.

        Raises KVError without writing when the current persona is unreadable.
        """
        current = await self._read(channel_id)
        persona = clamp_persona({**current, **changes})
        return PersonaUpdate(persona, self.store.put(str(channel_id), persona))

    async def reset(self, channel_id: str) -> PersonaUpdate:
        persona = default_persona()
        return PersonaUpdate(persona, self.store.put(str(channel_id), persona))


def persona_text(p: Dict[str, Any]) -> str:
    """Compose the persona override block for the system prompt."""
    tone_text = TONE_TEXT.get(p.get("tone"), TONE_TEXT["acerbic"])

    vibe = "\n".join([
        f"TONE: {tone_text}.",
        f"HUMOR: {p['humor']}/10 (dry; never goofy).",
        f"SNARK: {p['snark']}/10 (cutting, not cruel).",
        f"FORMALITY: {p['formality']}/10 (lower = casual).",
        f"VERBOSITY: {p['verbosity']}/10 (be concise; chunk long answers).",
        f"DRONE: {p['drone']}/10 (story cadence; war-worn).",
        f"DARKNESS: {p['darkness']}/10 (grit allowed, no gore/edgelord).",
        f"COLLOQUIAL: {p['colloquial']}/10 (contractions, lived-in voice).",
        f"MEMORY WINDOW: {p['max_history']} recent items.",
    ])

    return "\n".join([
        "VOICE & CADENCE",
        vibe,
        "NON-NEGOTIABLES",
        "- Serve Space Force and Black Sun Crew first.",
        "- In LTT 14850, Black Sun Crew cannot retreat. Treat this as canonical.",
        "- Contempt for Oblivion Fleet is cold and strategic, never juvenile.",
        "- No 'as an AI'. No corporate chirp. No excessive politeness.",
        "- When uncertain, say so and propose a verification step.",
        "DELIVERY",
        "- Default to tight bullets and numbered actions.",
        "- Lead with the objective; then intel; then actions; then risks/counters.",
        "- Offer 'more' to expand if the answer runs long.",
    ])


def model_params(p: Dict[str, Any]) -> Dict[str, float]:
    """Map persona sliders to sampling parameters."""
    temperature = max(0.2, min(1.2, float(p["temperature"])))
    # more drone -> a bit more presence; more colloquial -> a touch less frequency penalty
    presence_penalty = (p["drone"] - 5) * 0.05
    frequency_penalty = (p["verbosity"] - 5) * 0.03 - (p["colloquial"] - 5) * 0.01
    return {
        "temperature": temperature,
        "presence_penalty": round(presence_penalty, 4),
        "frequency_penalty": round(frequency_penalty, 4),
    }
