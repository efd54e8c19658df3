"""
CMDR Kael - Persona Commands
persona reset | persona tone <tone> | persona <slider> <0-10>
"""

import re

import discord

import config
import logger as log
from persona import TONES, SLIDERS

PERSONA_PREFIX = re.compile(r'^persona\s+', re.IGNORECASE)
TONE_CMD = re.compile(rf'^tone\s+({"|".join(TONES)})$', re.IGNORECASE)
SLIDER_CMD = re.compile(rf'^({"|".join(SLIDERS + ("max_history",))})\s+(\d{{1,2}})$', re.IGNORECASE)


def is_admin(user_id) -> bool:
    """Everyone is an admin when ADMIN_IDS is empty."""
    return not config.ADMIN_IDS or str(user_id) in config.ADMIN_IDS


async def _confirm(update, channel_id):
    if not await update.saved:
        log.warn(f"Persona write for {channel_id} not confirmed", "persona")


async def handle_persona_command(bot_instance, message: discord.Message, text: str) -> bool:
    if not PERSONA_PREFIX.match(text) or not is_admin(message.author.id):
        return False

    personas = bot_instance.services.personas
    channel_id = message.channel.id
    cmd = PERSONA_PREFIX.sub("", text).strip()

    if cmd.lower() == "reset":
        update = await personas.reset(channel_id)
        await _confirm(update, channel_id)
        await message.reply("Persona reset.")
        return True

    match = TONE_CMD.match(cmd)
    if match:
        tone = match.group(1).lower()
        update = await personas.patch(channel_id, {"tone": tone})
        await _confirm(update, channel_id)
        await message.reply(f"Tone set to **{tone}**.")
        return True

    match = SLIDER_CMD.match(cmd)
    if match:
        key = match.group(1).lower()
        value = max(0, min(10, int(match.group(2))))
        update = await personas.patch(channel_id, {key: value})
        await _confirm(update, channel_id)
        await message.reply(f"{key} set to **{update.persona[key]}**/10.")
        return True

    await message.reply("Persona command not recognized.")
    return True
