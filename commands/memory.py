"""
CMDR Kael - Memory Commands
remember: <note> | forget: <index or text> | memories
"""

import re

import discord

from discord_utils import deliver_in_chunks, get_user_display_name

REMEMBER_CMD = re.compile(r'^remember\s*:\s*', re.IGNORECASE)
FORGET_CMD = re.compile(r'^forget\s*:\s*', re.IGNORECASE)
LIST_CMD = re.compile(r'^memories$', re.IGNORECASE)


async def handle_memory_command(bot_instance, message: discord.Message, text: str) -> bool:
    services = bot_instance.services
    channel_id = message.channel.id

    if REMEMBER_CMD.match(text):
        note = REMEMBER_CMD.sub("", text, count=1).strip()
        if not note:
            await message.reply("`remember: <note>`")
            return True
        await services.memories.remember(channel_id, note, author=get_user_display_name(message.author))
        await message.reply("Noted.")
        return True

    if FORGET_CMD.match(text):
        target = FORGET_CMD.sub("", text, count=1).strip()
        if not target:
            await message.reply("`forget: <index or text>`")
            return True
        removed = await services.memories.forget(channel_id, target)
        await message.reply("Forgotten." if removed else "Not found.")
        return True

    if LIST_CMD.match(text):
        memories = await services.memories.list(channel_id)
        if not memories:
            await message.reply("_(no memories)_")
            return True
        body = "\n".join(f"{i}. {m['text']}" for i, m in enumerate(memories, start=1))
        await deliver_in_chunks(message, f"**Memories**\n{body}", services.pending)
        return True

    return False
