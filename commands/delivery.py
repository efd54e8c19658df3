"""
CMDR Kael - Delivery Commands
"more" and "stop" for chunked replies.
"""

import discord

from constants import CLEARED_PENDING
from discord_utils import deliver_next


async def handle_delivery_command(bot_instance, message: discord.Message, text: str) -> bool:
    pending = bot_instance.services.pending
    lower = text.lower()
    channel_id = message.channel.id

    if lower == "more" and pending.has_more(channel_id):
        await deliver_next(message, pending)
        return True

    if lower == "stop" and pending.has_more(channel_id):
        pending.clear(channel_id)
        await message.reply(CLEARED_PENDING)
        return True

    return False
