"""
CMDR Kael - Commands Package
Keyword chat commands, grouped by what they manage.
"""

import logger as log
from constants import STORE_UNAVAILABLE
from storage import KVError

from .delivery import handle_delivery_command
from .persona import handle_persona_command
from .memory import handle_memory_command

HANDLERS = (handle_delivery_command, handle_persona_command, handle_memory_command)


async def handle_command(bot_instance, message, text: str) -> bool:
    """Run the first matching command. True if the message was consumed."""
    for handler in HANDLERS:
        try:
            handled = await handler(bot_instance, message, text)
        except KVError as e:
            log.warn(f"{handler.__name__} could not reach storage: {e}", "commands")
            await message.reply(STORE_UNAVAILABLE)
            return True
        if handled:
            return True
    return False
