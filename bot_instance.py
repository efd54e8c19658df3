"""
CMDR Kael - Bot Instance
Encapsulates the Discord client, its services, and message handling.
"""

from typing import Dict, Optional

import discord

import config
import logger as log
from commands import handle_command
from constants import GENERIC_FAILURE, NO_RESPONSE
from discord_utils import deliver_in_chunks
from prometheus_metrics import metrics_manager
from providers import AIProvider
from services import Services


class BotInstance:
    """A single Discord bot with its own client, stores and provider."""

    def __init__(self, token: str, services: Optional[Services] = None,
                 provider: Optional[AIProvider] = None, target_channel_id: str = config.TARGET_CHANNEL_ID):
        self.token = token
        self.target_channel_id = str(target_channel_id or "")

        # Create intents
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.messages = True

        self.client = discord.Client(intents=intents)
        self.services = services or Services.create(identity=self._identity)
        self.provider = provider or AIProvider(
            self.services.personas, self.services.memories, self.services.tools,
            api_key=config.OPENAI_API_KEY, model=config.OPENAI_MODEL,
            timeout=max(config.HTTP_TIMEOUT, 60.0),
        )
        self._started = False

        self._setup_events()

    def _identity(self) -> Dict:
        user = self.client.user
        return {
            "bot": str(user) if user else None,
            "user_id": str(user.id) if user else None,
            "ready": self.client.is_ready(),
        }

    def _setup_events(self):
        """Register event handlers."""

        @self.client.event
        async def on_ready():
            log.online(f"Logged in as {self.client.user}", "bot")
            if self._started:
                return  # reconnects fire on_ready again
            self._started = True
            try:
                await self.services.start()
            except Exception as e:
                log.error(f"Service startup failed: {e}", "bot")

        @self.client.event
        async def on_message(message: discord.Message):
            await self.handle_message(message)

    def _should_handle(self, message: discord.Message) -> bool:
        if message.author.bot:
            return False
        if self.target_channel_id and str(message.channel.id) != self.target_channel_id:
            return False
        return True

    async def handle_message(self, message: discord.Message):
        """Commands first, then an LLM reply delivered in chunks."""
        if not self._should_handle(message):
            return
        text = (message.content or "").strip()
        if not text:
            return

        try:
            if await handle_command(self, message, text):
                metrics_manager.record_message("command")
                return

            metrics_manager.record_message("chat")
            async with message.channel.typing():
                reply = await self.provider.chat(
                    [{"role": "user", "content": text}],
                    channel_id=str(message.channel.id),
                    user_id=str(message.author.id),
                )
            if not reply:
                await message.reply(NO_RESPONSE)
                metrics_manager.record_response(False)
                return
            await deliver_in_chunks(message, reply, self.services.pending)
            metrics_manager.record_response(True)

        except Exception as e:
            log.error(f"Message handling failed: {type(e).__name__}: {e}", "bot")
            metrics_manager.record_response(False)
            try:
                await message.reply(GENERIC_FAILURE)
            except discord.DiscordException as send_error:
                log.error(f"Could not send failure notice: {send_error}", "bot")

    async def start(self):
        """Start the bot."""
        await self.client.start(self.token)

    async def close(self):
        """Close the Discord connection and flush every store."""
        try:
            await self.client.close()
        finally:
            await self.services.close()
