"""discord.py gateway client — receives chat commands, owns the scheduler lifecycle."""

from __future__ import annotations

import discord
import structlog

from realmwatch.bot.commands import CommandRouter
from realmwatch.monitor.scheduler import MonitorScheduler

logger = structlog.get_logger(__name__)


def default_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    return intents


class RealmWatchBot(discord.Client):
    """Routes incoming messages to the CommandRouter.

    The scheduler is started once the gateway session is ready and stopped
    when the client closes.
    """

    def __init__(
        self,
        scheduler: MonitorScheduler,
        router: CommandRouter,
        intents: discord.Intents | None = None,
    ) -> None:
        super().__init__(intents=intents or default_intents())
        self._scheduler = scheduler
        self._router = router
        self._scheduler_started = False

    async def on_ready(self) -> None:
        logger.info("discord_ready", user=str(self.user))
        # on_ready fires again after every reconnect.
        if self._scheduler_started:
            return
        self._scheduler_started = True
        await self._scheduler.start()

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        reply = await self._router.handle(message.content, str(message.channel.id))
        if reply:
            await message.channel.send(reply)

    async def close(self) -> None:
        if self._scheduler_started:
            await self._scheduler.stop()
            self._scheduler_started = False
        await super().close()
