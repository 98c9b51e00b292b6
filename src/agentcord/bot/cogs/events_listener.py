"""Event listener Cog for Agentcord: bot lifecycle events."""

import discord
from discord.ext import commands

from agentcord.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Handles Discord bot lifecycle events."""

    def __init__(self, bot: discord.Bot, command_prefix: str) -> None:
        self.bot = bot
        self.command_prefix = command_prefix
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        """Set bot presence and log the connection."""
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected, user info not yet available.")
            return

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(
                type=discord.ActivityType.listening,
                name=f"\"{self.command_prefix} ...\"",
            ),
        )
        logger.info(
            "Bot connected as %s (ID: %s) in %d guild(s)",
            self.bot.user, self.bot.user.id, len(self.bot.guilds),
        )

    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild) -> None:
        logger.info("[EVENTS LISTENER] Joined guild: %s (ID: %s)", guild.name, guild.id)

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        logger.info("[EVENTS LISTENER] Removed from guild: %s (ID: %s)", guild.name, guild.id)


def setup(bot: discord.Bot, command_prefix: str) -> None:
    """Register the EventsListenerCog with the bot."""
    bot.add_cog(EventsListenerCog(bot, command_prefix))
