"""Message listener Cog for Agentcord.

This cog listens to Discord message events. It runs the content filter for
guilds that enabled it, then hands the text to the CommandDispatcher and
replies with whatever string comes back.

Each message is handled in its own task by py-cord; nothing here is shared
between messages except the ledger.
"""

import discord
from discord.ext import commands

from agentcord.configuration.persona import PersonaSettings
from agentcord.datatypes.action_datatypes import ExecutionContext
from agentcord.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from agentcord.dispatch.action_executor import ActionExecutor
from agentcord.dispatch.command_dispatcher import CommandDispatcher
from agentcord.moderation.content_filter import FILTER_REPLY, FILTER_WARNING_REASON, ContentFilter
from agentcord.moderation.moderation_ledger import ModerationLedger
from agentcord.util.logger import get_logger

logger = get_logger("message_listener_cog")


MAX_REPLY_LENGTH = 2000


async def send_reply(message: discord.Message, text: str) -> None:
    """Reply to ``message``, posting plainly if it has been deleted meanwhile.

    deleteMessages can remove the command message itself before the result is sent.
    """
    await message.channel.send(text, reference=message.to_reference(fail_if_not_exists=False))


def build_context(message: discord.Message) -> ExecutionContext:
    """Derive the executor context from a Discord message."""

    async def notify(text: str) -> None:
        await send_reply(message, text)

    return ExecutionContext(
        guild_id=GuildID(message.guild.id) if message.guild else None,
        invoking_user_id=UserID(message.author.id),
        default_channel_id=ChannelID(message.channel.id),
        notify=notify,
    )


class MessageListenerCog(commands.Cog):
    """
    Event listener that routes messages through the dispatcher.

    Parameters
    ----------
    bot:
        Discord bot instance.
    dispatcher:
        Resolves message text into a reply.
    executor:
        Used directly for content-filter warnings.
    ledger:
        Tells whether a guild has the content filter enabled.
    content_filter:
        Patterns checked in filtered guilds.
    persona:
        Supplies the general error reply.
    """

    def __init__(
        self,
        bot: discord.Bot,
        dispatcher: CommandDispatcher,
        executor: ActionExecutor,
        ledger: ModerationLedger,
        content_filter: ContentFilter,
        persona: PersonaSettings,
    ) -> None:
        self.bot = bot
        self._dispatcher = dispatcher
        self._executor = executor
        self._ledger = ledger
        self._content_filter = content_filter
        self._persona = persona
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        """Filter, dispatch, reply."""
        if message.author.bot:
            return

        if await self._apply_content_filter(message):
            return

        bot_user = self.bot.user
        bot_mentioned = bot_user is not None and any(u.id == bot_user.id for u in message.mentions)

        try:
            reply = await self._dispatcher.handle(
                message.content,
                build_context(message),
                bot_mentioned,
                bot_user_id=bot_user.id if bot_user else None,
            )
        except Exception:
            logger.exception("[MESSAGE LISTENER] Error processing message %s", message.id)
            reply = self._persona.general_error

        if reply:
            await self._reply(message, reply)

    async def _apply_content_filter(self, message: discord.Message) -> bool:
        """Warn the author when the filter matches; return True if it did."""
        guild = message.guild
        if guild is None or not self._ledger.is_filter_enabled(GuildID(guild.id)):
            return False
        if not self._content_filter.matches(message.content):
            return False

        if isinstance(message.author, discord.Member):
            outcome = await self._executor.issue_warning(guild, message.author, FILTER_WARNING_REASON)
            logger.info("[MESSAGE LISTENER] Content filter hit in guild %s: %s", guild.id, outcome)
        await self._reply(message, FILTER_REPLY)
        return True

    @staticmethod
    async def _reply(message: discord.Message, text: str) -> None:
        if len(text) > MAX_REPLY_LENGTH:
            text = text[: MAX_REPLY_LENGTH - 1] + "…"
        try:
            await send_reply(message, text)
        except discord.HTTPException as exc:
            logger.error("[MESSAGE LISTENER] Failed to reply to message %s: %s", message.id, exc)


def setup(
    bot: discord.Bot,
    dispatcher: CommandDispatcher,
    executor: ActionExecutor,
    ledger: ModerationLedger,
    content_filter: ContentFilter,
    persona: PersonaSettings,
) -> None:
    """Register the MessageListenerCog with the bot."""
    bot.add_cog(MessageListenerCog(bot, dispatcher, executor, ledger, content_filter, persona))
