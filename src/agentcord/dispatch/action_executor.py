"""
Execute structured calls against the Discord API.

Every call returns a single human-readable string; nothing is raised to the
caller. Before any mutation the executor runs a fixed preflight, stopping at
the first failure without side effects:

1. Known action name (unknown names are rejected first).
2. Guild context: DM calls and unknown guilds are rejected.
3. Bot capability: the bot's guild permissions must include the flag the
   action needs.
4. Argument coercion into a typed record (see ``argument_coercion``).
5. Target resolution for member and channel references.
6. Role hierarchy: the bot must outrank a targeted member.

Only then is the mutation attempted. A ``discord.HTTPException`` from the
mutation becomes ``"Error: Failed to <verb> <target>."``.
"""

from __future__ import annotations

import datetime
import math
from typing import Any, Awaitable, Callable, Dict, Tuple

import discord

from agentcord.actions.action_catalog import ActionCatalog
from agentcord.datatypes.action_datatypes import ExecutionContext, StructuredCall
from agentcord.datatypes.discord_datatypes import GuildID, UserID
from agentcord.dispatch.argument_coercion import ArgumentError, coerce_arguments
from agentcord.dispatch.reference_resolver import (
    MESSAGEABLE_CHANNEL_TYPES,
    ReferenceResolver,
)
from agentcord.moderation.moderation_ledger import ModerationLedger
from agentcord.ui.embed_builder import build_embed
from agentcord.util.logger import get_logger

logger = get_logger("action_executor")


DEFAULT_REASON = "No reason provided"
DEFAULT_DELETE_REASON = "Requested by user"

DM_ERROR = "Error: This command can only be used in a server."
GUILD_NOT_FOUND_ERROR = "Error: I cannot find this server."
OLD_MESSAGES_ERROR = "Error: Messages older than 14 days cannot be bulk deleted."

MAX_BAN_DELETE_DAYS = 7
SECONDS_PER_DAY = 86400
MAX_TIMEOUT_MINUTES = 28 * 24 * 60

BULK_DELETE_LIMIT = 100
MAX_DELETE_TOTAL = 1000
BULK_DELETE_MAX_AGE = datetime.timedelta(days=14)
MESSAGE_TOO_OLD_CODE = 50034

# Actions that fall back to the invoking channel when channelId is omitted
DEFAULT_CHANNEL_ACTIONS = frozenset({"deletemessages", "createembed"})

# action key -> (discord.Permissions flag, phrase used in the error message)
REQUIRED_BOT_PERMISSIONS: Dict[str, Tuple[str, str]] = {
    "kickuser": ("kick_members", "kick members"),
    "banuser": ("ban_members", "ban members"),
    "muteuser": ("moderate_members", "timeout members"),
    "createcategory": ("manage_channels", "manage channels"),
    "createchannel": ("manage_channels", "manage channels"),
    "deletechannel": ("manage_channels", "manage channels"),
    "deletemessages": ("manage_messages", "manage messages"),
    "createembed": ("embed_links", "embed links"),
}

Handler = Callable[[discord.Guild, Dict[str, Any], ExecutionContext], Awaitable[str]]


class EscalationRefused(Exception):
    """The automatic warning timeout cannot be applied to this member."""


class BatchError(Exception):
    """A bulk-delete batch failed; the message is the user-facing error.

    ``deleted`` counts messages the batch removed before it stopped.
    """

    def __init__(self, message: str, deleted: int = 0) -> None:
        super().__init__(message)
        self.deleted = deleted


def _with_reason(reason: str | None) -> str:
    return f" for: {reason}" if reason else ""


def _format_number(value: int | float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def bot_outranks(guild: discord.Guild, member: discord.Member) -> bool:
    """Whether the bot's top role is above ``member``'s and the member is not the owner."""
    me = guild.me
    if me is None or member.id == guild.owner_id or member.id == me.id:
        return False
    return me.top_role.position > member.top_role.position


def is_moderatable(guild: discord.Guild, member: discord.Member) -> bool:
    """Whether the bot may time ``member`` out. Administrators cannot be timed out."""
    return bot_outranks(guild, member) and not member.guild_permissions.administrator


class ActionExecutor:
    """Dispatches structured calls to per-action handlers.

    Args:
        bot: Client used to look up guilds.
        catalog: Actions that may be called.
        ledger: Warning and content filter state.
        resolver: Member/channel reference resolver.
    """

    def __init__(
        self,
        bot: discord.Client,
        catalog: ActionCatalog,
        ledger: ModerationLedger,
        resolver: ReferenceResolver | None = None,
    ) -> None:
        self.bot = bot
        self.catalog = catalog
        self.ledger = ledger
        self.resolver = resolver or ReferenceResolver()
        self._handlers: Dict[str, Handler] = {
            "kickuser": self._kick_user,
            "banuser": self._ban_user,
            "muteuser": self._mute_user,
            "filtersettings": self._filter_settings,
            "warnuser": self._warn_user,
            "createcategory": self._create_category,
            "createchannel": self._create_channel,
            "deletechannel": self._delete_channel,
            "deletemessages": self._delete_messages,
            "createembed": self._create_embed,
        }

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def execute(self, call: StructuredCall, context: ExecutionContext) -> str:
        """Run ``call`` and describe the outcome."""
        definition = self.catalog.get(call.name)
        handler = self._handlers.get(definition.key) if definition else None
        if definition is None or handler is None:
            logger.info("[ACTION EXECUTOR] Rejected unknown function '%s'", call.name)
            return f"Error: Unknown function '{call.name}'."

        if context.guild_id is None:
            return DM_ERROR

        guild = self.bot.get_guild(context.guild_id.to_int())
        if guild is None:
            logger.warning("[ACTION EXECUTOR] Guild %s is not cached", context.guild_id)
            return GUILD_NOT_FOUND_ERROR

        capability_error = self._check_capability(guild, definition.key)
        if capability_error:
            return capability_error

        raw_arguments = dict(call.arguments or {})
        if (
            definition.key in DEFAULT_CHANNEL_ACTIONS
            and not str(raw_arguments.get("channelId") or "").strip()
            and context.default_channel_id is not None
        ):
            raw_arguments["channelId"] = str(context.default_channel_id)

        try:
            arguments = coerce_arguments(definition, raw_arguments)
        except ArgumentError as exc:
            return str(exc)

        logger.info(
            "[ACTION EXECUTOR] Executing %s in guild %s for user %s with %s",
            definition.name, guild.id, context.invoking_user_id, arguments,
        )
        try:
            return await handler(guild, arguments, context)
        except Exception:
            logger.exception("[ACTION EXECUTOR] Unexpected failure while executing %s", definition.name)
            return f"Error: Failed to execute {definition.name}."

    def _check_capability(self, guild: discord.Guild, action_key: str) -> str | None:
        requirement = REQUIRED_BOT_PERMISSIONS.get(action_key)
        if requirement is None:
            return None
        flag, phrase = requirement
        me = guild.me
        if me is None or not getattr(me.guild_permissions, flag, False):
            logger.info("[ACTION EXECUTOR] Missing bot permission %s in guild %s", flag, guild.id)
            return f"Error: I don't have permission to {phrase}."
        return None

    # ------------------------------------------------------------------
    # Member actions
    # ------------------------------------------------------------------

    async def _kick_user(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        member = await self.resolver.resolve_member(guild, args["userId"])
        if member is None:
            return f"Error: Could not find user '{args['userId']}'."
        if not bot_outranks(guild, member):
            return f"Error: I cannot kick {member.name} due to permission hierarchy."

        reason = args.get("reason")
        try:
            await member.kick(reason=reason or DEFAULT_REASON)
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to kick %s: %s", member.id, exc)
            return f"Error: Failed to kick {member.name}."
        return f"Successfully kicked {member.name}{_with_reason(reason)}."

    async def _ban_user(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        member = await self.resolver.resolve_member(guild, args["userId"])
        if member is None:
            return f"Error: Could not find user '{args['userId']}'."
        if not bot_outranks(guild, member):
            return f"Error: I cannot ban {member.name} due to permission hierarchy."

        reason = args.get("reason")
        days = min(max(args.get("deleteMessageDays", 0), 0), MAX_BAN_DELETE_DAYS)
        try:
            await member.ban(delete_message_seconds=int(days * SECONDS_PER_DAY), reason=reason or DEFAULT_REASON)
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to ban %s: %s", member.id, exc)
            return f"Error: Failed to ban {member.name}."
        return f"Successfully banned {member.name}{_with_reason(reason)}."

    async def _mute_user(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        duration = args["duration"]
        if duration <= 0:
            return "Error: Duration must be a positive number of minutes."
        if duration > MAX_TIMEOUT_MINUTES:
            logger.info("[ACTION EXECUTOR] Capping timeout of %s minutes to %s", duration, MAX_TIMEOUT_MINUTES)
            duration = MAX_TIMEOUT_MINUTES

        member = await self.resolver.resolve_member(guild, args["userId"])
        if member is None:
            return f"Error: Could not find user '{args['userId']}'."
        if not is_moderatable(guild, member):
            return f"Error: I cannot timeout {member.name} due to permission hierarchy."

        reason = args.get("reason")
        try:
            await member.timeout_for(datetime.timedelta(minutes=duration), reason=reason or DEFAULT_REASON)
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to timeout %s: %s", member.id, exc)
            return f"Error: Failed to timeout {member.name}."
        return f"Successfully timed out {member.name} for {_format_number(duration)} minute(s){_with_reason(reason)}."

    async def _filter_settings(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        invoker = await self.resolver.resolve_member(guild, str(context.invoking_user_id))
        if invoker is None or not invoker.guild_permissions.administrator:
            return "Error: You need administrator permission to change the content filter."

        enabled = args["enabled"]
        await self.ledger.set_filter_enabled(GuildID(guild.id), enabled)
        return f"Content filter has been {'enabled' if enabled else 'disabled'} for this server."

    async def _warn_user(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        member = await self.resolver.resolve_member(guild, args["userId"])
        if member is None:
            return f"Error: Could not find user '{args['userId']}'."
        return await self.issue_warning(guild, member, args["reason"])

    async def issue_warning(self, guild: discord.Guild, member: discord.Member, reason: str) -> str:
        """Record a warning for ``member`` and escalate to a timeout at the threshold."""

        async def apply_timeout(minutes: int, timeout_reason: str) -> None:
            if self._check_capability(guild, "muteuser") or not is_moderatable(guild, member):
                raise EscalationRefused(f"cannot timeout {member.name}")
            await member.timeout_for(datetime.timedelta(minutes=minutes), reason=timeout_reason)

        outcome = await self.ledger.warn(GuildID(guild.id), UserID(member.id), reason, apply_timeout)
        return outcome.describe(member.name, reason)

    # ------------------------------------------------------------------
    # Channel actions
    # ------------------------------------------------------------------

    async def _create_category(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        name = args["name"]
        kwargs: Dict[str, Any] = {}
        if "position" in args:
            kwargs["position"] = max(int(args["position"]), 0)
        try:
            category = await guild.create_category(name, **kwargs)
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to create category %s: %s", name, exc)
            return f"Error: Failed to create category '{name}'."
        return f"Successfully created category '{category.name}'."

    async def _create_channel(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        name, channel_type = args["name"], args["type"]

        category = None
        if "categoryId" in args:
            category = await self.resolver.resolve_category(guild, args["categoryId"])
            if category is None:
                return f"Error: Could not find category '{args['categoryId']}'."

        kwargs: Dict[str, Any] = {"category": category}
        if channel_type in ("text", "announcement") and args.get("topic"):
            kwargs["topic"] = args["topic"]

        try:
            if channel_type == "voice":
                channel = await guild.create_voice_channel(name, **kwargs)
            else:
                channel = await guild.create_text_channel(name, **kwargs)
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to create %s channel %s: %s", channel_type, name, exc)
            return f"Error: Failed to create channel '{name}'."

        if channel_type == "announcement":
            try:
                await channel.edit(type=discord.ChannelType.news)
            except discord.HTTPException as exc:
                logger.warning("[ACTION EXECUTOR] Could not convert %s to announcement: %s", channel.id, exc)
                return (
                    f"Created text channel '{channel.name}', but could not make it an announcement channel "
                    "(the server may need Community enabled)."
                )

        location = f" in category '{category.name}'" if category is not None else ""
        return f"Successfully created {channel_type} channel '{channel.name}'{location}."

    async def _delete_channel(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        channel = await self.resolver.resolve_channel(guild, args["channelId"])
        if channel is None:
            return f"Error: Could not find channel '{args['channelId']}'."

        reason = args.get("reason")
        try:
            await channel.delete(reason=reason or DEFAULT_REASON)
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to delete channel %s: %s", channel.id, exc)
            return f"Error: Failed to delete channel '{channel.name}'."
        return f"Successfully deleted channel '{channel.name}'{_with_reason(reason)}."

    async def _delete_messages(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        amount = args["amount"]
        if amount < 1:
            return "Error: Amount must be a positive number"
        total = min(int(amount), MAX_DELETE_TOTAL)

        if "channelId" not in args:
            return "Error: Missing required argument 'channelId' for deleteMessages."
        channel = await self.resolver.resolve_channel(guild, args["channelId"], kinds=MESSAGEABLE_CHANNEL_TYPES)
        if channel is None:
            return f"Error: Could not find channel '{args['channelId']}'."

        reason = args.get("reason") or DEFAULT_DELETE_REASON
        if total > BULK_DELETE_LIMIT and context.notify is not None:
            batches = math.ceil(total / BULK_DELETE_LIMIT)
            await context.notify(
                f"Attempting to delete {total} messages in {batches} batches. This may take a moment..."
            )

        deleted = 0
        while deleted < total:
            batch_size = min(BULK_DELETE_LIMIT, total - deleted)
            try:
                batch_deleted = await self._delete_batch(channel, batch_size, reason)
            except BatchError as exc:
                deleted += exc.deleted
                if deleted == 0:
                    return str(exc)
                return f"Partially completed. Deleted {deleted} messages. Stopped due to: {exc}"
            deleted += batch_deleted
            if batch_deleted < batch_size:
                break

        logger.info("[ACTION EXECUTOR] Deleted %d message(s) in channel %s", deleted, channel.id)
        return f"Successfully deleted {deleted} message(s) from the channel."

    @staticmethod
    async def _delete_batch(channel, limit: int, reason: str) -> int:
        """Bulk-delete up to ``limit`` of the newest messages; return how many went.

        Messages past the bulk-delete age limit stop the run: the recent part
        of the batch is still deleted, then ``BatchError`` reports the rest.
        """
        cutoff = discord.utils.utcnow() - BULK_DELETE_MAX_AGE
        try:
            messages = await channel.history(limit=limit).flatten()
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to read history of %s: %s", channel.id, exc)
            raise BatchError(f"Error: Failed to read messages in #{channel.name}.") from exc

        recent = [m for m in messages if m.created_at > cutoff]
        if not recent:
            if messages:
                raise BatchError(OLD_MESSAGES_ERROR)
            return 0

        try:
            await channel.delete_messages(recent, reason=reason)
        except discord.HTTPException as exc:
            if getattr(exc, "code", None) == MESSAGE_TOO_OLD_CODE:
                raise BatchError(OLD_MESSAGES_ERROR) from exc
            logger.error("[ACTION EXECUTOR] Bulk delete failed in %s: %s", channel.id, exc)
            raise BatchError(f"Error: Failed to delete messages in #{channel.name}.") from exc

        if len(recent) < len(messages):
            logger.info(
                "[ACTION EXECUTOR] Skipped %d message(s) older than 14 days in %s",
                len(messages) - len(recent), channel.id,
            )
            raise BatchError(OLD_MESSAGES_ERROR, deleted=len(recent))
        return len(recent)

    async def _create_embed(self, guild: discord.Guild, args: Dict[str, Any], context: ExecutionContext) -> str:
        channel = await self.resolver.resolve_channel(guild, args["channelId"], kinds=MESSAGEABLE_CHANNEL_TYPES)
        if channel is None:
            return f"Error: Could not find channel '{args['channelId']}'."

        embed = build_embed(
            title=args["title"],
            description=args["description"],
            color=args.get("color"),
            fields=args.get("fields"),
            footer=args.get("footer"),
            image=args.get("image"),
            thumbnail=args.get("thumbnail"),
        )
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to send embed to %s: %s", channel.id, exc)
            return f"Error: Failed to send embed to #{channel.name}."
        return f"Successfully sent embed to #{channel.name}."
