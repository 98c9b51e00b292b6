"""Resolve user-typed member and channel references against a guild.

A reference may be a snowflake, a mention (``<@!123>``, ``<#456>``) or a
fragment of a name. Numeric references are fetched by ID and that result is
final. Name fragments are matched case-insensitively against the guild
directory, populated once per guild on first use.

Name matching is first-match-wins in directory order: for each entry the
checks are exact name, exact nickname, name contains token, nickname contains
token, and the first entry passing any check is returned. With members named
"Alice" and "Alicia", the token "alic" resolves to whichever comes first.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

import discord

from agentcord.datatypes.discord_datatypes import ReferenceToken
from agentcord.util.logger import get_logger

logger = get_logger("reference_resolver")


MESSAGEABLE_CHANNEL_TYPES = (discord.ChannelType.text, discord.ChannelType.news)
CATEGORY_CHANNEL_TYPES = (discord.ChannelType.category,)


def _name_matches(token: str, *names: str | None) -> bool:
    candidates = [n.lower() for n in names if n]
    if any(token == n for n in candidates):
        return True
    return any(token in n for n in candidates)


def _first_match(token: str, entries: Iterable, names_of) -> object | None:
    matches = [entry for entry in entries if _name_matches(token, *names_of(entry))]
    if len(matches) > 1:
        logger.info(
            "[REFERENCE RESOLVER] Token '%s' matched %d entries, using the first (%s)",
            token, len(matches), matches[0],
        )
    return matches[0] if matches else None


class ReferenceResolver:
    """Maps :class:`ReferenceToken` values to concrete members and channels."""

    async def resolve_member(self, guild: discord.Guild, raw: object) -> discord.Member | None:
        """Return the member ``raw`` refers to, or None."""
        token = ReferenceToken.for_member(raw)
        if not token.stripped:
            return None

        if token.is_numeric:
            return await self._fetch_member(guild, int(token.stripped))

        if not guild.chunked:
            logger.debug("[REFERENCE RESOLVER] Populating member directory for guild %s", guild.id)
            try:
                await guild.chunk()
            except discord.HTTPException as exc:
                logger.warning("[REFERENCE RESOLVER] Could not populate members of guild %s: %s", guild.id, exc)

        return _first_match(token.lowered, guild.members, lambda m: (m.name, m.nick))

    async def resolve_channel(
        self,
        guild: discord.Guild,
        raw: object,
        kinds: Sequence[discord.ChannelType] | None = None,
    ):
        """Return the channel ``raw`` refers to, or None.

        Args:
            guild: Guild to search.
            raw: The reference as typed.
            kinds: When given, only channels of these types are eligible.
        """
        token = ReferenceToken.for_channel(raw)
        stripped = token.stripped.lstrip("#").strip()
        if not stripped:
            return None

        if token.is_numeric:
            channel = await self._fetch_channel(guild, int(stripped))
            if channel is not None and kinds and channel.type not in kinds:
                logger.debug("[REFERENCE RESOLVER] Channel %s has type %s, wanted %s", stripped, channel.type, kinds)
                return None
            return channel

        channels: List = list(guild.channels)
        if not channels:
            logger.debug("[REFERENCE RESOLVER] Populating channel directory for guild %s", guild.id)
            try:
                channels = list(await guild.fetch_channels())
            except discord.HTTPException as exc:
                logger.warning("[REFERENCE RESOLVER] Could not fetch channels of guild %s: %s", guild.id, exc)
                return None

        if kinds:
            channels = [c for c in channels if c.type in kinds]
        return _first_match(stripped.lower(), channels, lambda c: (c.name,))

    async def resolve_category(self, guild: discord.Guild, raw: object):
        return await self.resolve_channel(guild, raw, kinds=CATEGORY_CHANNEL_TYPES)

    @staticmethod
    async def _fetch_member(guild: discord.Guild, member_id: int) -> discord.Member | None:
        member = guild.get_member(member_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(member_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as exc:
            logger.warning("[REFERENCE RESOLVER] Failed to fetch member %s: %s", member_id, exc)
            return None

    @staticmethod
    async def _fetch_channel(guild: discord.Guild, channel_id: int):
        channel = guild.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await guild.fetch_channel(channel_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as exc:
            logger.warning("[REFERENCE RESOLVER] Failed to fetch channel %s: %s", channel_id, exc)
            return None
