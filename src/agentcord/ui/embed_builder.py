"""
Embed construction for the createEmbed action.

Optional parts degrade instead of failing the embed: an unparseable colour
falls back to :data:`DEFAULT_EMBED_COLOR` and malformed fields are skipped.
"""

import re
from typing import Any, Iterable

import discord

from agentcord.util.logger import get_logger

logger = get_logger("embed_builder")


DEFAULT_EMBED_COLOR = discord.Color.blurple()

# Discord embed limits
MAX_TITLE = 256
MAX_DESCRIPTION = 4096
MAX_FIELDS = 25
MAX_FIELD_NAME = 256
MAX_FIELD_VALUE = 1024
MAX_FOOTER = 2048

HEX_COLOR_PATTERN = re.compile(r"^(?:#|0x)?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")


def parse_color(value: Any) -> discord.Color:
    """Parse ``#RRGGBB``, ``#RGB``, ``0xRRGGBB``, an int, or a colour name like ``red``."""
    if value is None or value == "":
        return DEFAULT_EMBED_COLOR
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value <= 0xFFFFFF:
            return discord.Color(value)
    elif isinstance(value, str):
        text = value.strip()
        match = HEX_COLOR_PATTERN.match(text)
        if match:
            digits = match.group(1)
            if len(digits) == 3:
                digits = "".join(ch * 2 for ch in digits)
            return discord.Color(int(digits, 16))
        named = None if text.startswith("_") else getattr(discord.Color, text.lower().replace(" ", "_"), None)
        if callable(named):
            try:
                color = named()
            except TypeError:
                color = None
            if isinstance(color, discord.Color):
                return color

    logger.warning("[EMBED BUILDER] Invalid embed color %r, using default", value)
    return DEFAULT_EMBED_COLOR


def _truncate(text: Any, limit: int) -> str:
    text = str(text)
    return text if len(text) <= limit else text[: limit - 1] + "…"


def add_fields(embed: discord.Embed, fields: Iterable[Any] | None) -> int:
    """Add well-formed fields to ``embed``; return how many were added."""
    added = 0
    for field in fields or ():
        if added >= MAX_FIELDS:
            logger.warning("[EMBED BUILDER] Dropping fields beyond Discord's limit of %d", MAX_FIELDS)
            break
        if not isinstance(field, dict):
            logger.warning("[EMBED BUILDER] Skipping malformed embed field %r", field)
            continue
        name, value = field.get("name"), field.get("value")
        if name in (None, "") or value in (None, ""):
            logger.warning("[EMBED BUILDER] Skipping embed field without name or value: %r", field)
            continue
        inline = field.get("inline", False)
        if isinstance(inline, str):
            inline = inline.strip().lower() in ("true", "yes", "1")
        embed.add_field(
            name=_truncate(name, MAX_FIELD_NAME),
            value=_truncate(value, MAX_FIELD_VALUE),
            inline=bool(inline),
        )
        added += 1
    return added


def build_embed(
    title: str,
    description: str,
    color: Any = None,
    fields: Iterable[Any] | None = None,
    footer: str | None = None,
    image: str | None = None,
    thumbnail: str | None = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=_truncate(title, MAX_TITLE),
        description=_truncate(description, MAX_DESCRIPTION),
        color=parse_color(color),
    )
    add_fields(embed, fields)
    if footer:
        embed.set_footer(text=_truncate(footer, MAX_FOOTER))
    if image:
        embed.set_image(url=str(image))
    if thumbnail:
        embed.set_thumbnail(url=str(thumbnail))
    return embed
