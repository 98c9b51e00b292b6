"""
Type-safe wrappers for Discord identifiers and user-supplied references.

Snowflakes travel through the dispatcher as strings (they arrive that way from
both the text parser and the language model) and are converted to integers
only at the Discord API boundary.
"""

from __future__ import annotations

from typing import Union


class Snowflake:
    """
    Base wrapper for a Discord snowflake ID.

    The value is stored as a normalised decimal string so that IDs coming from
    JSON, regex captures and ``discord.py`` objects compare equal.

    Example:
        >>> gid = GuildID(123456789012345678)
        >>> gid == "123456789012345678"
        True
        >>> gid.to_int()
        123456789012345678
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_object(cls, obj) -> "Snowflake":
        """Create an ID from any Discord object exposing ``.id``."""
        return cls(obj.id)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._value))


class GuildID(Snowflake):
    """Snowflake of a Discord guild."""

    __slots__ = ()


class UserID(Snowflake):
    """Snowflake of a Discord user or member."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Snowflake of a Discord channel or category."""

    __slots__ = ()


class ReferenceToken:
    """
    A raw reference to a member or channel as a human (or model) typed it.

    The token may be a numeric ID, a mention such as ``<@!123>`` or ``<#456>``,
    or a free-text name fragment. ``stripped`` removes the mention wrapper
    characters; ``is_numeric`` tells whether the remainder can be fetched
    directly by ID.
    """

    __slots__ = ("raw", "stripped")

    MEMBER_WRAPPER_CHARS = "<@!>"
    CHANNEL_WRAPPER_CHARS = "<#>"

    def __init__(self, raw: object, wrapper_chars: str = MEMBER_WRAPPER_CHARS) -> None:
        self.raw = "" if raw is None else str(raw)
        self.stripped = "".join(ch for ch in self.raw if ch not in wrapper_chars).strip()

    @classmethod
    def for_member(cls, raw: object) -> "ReferenceToken":
        return cls(raw, cls.MEMBER_WRAPPER_CHARS)

    @classmethod
    def for_channel(cls, raw: object) -> "ReferenceToken":
        return cls(raw, cls.CHANNEL_WRAPPER_CHARS)

    @property
    def is_numeric(self) -> bool:
        return self.stripped.isascii() and self.stripped.isdigit()

    @property
    def lowered(self) -> str:
        return self.stripped.lower()

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"ReferenceToken({self.raw!r})"
