"""
Data structures for callable actions and the calls made against them.

``ActionDefinition`` describes one action the bot can perform (its name,
description and parameter schema). ``StructuredCall`` is a request to run one
of them with an untyped argument bag, produced either by the direct text parser
or by the language model. ``ExecutionContext`` carries the message-derived
facts the executor needs to run a call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Tuple

from agentcord.datatypes.discord_datatypes import ChannelID, GuildID, UserID


# JSON-schema type names accepted for action parameters
PARAMETER_TYPES = frozenset({"string", "number", "integer", "boolean", "array", "object"})


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """Schema of a single action parameter.

    Attributes:
        name: Parameter key as it appears in the argument bag.
        type: JSON-schema type name.
        description: Human/model facing description.
        required: Whether the call is rejected when the parameter is missing.
        enum: Optional closed set of accepted values.
        items: Optional JSON schema for array items.
    """
    name: str
    type: str
    description: str
    required: bool = False
    enum: Tuple[str, ...] | None = None
    items: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.type not in PARAMETER_TYPES:
            raise ValueError(f"Unsupported parameter type '{self.type}' for '{self.name}'")

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        if self.items is not None:
            schema["items"] = dict(self.items)
        return schema


@dataclass(frozen=True, slots=True)
class ActionDefinition:
    """Immutable declaration of a callable action."""
    name: str
    description: str
    parameters: Tuple[ParameterSpec, ...] = ()

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return self.name.lower()

    @property
    def required_parameters(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters if p.required)

    def get_parameter(self, name: str) -> ParameterSpec | None:
        return next((p for p in self.parameters if p.name == name), None)

    def to_json_schema(self) -> Dict[str, Any]:
        """Return the parameter schema as a JSON-schema object."""
        return {
            "type": "object",
            "properties": {p.name: p.to_json_schema() for p in self.parameters},
            "required": list(self.required_parameters),
        }

    def to_tool_declaration(self) -> Dict[str, Any]:
        """Return the OpenAI-compatible ``tools`` entry for this action."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.to_json_schema(),
            },
        }


@dataclass(slots=True)
class StructuredCall:
    """A request to run a named action with untyped arguments."""
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ExecutionContext:
    """Message-derived facts the executor needs.

    Attributes:
        guild_id: Guild the message was sent in, or None for direct messages.
        invoking_user_id: Author of the message.
        default_channel_id: Channel used when a call omits ``channelId``.
        notify: Optional coroutine used to post progress notices before the
            final result is ready.
    """
    guild_id: GuildID | None
    invoking_user_id: UserID
    default_channel_id: ChannelID | None = None
    notify: Callable[[str], Awaitable[Any]] | None = None
