"""
Registry of the actions the bot can be asked to perform.

The catalog is plain immutable data: it is built once by the composition root
and handed to both the model bridge (which advertises it as tool declarations)
and the action executor (which dispatches against it). Names are unique and
looked up case-insensitively.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Tuple

from agentcord.datatypes.action_datatypes import ActionDefinition, ParameterSpec


class ActionCatalog:
    """Case-insensitive, read-only collection of :class:`ActionDefinition`."""

    def __init__(self, definitions: Iterable[ActionDefinition]) -> None:
        by_key: Dict[str, ActionDefinition] = {}
        for definition in definitions:
            if definition.key in by_key:
                raise ValueError(f"Duplicate action name '{definition.name}' in catalog")
            by_key[definition.key] = definition
        self._by_key = by_key

    def get(self, name: str | None) -> ActionDefinition | None:
        """Return the definition matching ``name`` (any case), or None."""
        if not name:
            return None
        return self._by_key.get(str(name).strip().lower())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[ActionDefinition]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self._by_key.values())

    def to_tool_declarations(self) -> List[Dict[str, Any]]:
        """Translate every action into the OpenAI ``tools`` request format."""
        return [definition.to_tool_declaration() for definition in self._by_key.values()]


# ---------------------------------------------------------------------------
# Built-in actions
# ---------------------------------------------------------------------------

EMBED_FIELD_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "description": "The name of the field"},
        "value": {"type": "string", "description": "The value of the field"},
        "inline": {"type": "boolean", "description": "Whether the field should be displayed inline"},
    },
    "required": ["name", "value"],
}

CHANNEL_TYPES = ("text", "voice", "announcement")

MODERATION_ACTIONS: Tuple[ActionDefinition, ...] = (
    ActionDefinition(
        name="kickUser",
        description="Kicks a user from the Discord server",
        parameters=(
            ParameterSpec("userId", "string", "The Discord user ID, @mention, or username of the user to kick", required=True),
            ParameterSpec("reason", "string", "The reason for kicking the user (optional)"),
        ),
    ),
    ActionDefinition(
        name="banUser",
        description="Bans a user from the Discord server",
        parameters=(
            ParameterSpec("userId", "string", "The Discord user ID, @mention, or username of the user to ban", required=True),
            ParameterSpec("reason", "string", "The reason for banning the user (optional)"),
            ParameterSpec("deleteMessageDays", "number", "Number of days of messages to delete (0-7, optional)"),
        ),
    ),
    ActionDefinition(
        name="muteUser",
        description=(
            "Applies a timeout to a user in the Discord server, preventing them from sending "
            "messages, adding reactions, joining voice channels, etc."
        ),
        parameters=(
            ParameterSpec("userId", "string", "The Discord user ID, @mention, or username of the user to timeout", required=True),
            ParameterSpec("duration", "number", "Duration of the timeout in minutes", required=True),
            ParameterSpec("reason", "string", "The reason for timing out the user (optional)"),
        ),
    ),
    ActionDefinition(
        name="filterSettings",
        description="Manages the content filter settings for the Discord server",
        parameters=(
            ParameterSpec("enabled", "boolean", "Whether to enable or disable the content filter", required=True),
        ),
    ),
    ActionDefinition(
        name="warnUser",
        description="Issues a warning to a user about inappropriate behavior",
        parameters=(
            ParameterSpec("userId", "string", "The Discord user ID, @mention, or username of the user to warn", required=True),
            ParameterSpec("reason", "string", "The reason for warning the user", required=True),
        ),
    ),
)

SERVER_MANAGEMENT_ACTIONS: Tuple[ActionDefinition, ...] = (
    ActionDefinition(
        name="createCategory",
        description="Creates a new category in the Discord server",
        parameters=(
            ParameterSpec("name", "string", "The name of the category to create", required=True),
            ParameterSpec("position", "number", "The position of the category (optional)"),
        ),
    ),
    ActionDefinition(
        name="createChannel",
        description="Creates a new channel in the Discord server",
        parameters=(
            ParameterSpec("name", "string", "The name of the channel to create", required=True),
            ParameterSpec(
                "type", "string", "The type of channel to create (text, voice, announcement)",
                required=True, enum=CHANNEL_TYPES,
            ),
            ParameterSpec("categoryId", "string", "The ID or name of the category to place the channel in (optional)"),
            ParameterSpec("topic", "string", "The topic of the channel (optional, text channels only)"),
        ),
    ),
    ActionDefinition(
        name="deleteChannel",
        description="Deletes a channel from the Discord server",
        parameters=(
            ParameterSpec("channelId", "string", "The ID or name of the channel to delete", required=True),
            ParameterSpec("reason", "string", "The reason for deleting the channel (optional)"),
        ),
    ),
    ActionDefinition(
        name="deleteMessages",
        description="Deletes multiple messages from a channel in the Discord server",
        parameters=(
            ParameterSpec("channelId", "string", "The ID or name of the channel to delete messages from"),
            ParameterSpec("amount", "number", "The number of messages to delete (1-1000)", required=True),
            ParameterSpec("reason", "string", "The reason for deleting the messages (optional)"),
        ),
    ),
    ActionDefinition(
        name="createEmbed",
        description="Creates an embed message in a Discord channel",
        parameters=(
            ParameterSpec("channelId", "string", "The ID or name of the channel to send the embed to", required=True),
            ParameterSpec("title", "string", "The title of the embed", required=True),
            ParameterSpec("description", "string", "The description of the embed", required=True),
            ParameterSpec("color", "string", "The color of the embed in hex format (e.g., #FF0000) (optional)"),
            ParameterSpec("fields", "array", "Fields to add to the embed (optional)", items=EMBED_FIELD_SCHEMA),
            ParameterSpec("footer", "string", "The footer text of the embed (optional)"),
            ParameterSpec("image", "string", "The URL of an image to display in the embed (optional)"),
            ParameterSpec("thumbnail", "string", "The URL of a thumbnail to display in the embed (optional)"),
        ),
    ),
)


def build_default_catalog() -> ActionCatalog:
    """Return a catalog holding every built-in moderation and server action."""
    return ActionCatalog(MODERATION_ACTIONS + SERVER_MANAGEMENT_ACTIONS)
