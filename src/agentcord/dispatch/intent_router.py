"""Decide whether a message is addressed to the bot and whether it looks administrative.

Both checks are pure functions of the message text and the static
configuration the router was built with.
"""

from __future__ import annotations

import re
from typing import Tuple

from agentcord.util.logger import get_logger

logger = get_logger("intent_router")


# Substring-matched, so "banana" counts as "ban". Tool declarations are only
# sent to the model when one of these appears.
ADMINISTRATIVE_KEYWORDS: Tuple[str, ...] = (
    # moderation
    "kick",
    "ban",
    "mute",
    "timeout",
    "remove",
    "moderate",
    "moderation",
    "admin",
    "administrator",
    # server management
    "create",
    "channel",
    "category",
    "delete",
    "message",
    "embed",
    "server",
    "manage",
    "setup",
    "purge",
)


class IntentRouter:
    """Routing decisions for incoming message text.

    Args:
        command_prefix: Text a message must start with to address the bot.
        allow_mention_trigger: Whether an @mention also addresses the bot.
        persona_name: Name users often repeat after the prefix ("agentic agentic kick bob").
    """

    def __init__(self, command_prefix: str, allow_mention_trigger: bool, persona_name: str = "") -> None:
        self.command_prefix = command_prefix
        self.allow_mention_trigger = allow_mention_trigger
        self.persona_name = persona_name

    def has_prefix(self, raw_text: str | None) -> bool:
        return bool(raw_text) and raw_text.lower().startswith(self.command_prefix.lower())

    def should_handle(self, raw_text: str | None, bot_mentioned: bool) -> bool:
        """True iff the text starts with the prefix or the bot was mentioned and mentions are enabled."""
        if self.has_prefix(raw_text):
            return True
        return bool(bot_mentioned and self.allow_mention_trigger)

    @staticmethod
    def is_administrative_intent(text: str | None) -> bool:
        """Case-insensitive substring test against :data:`ADMINISTRATIVE_KEYWORDS`."""
        if not text:
            return False
        lowered = text.lower()
        return any(keyword in lowered for keyword in ADMINISTRATIVE_KEYWORDS)

    def extract_query(self, raw_text: str, bot_user_id: int | None = None) -> str:
        """Strip the prefix (or the bot mention) and a leading persona name from the text.

        An empty result means the user only addressed the bot.
        """
        if self.has_prefix(raw_text):
            query = raw_text[len(self.command_prefix):].strip()
        elif bot_user_id is not None:
            query = re.sub(rf"<@!?{bot_user_id}>", "", raw_text, count=1).strip()
        else:
            query = raw_text.strip()

        name = self.persona_name.strip().lower()
        if name and query.lower().startswith(name):
            query = query[len(name):].strip()

        logger.debug("[INTENT ROUTER] Extracted query %r", query[:80])
        return query
