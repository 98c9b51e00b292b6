"""Pattern-based recognition of messages that already are structured calls.

Power users and scripts can bypass the language model entirely by typing a
call directly::

    delete 20 messages
    kickUser({ userId: "@bob", reason: "spam" })
    banUser(userId: "123", reason: "spam", deleteMessageDays: 2)
    deleteMessages(50)
    deleteMessages(general, 50)

All argument values are extracted as strings; typing happens later in the
executor. The parser never raises: text that does not match simply yields None.
"""

from __future__ import annotations

import re
from typing import Dict

from agentcord.datatypes.action_datatypes import StructuredCall
from agentcord.util.logger import get_logger

logger = get_logger("call_parser")


DELETE_SHORTHAND_PATTERN = re.compile(r"^delete\s+(\d+)\s+messages$", re.IGNORECASE)
EMBEDDED_DELETE_SHORTHAND_PATTERN = re.compile(r"delete\s+(\d+)\s+messages", re.IGNORECASE)
OBJECT_CALL_PATTERN = re.compile(r"^(\w+)\s*\(\s*\{([^}]+)\}\s*\)$", re.DOTALL)
PAREN_CALL_PATTERN = re.compile(r"^(\w+)\s*\(([^)]*)\)$", re.DOTALL)
ARGUMENT_PATTERN = re.compile(r"""(\w+)\s*:\s*(?:"([^"]*)"|'([^']*)'|([^,]+?))\s*(?:,|$)""")

DELETE_MESSAGES = "deleteMessages"


def parse_argument_list(arguments: str) -> Dict[str, str]:
    """Extract ``key: value`` pairs from a comma separated argument string.

    Quoted values keep their inner text verbatim; unquoted values are trimmed.
    Later duplicates of a key overwrite earlier ones.
    """
    parsed: Dict[str, str] = {}
    for match in ARGUMENT_PATTERN.finditer(arguments):
        key, double_quoted, single_quoted, bare = match.groups()
        if double_quoted is not None:
            parsed[key] = double_quoted
        elif single_quoted is not None:
            parsed[key] = single_quoted
        else:
            parsed[key] = bare.strip()
    return parsed


class DirectTextCallParser:
    """Recognise direct call syntax in message text without consulting the model."""

    def parse(self, text: str | None) -> StructuredCall | None:
        """Return the call written in ``text``, or None if it is not a call.

        Forms are tried in priority order: the ``delete N messages`` shorthand,
        brace-delimited object arguments, parenthesised ``key: value`` pairs
        (with a positional special case for ``deleteMessages``).
        """
        if not text:
            return None
        content = text.strip()

        shorthand = DELETE_SHORTHAND_PATTERN.match(content)
        if shorthand:
            logger.debug("[CALL PARSER] Matched delete shorthand, amount=%s", shorthand.group(1))
            return StructuredCall(name=DELETE_MESSAGES, arguments={"amount": shorthand.group(1)})

        object_call = OBJECT_CALL_PATTERN.match(content)
        if object_call:
            name, arguments = object_call.groups()
            logger.debug("[CALL PARSER] Matched object notation call %s", name)
            return StructuredCall(name=name, arguments=parse_argument_list(arguments))

        paren_call = PAREN_CALL_PATTERN.match(content)
        if not paren_call:
            return None

        name, arguments = paren_call.groups()
        positional = self._parse_positional_delete(name, arguments)
        if positional is not None:
            return positional

        logger.debug("[CALL PARSER] Matched named-argument call %s", name)
        return StructuredCall(name=name, arguments=parse_argument_list(arguments))

    def find_shorthand(self, text: str | None) -> StructuredCall | None:
        """Find a ``delete N messages`` request anywhere inside free text."""
        if not text:
            return None
        match = EMBEDDED_DELETE_SHORTHAND_PATTERN.search(text)
        if not match:
            return None
        return StructuredCall(name=DELETE_MESSAGES, arguments={"amount": match.group(1)})

    @staticmethod
    def _parse_positional_delete(name: str, arguments: str) -> StructuredCall | None:
        """Handle ``deleteMessages(amount)`` and ``deleteMessages(channel, amount)``."""
        if name.lower() != DELETE_MESSAGES.lower() or ":" in arguments or not arguments.strip():
            return None

        values = [value.strip().strip("\"'") for value in arguments.split(",")]
        if len(values) == 1:
            return StructuredCall(name=DELETE_MESSAGES, arguments={"amount": values[0]})
        if len(values) == 2:
            return StructuredCall(name=DELETE_MESSAGES, arguments={"channelId": values[0], "amount": values[1]})
        return None
