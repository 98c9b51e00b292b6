"""Pattern check for guilds that enabled the content filter."""

from __future__ import annotations

import re
from typing import Iterable, List, Pattern

from agentcord.util.logger import get_logger

logger = get_logger("content_filter")


FILTER_WARNING_REASON = "Using inappropriate language"
FILTER_REPLY = "Please keep the conversation respectful."


class ContentFilter:
    """Case-insensitive match of message text against configured regular expressions."""

    def __init__(self, patterns: Iterable[str]) -> None:
        compiled: List[Pattern[str]] = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern, re.IGNORECASE))
            except re.error as exc:
                logger.error("[CONTENT FILTER] Ignoring invalid pattern %r: %s", pattern, exc)
        self._patterns = compiled

    def __len__(self) -> int:
        return len(self._patterns)

    def matches(self, text: str | None) -> bool:
        if not text:
            return False
        return any(p.search(text) for p in self._patterns)
