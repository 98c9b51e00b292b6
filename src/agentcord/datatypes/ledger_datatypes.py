"""
Records held by the moderation ledger.

One ``GuildLedger`` per guild holds the content-filter flag and the warning
records of every warned member. It serialises to a single JSON-compatible
document, which is the unit the ledger store persists.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict

from agentcord.datatypes.discord_datatypes import GuildID, UserID


@dataclass(slots=True)
class WarningRecord:
    """Warning counter of one member in one guild."""
    count: int = 0
    last_warning: datetime.datetime | None = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "last_warning": self.last_warning.timestamp() if self.last_warning else None,
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "WarningRecord":
        raw_timestamp = document.get("last_warning")
        last_warning = (
            datetime.datetime.fromtimestamp(float(raw_timestamp), tz=datetime.timezone.utc)
            if raw_timestamp is not None
            else None
        )
        return cls(count=max(0, int(document.get("count", 0))), last_warning=last_warning)


@dataclass(slots=True)
class GuildLedger:
    """Filter settings and warning records of one guild."""
    guild_id: GuildID
    filter_enabled: bool = False
    warnings: Dict[UserID, WarningRecord] = field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        return {
            "filter_enabled": self.filter_enabled,
            "warnings": {str(user_id): record.to_document() for user_id, record in self.warnings.items()},
        }

    @classmethod
    def from_document(cls, guild_id: GuildID, document: Dict[str, Any]) -> "GuildLedger":
        warnings = {
            UserID(user_id): WarningRecord.from_document(record)
            for user_id, record in (document.get("warnings") or {}).items()
        }
        return cls(
            guild_id=guild_id,
            filter_enabled=bool(document.get("filter_enabled", False)),
            warnings=warnings,
        )


@dataclass(frozen=True, slots=True)
class WarnOutcome:
    """Result of a single ``ModerationLedger.warn`` call.

    Attributes:
        count: Warning count after this warning (before any escalation reset).
        threshold: Count at which escalation fires.
        escalated: True when the automatic timeout was applied.
        escalation_failed: True when the threshold was reached but the timeout
            could not be applied.
        timeout_minutes: Length of the automatic timeout.
    """
    count: int
    threshold: int
    escalated: bool = False
    escalation_failed: bool = False
    timeout_minutes: int = 0

    def describe(self, username: str, reason: str) -> str:
        """Render the outcome as the reply shown to the moderator."""
        if self.escalated:
            return f"{username} has been timed out for {self.timeout_minutes} minutes due to multiple warnings."
        if self.escalation_failed:
            return f"Warning issued to {username}, but I couldn't apply timeout due to permissions."
        return f"Warning issued to {username}: {reason}. This is warning {self.count}/{self.threshold}."
