"""
Per-guild moderation state: warning counters and the content filter flag.

Warning state machine per (guild, user)
---------------------------------------
``warn`` loads the record (count 0 when new), resets the count when the last
warning is at least ``WARNING_RESET_WINDOW`` old, increments it and persists.
Reaching ``WARNING_THRESHOLD`` applies an automatic timeout through the
caller-supplied coroutine. A successful timeout resets the count to 0 and
persists again; a failed one leaves the count at the threshold so the next
warning retries the escalation. On that path alone the count may sit at or
above ``WARNING_THRESHOLD``; everywhere else it stays below it.

State lives in memory and is written through the ledger store after every
mutation. Store failures are logged and do not fail the operation.
"""

from __future__ import annotations

import datetime
from typing import Any, Awaitable, Callable, Dict

from agentcord.database.ledger_store import LedgerStore
from agentcord.datatypes.discord_datatypes import GuildID, UserID
from agentcord.datatypes.ledger_datatypes import GuildLedger, WarningRecord, WarnOutcome
from agentcord.util.logger import get_logger

logger = get_logger("moderation_ledger")


WARNING_THRESHOLD = 3
WARNING_RESET_WINDOW = datetime.timedelta(hours=24)
ESCALATION_TIMEOUT_MINUTES = 10
ESCALATION_REASON = "Multiple warnings for inappropriate behavior"

# Called with (minutes, reason); raises when the timeout cannot be applied.
TimeoutApplier = Callable[[int, str], Awaitable[Any]]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ModerationLedger:
    """Owns every guild's :class:`GuildLedger`.

    Args:
        store: Persistence backend, or None to keep state in memory only.
        clock: Source of the current time (timezone-aware).
    """

    def __init__(
        self,
        store: LedgerStore | None = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._clock = clock
        self._ledgers: Dict[GuildID, GuildLedger] = {}

    async def load(self) -> None:
        """Load all persisted ledgers. Called once at startup."""
        if self._store is None:
            return
        self._ledgers = dict(await self._store.load_all())

    def _ledger_for(self, guild_id: GuildID) -> GuildLedger:
        ledger = self._ledgers.get(guild_id)
        if ledger is None:
            ledger = GuildLedger(guild_id=guild_id)
            self._ledgers[guild_id] = ledger
        return ledger

    async def _persist(self, ledger: GuildLedger) -> None:
        if self._store is None:
            return
        try:
            await self._store.save(ledger)
        except Exception:
            logger.exception("[MODERATION LEDGER] Failed to persist ledger for guild %s", ledger.guild_id)

    # ------------------------------------------------------------------
    # Content filter flag
    # ------------------------------------------------------------------

    def is_filter_enabled(self, guild_id: GuildID) -> bool:
        ledger = self._ledgers.get(guild_id)
        return bool(ledger and ledger.filter_enabled)

    async def set_filter_enabled(self, guild_id: GuildID, enabled: bool) -> None:
        ledger = self._ledger_for(guild_id)
        ledger.filter_enabled = enabled
        await self._persist(ledger)
        logger.info("[MODERATION LEDGER] Content filter %s for guild %s", "enabled" if enabled else "disabled", guild_id)

    # ------------------------------------------------------------------
    # Warnings
    # ------------------------------------------------------------------

    def get_warning_count(self, guild_id: GuildID, user_id: UserID) -> int:
        ledger = self._ledgers.get(guild_id)
        if ledger is None:
            return 0
        record = ledger.warnings.get(user_id)
        return record.count if record else 0

    async def warn(
        self,
        guild_id: GuildID,
        user_id: UserID,
        reason: str,
        apply_timeout: TimeoutApplier,
    ) -> WarnOutcome:
        """Record a warning and escalate to a timeout at the threshold."""
        ledger = self._ledger_for(guild_id)
        record = ledger.warnings.setdefault(user_id, WarningRecord())
        now = self._clock()

        if record.last_warning is not None and now - record.last_warning >= WARNING_RESET_WINDOW:
            logger.debug("[MODERATION LEDGER] Warning count of %s in %s expired, resetting", user_id, guild_id)
            record.count = 0

        record.count += 1
        record.last_warning = now
        count = record.count
        await self._persist(ledger)

        logger.info(
            "[MODERATION LEDGER] Warning %d/%d for user %s in guild %s: %s",
            count, WARNING_THRESHOLD, user_id, guild_id, reason,
        )

        if count < WARNING_THRESHOLD:
            return WarnOutcome(count=count, threshold=WARNING_THRESHOLD)

        try:
            await apply_timeout(ESCALATION_TIMEOUT_MINUTES, ESCALATION_REASON)
        except Exception:
            logger.exception("[MODERATION LEDGER] Automatic timeout failed for user %s in guild %s", user_id, guild_id)
            return WarnOutcome(
                count=count,
                threshold=WARNING_THRESHOLD,
                escalation_failed=True,
                timeout_minutes=ESCALATION_TIMEOUT_MINUTES,
            )

        record.count = 0
        await self._persist(ledger)
        return WarnOutcome(
            count=count,
            threshold=WARNING_THRESHOLD,
            escalated=True,
            timeout_minutes=ESCALATION_TIMEOUT_MINUTES,
        )
