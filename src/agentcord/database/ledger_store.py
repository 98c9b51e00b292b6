"""
Keyed document store for moderation ledger state.

Each guild's filter flag and warning records are one JSON document in the
``guild_ledger`` table. Documents are loaded once at startup and rewritten in
full after every mutation; there is no append log and no migration format.
"""

from __future__ import annotations

import json
from typing import Dict, Protocol

import aiosqlite

from agentcord.database.db_connection import ConnectionManager
from agentcord.datatypes.discord_datatypes import GuildID
from agentcord.datatypes.ledger_datatypes import GuildLedger
from agentcord.util.logger import get_logger

logger = get_logger("ledger_store")


class LedgerStore(Protocol):
    """Persistence seam used by :class:`ModerationLedger`."""

    async def load_all(self) -> Dict[GuildID, GuildLedger]: ...

    async def save(self, ledger: GuildLedger) -> None: ...


class SchemaManager:
    """Creates the ledger table."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_ledger (
                guild_id INTEGER PRIMARY KEY,
                document TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")


class SqliteLedgerStore:
    """SQLite-backed :class:`LedgerStore`."""

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection

    async def initialize(self) -> None:
        await SchemaManager.initialize_schema(self._connection.connection)

    async def load_all(self) -> Dict[GuildID, GuildLedger]:
        """Return every stored guild ledger. Unreadable documents are skipped and logged."""
        ledgers: Dict[GuildID, GuildLedger] = {}
        async with self._connection.read() as conn:
            async with conn.execute("SELECT guild_id, document FROM guild_ledger") as cursor:
                rows = await cursor.fetchall()

        for row in rows:
            guild_id = GuildID(row[0])
            try:
                ledgers[guild_id] = GuildLedger.from_document(guild_id, json.loads(row[1]))
            except (ValueError, TypeError, AttributeError) as exc:
                logger.error("[LEDGER STORE] Skipping corrupt ledger for guild %s: %s", guild_id, exc)

        logger.info("[LEDGER STORE] Loaded ledgers for %d guild(s)", len(ledgers))
        return ledgers

    async def save(self, ledger: GuildLedger) -> None:
        """Replace the stored document of ``ledger.guild_id``."""
        document = json.dumps(ledger.to_document())
        async with self._connection.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO guild_ledger (guild_id, document, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(guild_id) DO UPDATE SET
                    document = excluded.document,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (ledger.guild_id.to_int(), document),
            )
        logger.debug("[LEDGER STORE] Saved ledger for guild %s", ledger.guild_id)
