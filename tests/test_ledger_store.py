import datetime

import pytest

from agentcord.database.db_connection import ConnectionManager
from agentcord.database.ledger_store import SqliteLedgerStore
from agentcord.datatypes.discord_datatypes import GuildID, UserID
from agentcord.datatypes.ledger_datatypes import GuildLedger, WarningRecord


@pytest.mark.asyncio
async def test_save_and_load_all(tmp_path):
    connection = ConnectionManager()
    await connection.open(tmp_path / "db" / "agentcord.db")
    try:
        store = SqliteLedgerStore(connection)
        await store.initialize()

        when = datetime.datetime(2024, 5, 1, 8, 30, tzinfo=datetime.timezone.utc)
        ledger = GuildLedger(
            guild_id=GuildID(10),
            filter_enabled=True,
            warnings={UserID(7): WarningRecord(count=2, last_warning=when)},
        )
        await store.save(ledger)

        # full rewrite on the next save
        ledger.warnings[UserID(7)].count = 0
        await store.save(ledger)
        await store.save(GuildLedger(guild_id=GuildID(11)))

        loaded = await store.load_all()
    finally:
        await connection.close()

    assert set(loaded) == {GuildID(10), GuildID(11)}
    restored = loaded[GuildID(10)]
    assert restored.filter_enabled is True
    assert restored.warnings[UserID(7)].count == 0
    assert restored.warnings[UserID(7)].last_warning == when
    assert loaded[GuildID(11)].warnings == {}


@pytest.mark.asyncio
async def test_corrupt_documents_are_skipped(tmp_path):
    connection = ConnectionManager()
    await connection.open(tmp_path / "agentcord.db")
    try:
        store = SqliteLedgerStore(connection)
        await store.initialize()
        async with connection.transaction() as conn:
            await conn.execute("INSERT INTO guild_ledger (guild_id, document) VALUES (?, ?)", (5, "{not json"))
        await store.save(GuildLedger(guild_id=GuildID(6), filter_enabled=True))

        loaded = await store.load_all()
    finally:
        await connection.close()

    assert list(loaded) == [GuildID(6)]


def test_connection_requires_open():
    with pytest.raises(RuntimeError):
        ConnectionManager().connection
