import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from agentcord.actions.action_catalog import build_default_catalog
from agentcord.datatypes.action_datatypes import ExecutionContext, StructuredCall
from agentcord.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from agentcord.dispatch import action_executor
from agentcord.dispatch.action_executor import OLD_MESSAGES_ERROR, ActionExecutor
from agentcord.moderation.moderation_ledger import ModerationLedger


PERMISSION_FLAGS = (
    "kick_members", "ban_members", "moderate_members", "manage_channels",
    "manage_messages", "embed_links", "administrator",
)


def make_permissions(**flags):
    values = {flag: False for flag in PERMISSION_FLAGS}
    values.update(flags)
    return SimpleNamespace(**values)


def http_error(message="boom", status=500):
    return discord.HTTPException(SimpleNamespace(status=status, reason="Error"), message)


class FakeMember:
    def __init__(self, member_id, name, nick=None, position=1, **permissions):
        self.id = member_id
        self.name = name
        self.nick = nick
        self.top_role = SimpleNamespace(position=position)
        self.guild_permissions = make_permissions(**permissions)
        self.kick = AsyncMock()
        self.ban = AsyncMock()
        self.timeout_for = AsyncMock()

    def __repr__(self):
        return f"FakeMember({self.name})"


class FakeHistory:
    def __init__(self, messages):
        self._messages = messages

    async def flatten(self):
        return list(self._messages)


class FakeChannel:
    def __init__(self, channel_id, name, channel_type=discord.ChannelType.text, messages=None):
        self.id = channel_id
        self.name = name
        self.type = channel_type
        self.messages = list(messages or [])
        self.delete = AsyncMock()
        self.send = AsyncMock()
        self.edit = AsyncMock()
        self.delete_messages = AsyncMock(side_effect=self._bulk_delete)

    def history(self, limit):
        return FakeHistory(self.messages[:limit])

    async def _bulk_delete(self, messages, reason=None):
        doomed = {m.id for m in messages}
        self.messages = [m for m in self.messages if m.id not in doomed]


def make_messages(count, age=datetime.timedelta(minutes=1)):
    now = discord.utils.utcnow()
    return [SimpleNamespace(id=i, created_at=now - age - datetime.timedelta(seconds=i)) for i in range(count)]


class FakeGuild:
    def __init__(self, guild_id=1, me=None, owner_id=2, members=(), channels=()):
        self.id = guild_id
        self.owner_id = owner_id
        self.me = me
        self.members = list(members)
        self.channels = list(channels)
        self.chunked = True
        self.chunk = AsyncMock()
        self.fetch_channels = AsyncMock(return_value=[])
        self.create_category = AsyncMock(
            side_effect=lambda name, **kw: FakeChannel(900, name, discord.ChannelType.category)
        )
        self.create_text_channel = AsyncMock(side_effect=lambda name, **kw: FakeChannel(901, name))
        self.create_voice_channel = AsyncMock(
            side_effect=lambda name, **kw: FakeChannel(902, name, discord.ChannelType.voice)
        )

    def get_member(self, member_id):
        return next((m for m in self.members if m.id == member_id), None)

    async def fetch_member(self, member_id):
        raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Member")

    def get_channel(self, channel_id):
        return next((c for c in self.channels if c.id == channel_id), None)

    async def fetch_channel(self, channel_id):
        raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Channel")


ALL_BOT_PERMISSIONS = {flag: True for flag in PERMISSION_FLAGS if flag != "administrator"}


@pytest.fixture
def env():
    me = FakeMember(100, "Agentic", position=10, **ALL_BOT_PERMISSIONS)
    admin = FakeMember(500, "modadmin", position=5, administrator=True)
    bob = FakeMember(42, "bob", nick="Bobby", position=1)
    owner = FakeMember(2, "owner", position=1)
    boss = FakeMember(43, "boss", position=20)
    general = FakeChannel(10, "general", messages=make_messages(30))
    staff = FakeChannel(20, "Staff", discord.ChannelType.category)
    guild = FakeGuild(me=me, members=[me, admin, bob, owner, boss], channels=[general, staff])
    bot = SimpleNamespace(get_guild=lambda gid: guild if gid == guild.id else None)
    ledger = ModerationLedger()
    executor = ActionExecutor(bot, build_default_catalog(), ledger)
    context = ExecutionContext(
        guild_id=GuildID(guild.id),
        invoking_user_id=UserID(admin.id),
        default_channel_id=ChannelID(general.id),
    )
    return SimpleNamespace(
        executor=executor, guild=guild, ledger=ledger, context=context,
        me=me, admin=admin, bob=bob, owner=owner, boss=boss, general=general, staff=staff,
    )


async def run(env, action, **arguments):
    return await env.executor.execute(StructuredCall(name=action, arguments=arguments), env.context)


# ---------------------------------------------------------------------------
# Dispatch and preflight
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["nukeServer", "", "kick", "print"])
async def test_unknown_function_has_no_side_effects(env, name):
    result = await run(env, name, userId="bob")
    assert result == f"Error: Unknown function '{name}'."
    env.bob.kick.assert_not_awaited()
    env.bob.ban.assert_not_awaited()


@pytest.mark.asyncio
async def test_action_names_are_case_insensitive(env):
    result = await run(env, "KICKUSER", userId="bob")
    assert result == "Successfully kicked bob."


@pytest.mark.asyncio
async def test_direct_message_context_is_rejected(env):
    context = ExecutionContext(guild_id=None, invoking_user_id=UserID(500))
    result = await env.executor.execute(StructuredCall("kickUser", {"userId": "bob"}), context)
    assert result == "Error: This command can only be used in a server."


@pytest.mark.asyncio
async def test_unknown_guild(env):
    env.context.guild_id = GuildID(999)
    assert await run(env, "kickUser", userId="bob") == "Error: I cannot find this server."


@pytest.mark.asyncio
@pytest.mark.parametrize("name, flag, arguments, message", [
    ("kickUser", "kick_members", {"userId": "bob"}, "Error: I don't have permission to kick members."),
    ("banUser", "ban_members", {"userId": "bob"}, "Error: I don't have permission to ban members."),
    ("muteUser", "moderate_members", {"userId": "bob", "duration": "5"},
     "Error: I don't have permission to timeout members."),
    ("createChannel", "manage_channels", {"name": "x", "type": "text"},
     "Error: I don't have permission to manage channels."),
    ("deleteMessages", "manage_messages", {"amount": "5"}, "Error: I don't have permission to manage messages."),
])
async def test_missing_bot_capability_blocks_mutation(env, name, flag, arguments, message):
    setattr(env.me.guild_permissions, flag, False)
    assert await run(env, name, **arguments) == message
    env.bob.kick.assert_not_awaited()
    env.bob.ban.assert_not_awaited()
    env.bob.timeout_for.assert_not_awaited()
    env.guild.create_text_channel.assert_not_awaited()
    env.general.delete_messages.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_required_argument(env):
    assert await run(env, "kickUser") == "Error: Missing required argument 'userId' for kickUser."


@pytest.mark.asyncio
async def test_unexpected_handler_failure_is_reported(env):
    env.bob.kick.side_effect = RuntimeError("surprise")
    assert await run(env, "kickUser", userId="bob") == "Error: Failed to execute kickUser."


# ---------------------------------------------------------------------------
# Member actions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_kick_by_mention_with_reason(env):
    result = await run(env, "kickUser", userId="<@!42>", reason="spamming")
    assert result == "Successfully kicked bob for: spamming."
    env.bob.kick.assert_awaited_once_with(reason="spamming")


@pytest.mark.asyncio
async def test_kick_default_reason(env):
    await run(env, "kickUser", userId="bob")
    env.bob.kick.assert_awaited_once_with(reason="No reason provided")


@pytest.mark.asyncio
async def test_kick_unknown_user(env):
    assert await run(env, "kickUser", userId="nobody") == "Error: Could not find user 'nobody'."


@pytest.mark.asyncio
async def test_kick_unknown_numeric_id_does_not_fall_back_to_names(env):
    env.guild.members.append(FakeMember(77, "user12345"))
    assert await run(env, "kickUser", userId="12345") == "Error: Could not find user '12345'."


@pytest.mark.asyncio
@pytest.mark.parametrize("target", ["owner", "boss", "Agentic"])
async def test_kick_hierarchy(env, target):
    result = await run(env, "kickUser", userId=target)
    assert result == f"Error: I cannot kick {target} due to permission hierarchy."


@pytest.mark.asyncio
async def test_kick_transport_failure(env):
    env.bob.kick.side_effect = http_error()
    assert await run(env, "kickUser", userId="bob") == "Error: Failed to kick bob."


@pytest.mark.asyncio
@pytest.mark.parametrize("days, seconds", [("-5", 0), ("0", 0), ("3", 259200), ("7", 604800), ("99", 604800)])
async def test_ban_clamps_message_deletion_days(env, days, seconds):
    result = await run(env, "banUser", userId="bob", deleteMessageDays=days)
    assert result == "Successfully banned bob."
    env.bob.ban.assert_awaited_once_with(delete_message_seconds=seconds, reason="No reason provided")


@pytest.mark.asyncio
async def test_ban_hierarchy_and_failure(env):
    assert await run(env, "banUser", userId="boss") == "Error: I cannot ban boss due to permission hierarchy."
    env.bob.ban.side_effect = http_error()
    assert await run(env, "banUser", userId="bob", reason="raid") == "Error: Failed to ban bob."


@pytest.mark.asyncio
async def test_mute_by_nickname(env):
    result = await run(env, "muteUser", userId="bobby", duration="15", reason="cool off")
    assert result == "Successfully timed out bob for 15 minute(s) for: cool off."
    env.bob.timeout_for.assert_awaited_once_with(datetime.timedelta(minutes=15), reason="cool off")


@pytest.mark.asyncio
async def test_mute_caps_duration(env):
    await run(env, "muteUser", userId="bob", duration="100000")
    env.bob.timeout_for.assert_awaited_once_with(
        datetime.timedelta(minutes=action_executor.MAX_TIMEOUT_MINUTES), reason="No reason provided"
    )


@pytest.mark.asyncio
async def test_mute_rejects_non_positive_duration(env):
    assert await run(env, "muteUser", userId="bob", duration="0") == (
        "Error: Duration must be a positive number of minutes."
    )


@pytest.mark.asyncio
async def test_mute_administrator_is_not_moderatable(env):
    assert await run(env, "muteUser", userId="modadmin", duration="5") == (
        "Error: I cannot timeout modadmin due to permission hierarchy."
    )


@pytest.mark.asyncio
async def test_filter_settings_requires_administrator(env):
    env.context.invoking_user_id = UserID(env.bob.id)
    assert await run(env, "filterSettings", enabled="true") == (
        "Error: You need administrator permission to change the content filter."
    )
    assert not env.ledger.is_filter_enabled(GuildID(1))


@pytest.mark.asyncio
async def test_filter_settings_toggle(env):
    assert await run(env, "filterSettings", enabled="on") == "Content filter has been enabled for this server."
    assert env.ledger.is_filter_enabled(GuildID(1))
    assert await run(env, "filterSettings", enabled=False) == "Content filter has been disabled for this server."
    assert not env.ledger.is_filter_enabled(GuildID(1))


@pytest.mark.asyncio
async def test_warn_escalates_on_third_warning(env):
    results = [await run(env, "warnUser", userId="bob", reason="spam") for _ in range(3)]
    assert results[0] == "Warning issued to bob: spam. This is warning 1/3."
    assert results[1] == "Warning issued to bob: spam. This is warning 2/3."
    assert results[2] == "bob has been timed out for 10 minutes due to multiple warnings."
    env.bob.timeout_for.assert_awaited_once()


@pytest.mark.asyncio
async def test_warn_escalation_without_permission(env):
    env.me.guild_permissions.moderate_members = False
    for _ in range(2):
        await run(env, "warnUser", userId="bob", reason="spam")
    result = await run(env, "warnUser", userId="bob", reason="spam")
    assert result == "Warning issued to bob, but I couldn't apply timeout due to permissions."
    env.bob.timeout_for.assert_not_awaited()


# ---------------------------------------------------------------------------
# Channel actions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_category_with_position(env):
    assert await run(env, "createCategory", name="Events", position="3") == (
        "Successfully created category 'Events'."
    )
    env.guild.create_category.assert_awaited_once_with("Events", position=3)


@pytest.mark.asyncio
async def test_create_category_without_position(env):
    await run(env, "createCategory", name="Events")
    env.guild.create_category.assert_awaited_once_with("Events")


@pytest.mark.asyncio
async def test_create_text_channel_in_category_with_topic(env):
    result = await run(env, "createChannel", name="rules", type="TEXT", categoryId="staff", topic="Read me")
    assert result == "Successfully created text channel 'rules' in category 'Staff'."
    env.guild.create_text_channel.assert_awaited_once_with("rules", category=env.staff, topic="Read me")


@pytest.mark.asyncio
async def test_create_voice_channel_ignores_topic(env):
    result = await run(env, "createChannel", name="Lounge", type="voice", topic="ignored")
    assert result == "Successfully created voice channel 'Lounge'."
    env.guild.create_voice_channel.assert_awaited_once_with("Lounge", category=None)


@pytest.mark.asyncio
async def test_create_announcement_channel(env):
    result = await run(env, "createChannel", name="news", type="announcement", topic="Updates")
    assert result == "Successfully created announcement channel 'news'."
    env.guild.create_text_channel.assert_awaited_once_with("news", category=None, topic="Updates")


@pytest.mark.asyncio
async def test_create_channel_invalid_type(env):
    assert await run(env, "createChannel", name="x", type="forum") == (
        "Error: Invalid type 'forum'. Valid values are: text, voice, announcement."
    )
    env.guild.create_text_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_channel_category_must_be_category(env):
    assert await run(env, "createChannel", name="x", type="text", categoryId="general") == (
        "Error: Could not find category 'general'."
    )
    env.guild.create_text_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_channel(env):
    assert await run(env, "deleteChannel", channelId="<#10>", reason="cleanup") == (
        "Successfully deleted channel 'general' for: cleanup."
    )
    env.general.delete.assert_awaited_once_with(reason="cleanup")


@pytest.mark.asyncio
async def test_delete_channel_not_found_and_failure(env):
    assert await run(env, "deleteChannel", channelId="memes") == "Error: Could not find channel 'memes'."
    env.general.delete.side_effect = http_error()
    assert await run(env, "deleteChannel", channelId="general") == "Error: Failed to delete channel 'general'."


@pytest.mark.asyncio
async def test_delete_messages_defaults_to_invoking_channel(env):
    result = await run(env, "deleteMessages", amount="5")
    assert result == "Successfully deleted 5 message(s) from the channel."
    assert len(env.general.messages) == 25


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "-3"])
async def test_delete_messages_requires_positive_amount(env, amount):
    assert await run(env, "deleteMessages", amount=amount) == "Error: Amount must be a positive number"


@pytest.mark.asyncio
async def test_delete_messages_batches(env):
    env.general.messages = make_messages(300)
    env.context.notify = AsyncMock()

    result = await run(env, "deleteMessages", amount="250")

    assert result == "Successfully deleted 250 message(s) from the channel."
    batch_sizes = [len(call.args[0]) for call in env.general.delete_messages.await_args_list]
    assert batch_sizes == [100, 100, 50]
    env.context.notify.assert_awaited_once_with(
        "Attempting to delete 250 messages in 3 batches. This may take a moment..."
    )


@pytest.mark.asyncio
async def test_delete_messages_partial_completion(env):
    env.general.messages = make_messages(300)
    deleted_once = False

    async def flaky_delete(messages, reason=None):
        nonlocal deleted_once
        if deleted_once:
            raise http_error()
        deleted_once = True

    env.general.delete_messages.side_effect = flaky_delete
    result = await run(env, "deleteMessages", amount="250")

    assert result == (
        "Partially completed. Deleted 100 messages. "
        "Stopped due to: Error: Failed to delete messages in #general."
    )


@pytest.mark.asyncio
async def test_delete_messages_overall_ceiling(env):
    env.general.messages = make_messages(1500)
    result = await run(env, "deleteMessages", amount="5000")
    assert result == "Successfully deleted 1000 message(s) from the channel."
    assert len(env.general.delete_messages.await_args_list) == 10


@pytest.mark.asyncio
async def test_delete_messages_stops_when_channel_is_empty(env):
    result = await run(env, "deleteMessages", amount="100")
    assert result == "Successfully deleted 30 message(s) from the channel."


@pytest.mark.asyncio
async def test_delete_messages_older_than_two_weeks(env):
    env.general.messages = make_messages(10, age=datetime.timedelta(days=15))
    assert await run(env, "deleteMessages", amount="10") == OLD_MESSAGES_ERROR
    env.general.delete_messages.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_messages_mixed_ages_reports_old_remainder(env):
    old = make_messages(200, age=datetime.timedelta(days=20))
    for message in old:
        message.id += 1000
    env.general.messages = make_messages(150) + old

    result = await run(env, "deleteMessages", amount="250")

    assert result == f"Partially completed. Deleted 150 messages. Stopped due to: {OLD_MESSAGES_ERROR}"
    batch_sizes = [len(call.args[0]) for call in env.general.delete_messages.await_args_list]
    assert batch_sizes == [100, 50]
    assert len(env.general.messages) == 200


@pytest.mark.asyncio
async def test_delete_messages_single_mixed_batch(env):
    env.general.messages = make_messages(3) + [
        SimpleNamespace(id=500 + m.id, created_at=m.created_at)
        for m in make_messages(7, age=datetime.timedelta(days=15))
    ]
    result = await run(env, "deleteMessages", amount="10")
    assert result == f"Partially completed. Deleted 3 messages. Stopped due to: {OLD_MESSAGES_ERROR}"


@pytest.mark.asyncio
async def test_delete_messages_api_reports_old_messages(env):
    env.general.delete_messages.side_effect = discord.HTTPException(
        SimpleNamespace(status=400, reason="Bad Request"),
        {"code": 50034, "message": "You can only bulk delete messages that are under 14 days old."},
    )
    assert await run(env, "deleteMessages", amount="10") == OLD_MESSAGES_ERROR


@pytest.mark.asyncio
async def test_delete_messages_in_named_channel(env):
    other = FakeChannel(11, "off-topic", messages=make_messages(3))
    env.guild.channels.append(other)
    assert await run(env, "deleteMessages", channelId="off", amount="3") == (
        "Successfully deleted 3 message(s) from the channel."
    )
    assert other.messages == []


@pytest.mark.asyncio
async def test_create_embed(env):
    result = await run(
        env, "createEmbed", title="Hello", description="World", color="not a colour",
        fields='[{"name": "a", "value": "b"}, {"broken": true}]',
    )
    assert result == "Successfully sent embed to #general."
    embed = env.general.send.await_args.kwargs["embed"]
    assert embed.title == "Hello"
    assert [f.name for f in embed.fields] == ["a"]


@pytest.mark.asyncio
async def test_create_embed_send_failure(env):
    env.general.send.side_effect = http_error()
    assert await run(env, "createEmbed", channelId="general", title="t", description="d") == (
        "Error: Failed to send embed to #general."
    )
