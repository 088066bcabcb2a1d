from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from fakes import OWNER_ID, STAFF_ID, FakeGuild, FakeMember, make_settings
from eticket.datatypes.action_datatypes import ActionType, Decision
from eticket.datatypes.discord_datatypes import ChannelID, UserID
from eticket.datatypes.ticket_datatypes import StaffEntry, TicketSession, TicketState
from eticket.roster.roster import Roster
from eticket.tickets import action_executor
from eticket.tickets.action_executor import ActionExecutor, ActionOutcome
from eticket.tickets.session_registry import SessionRegistry

TARGET_ID = 300


def http_error(status=500):
    return discord.HTTPException(SimpleNamespace(status=status, reason="error"), "boom")


@pytest.fixture
def roster():
    r = Roster(OWNER_ID)
    r._staff[UserID(STAFF_ID)] = StaffEntry(UserID(STAFF_ID), "Alex")
    return r


@pytest.fixture
def env(roster):
    target = FakeMember(TARGET_ID, "spammer", top=1)
    owner = FakeMember(OWNER_ID, "owner", top=1)
    staff = FakeMember(STAFF_ID, "alex", top=1)
    guild = FakeGuild(members=(target, owner, staff))
    channel = guild.add_channel("ticket-victim", channel_id=10)
    log_channel = guild.add_channel("eticket-logs", channel_id=11)
    registry = SessionRegistry()
    executor = ActionExecutor(roster, registry, make_settings(), sleep=AsyncMock())
    return SimpleNamespace(
        guild=guild, channel=channel, log_channel=log_channel, target=target,
        owner=owner, staff=staff, registry=registry, executor=executor,
    )


@pytest.mark.asyncio
async def test_none_action_is_skipped(env):
    outcome = await env.executor.execute(Decision(reply="ok"), env.channel, None)
    assert outcome is ActionOutcome.SKIPPED
    env.channel.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_ban_applied_with_reason_and_logged(env):
    decision = Decision(reply="Banni.", action=ActionType.BAN, target_user_id=UserID(TARGET_ID), reason="spam")

    outcome = await env.executor.execute(decision, env.channel, None)

    assert outcome is ActionOutcome.APPLIED
    env.target.ban.assert_awaited_once_with(reason="spam")
    assert any("Sanction appliquée" in text for text in env.channel.sent_texts())
    env.log_channel.send.assert_awaited_once()
    assert "embed" in env.log_channel.send.await_args.kwargs


@pytest.mark.asyncio
async def test_kick_and_mute_use_matching_calls(env):
    kick = Decision(reply="x", action=ActionType.KICK, target_user_id=UserID(TARGET_ID))
    assert await env.executor.execute(kick, env.channel, None) is ActionOutcome.APPLIED
    env.target.kick.assert_awaited_once()
    assert env.target.kick.await_args.kwargs["reason"] == "Ticket #ticket-victim"

    mute = Decision(reply="x", action=ActionType.MUTE, target_user_id=UserID(TARGET_ID), reason="flood")
    assert await env.executor.execute(mute, env.channel, None) is ActionOutcome.APPLIED
    duration = env.target.timeout_for.await_args.args[0]
    assert duration.total_seconds() == 24 * 3600


@pytest.mark.asyncio
async def test_target_above_bot_is_refused_without_api_call(env):
    env.target.top_role.position = 50
    decision = Decision(reply="Banni.", action=ActionType.BAN, target_user_id=UserID(TARGET_ID), reason="spam")

    outcome = await env.executor.execute(decision, env.channel, None)

    assert outcome is ActionOutcome.REFUSED
    env.target.ban.assert_not_awaited()
    assert env.channel.sent_texts() == [action_executor.CANNOT_SANCTION_NOTICE]


@pytest.mark.asyncio
async def test_bot_without_permission_is_refused(env):
    env.guild.me.guild_permissions = SimpleNamespace(administrator=False)
    decision = Decision(reply="x", action=ActionType.KICK, target_user_id=UserID(TARGET_ID))
    assert await env.executor.execute(decision, env.channel, None) is ActionOutcome.REFUSED
    env.target.kick.assert_not_awaited()


@pytest.mark.asyncio
async def test_owner_and_staff_are_never_sanctioned(env):
    for member in (env.owner, env.staff):
        decision = Decision(reply="x", action=ActionType.BAN, target_user_id=UserID(member.id))
        assert await env.executor.execute(decision, env.channel, None) is ActionOutcome.REFUSED
        member.ban.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_target_is_refused(env):
    decision = Decision(reply="x", action=ActionType.BAN, target_user_id=UserID(123456))
    assert await env.executor.execute(decision, env.channel, None) is ActionOutcome.REFUSED


@pytest.mark.asyncio
async def test_administrator_cannot_be_muted(env):
    env.target.guild_permissions = SimpleNamespace(administrator=True)
    decision = Decision(reply="x", action=ActionType.MUTE, target_user_id=UserID(TARGET_ID))
    assert await env.executor.execute(decision, env.channel, None) is ActionOutcome.REFUSED
    env.target.timeout_for.assert_not_awaited()


@pytest.mark.asyncio
async def test_discord_failure_is_reported(env):
    env.target.ban.side_effect = http_error()
    decision = Decision(reply="x", action=ActionType.BAN, target_user_id=UserID(TARGET_ID))

    outcome = await env.executor.execute(decision, env.channel, None)

    assert outcome is ActionOutcome.FAILED
    assert env.channel.sent_texts() == [action_executor.SANCTION_FAILED_NOTICE]
    env.log_channel.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_ticket_schedules_once(env):
    session = TicketSession(channel_id=ChannelID(10), step="resolved")
    env.registry.put(10, session)
    decision = Decision(reply="Au revoir", action=ActionType.DELETE_TICKET)

    first = await env.executor.execute(decision, env.channel, session)
    second = await env.executor.execute(decision, env.channel, session)

    assert first is ActionOutcome.SCHEDULED
    assert second is ActionOutcome.ALREADY_CLOSING
    assert session.state is TicketState.CLOSING
    assert env.channel.sent_texts() == ["Suppression du ticket dans 5 secondes..."]

    await env.executor.drain()
    env.executor._sleep.assert_awaited_once_with(5.0)
    env.channel.delete.assert_awaited_once()
    assert env.registry.get(10) is None
    assert env.executor.pending_deletions == 0


@pytest.mark.asyncio
async def test_delete_of_recovered_session_is_registered_as_closing(env):
    session = TicketSession(channel_id=ChannelID(10), step="conversation", ephemeral=True)
    outcome = await env.executor.execute(Decision(reply="x", action=ActionType.DELETE_TICKET), env.channel, session)

    assert outcome is ActionOutcome.SCHEDULED
    assert env.registry.get(10).is_closing
    await env.executor.drain()
    assert env.registry.get(10) is None


@pytest.mark.asyncio
async def test_channel_already_gone_still_clears_session(env):
    session = TicketSession(channel_id=ChannelID(10))
    env.registry.put(10, session)
    env.channel.delete.side_effect = discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "gone")

    await env.executor.execute(Decision(reply="x", action=ActionType.DELETE_TICKET), env.channel, session)
    await env.executor.drain()

    assert env.registry.get(10) is None


@pytest.mark.asyncio
async def test_failed_channel_delete_keeps_ticket_closing_and_reports(env):
    session = TicketSession(channel_id=ChannelID(10))
    env.registry.put(10, session)
    env.channel.delete.side_effect = discord.Forbidden(SimpleNamespace(status=403, reason="Forbidden"), "no")

    await env.executor.execute(Decision(reply="x", action=ActionType.DELETE_TICKET), env.channel, session)
    await env.executor.drain()

    assert env.registry.get(10) is session
    assert session.state is TicketState.CLOSING
    assert env.channel.sent_texts()[-1] == action_executor.DELETE_FAILED_NOTICE


@pytest.mark.asyncio
async def test_delete_without_session_is_skipped(env):
    outcome = await env.executor.execute(Decision(reply="x", action=ActionType.DELETE_TICKET), env.channel, None)
    assert outcome is ActionOutcome.SKIPPED
    env.channel.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_ping_owner_mentions_owner(env):
    outcome = await env.executor.execute(Decision(reply="x", action=ActionType.PING_OWNER), env.channel, None)
    assert outcome is ActionOutcome.APPLIED
    assert env.channel.sent_texts() == [f"<@{OWNER_ID}>, ton intervention est demandée dans ce ticket."]
