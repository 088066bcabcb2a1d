import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from fakes import OWNER_ID, STAFF_ID, FakeGuild, FakeMember, FakeMessage, make_settings
from eticket.cog.commands import prefix_cmds
from eticket.cog.commands.prefix_cmds import NO_PERMISSION, PrefixCommandHandler
from eticket.datatypes.discord_datatypes import UserID
from eticket.datatypes.ticket_datatypes import StaffEntry
from eticket.roster.roster import Roster


@pytest.fixture
def env():
    roster = Roster(OWNER_ID)
    roster._staff[UserID(STAFF_ID)] = StaffEntry(UserID(STAFF_ID), "Alex")
    guild = FakeGuild(guild_id=77, name="Serveur")
    channel = guild.add_channel("general", channel_id=20)
    bot = SimpleNamespace(
        guilds=[guild],
        get_guild=lambda gid: guild if gid == 77 else None,
        user=SimpleNamespace(edit=AsyncMock()),
    )
    handler = PrefixCommandHandler(bot, roster, make_settings())
    return SimpleNamespace(
        roster=roster, guild=guild, channel=channel, bot=bot, handler=handler,
        owner=FakeMember(OWNER_ID, "owner"), staff=FakeMember(STAFF_ID, "alex"),
        stranger=FakeMember(300, "bob"),
    )


def test_parse():
    assert PrefixCommandHandler.parse("+inv 123") == ("inv", "123")
    assert PrefixCommandHandler.parse("+LIST") == ("list", "")
    assert PrefixCommandHandler.parse("+") is None
    assert PrefixCommandHandler.parse("hello +list") is None


def test_is_command_only_matches_known_names(env):
    assert env.handler.is_command(FakeMessage(env.owner, env.channel, "+server"))
    assert not env.handler.is_command(FakeMessage(env.owner, env.channel, "+1 je suis d'accord"))


@pytest.mark.asyncio
async def test_unknown_command_is_not_handled(env):
    assert await env.handler.dispatch(FakeMessage(env.owner, env.channel, "+dance")) is False
    env.channel.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_stranger_is_refused(env):
    handled = await env.handler.dispatch(FakeMessage(env.stranger, env.channel, "+server"))
    assert handled is True
    assert env.channel.sent_texts() == [NO_PERMISSION]


@pytest.mark.asyncio
async def test_staff_can_list_servers_but_not_manage_staff(env):
    await env.handler.dispatch(FakeMessage(env.staff, env.channel, "+server"))
    assert "Serveur (`77`)" in env.channel.sent_texts()[0]

    await env.handler.dispatch(FakeMessage(env.staff, env.channel, "+add", mentions=[env.stranger]))
    assert env.channel.sent_texts()[-1] == NO_PERMISSION
    assert not env.roster.is_staff(300)


@pytest.mark.asyncio
async def test_owner_adds_lists_and_removes_staff(env):
    await env.handler.dispatch(FakeMessage(env.owner, env.channel, "+add <@300>", mentions=[env.stranger]))
    assert env.roster.is_staff(300)

    await env.handler.dispatch(FakeMessage(env.owner, env.channel, "+list"))
    listing = env.channel.sent_texts()[-1]
    assert "Staff (2)" in listing
    assert "<@300>" in listing

    await env.handler.dispatch(FakeMessage(env.owner, env.channel, "+del <@300>", mentions=[env.stranger]))
    assert not env.roster.is_staff(300)
    assert env.channel.sent_texts()[-1] == "<@300> retiré du staff."


@pytest.mark.asyncio
async def test_add_without_mention_shows_usage(env):
    await env.handler.dispatch(FakeMessage(env.owner, env.channel, "+add"))
    assert env.channel.sent_texts() == ["Usage : +add @membre"]


@pytest.mark.asyncio
async def test_invite_for_known_and_unknown_server(env):
    await env.handler.dispatch(FakeMessage(env.staff, env.channel, "+inv 77"))
    assert env.channel.sent_texts()[-1] == "https://discord.gg/abc"
    assert env.guild.text_channels[0].create_invite.await_args.kwargs["max_uses"] == 1

    await env.handler.dispatch(FakeMessage(env.staff, env.channel, "+inv 12345"))
    assert env.channel.sent_texts()[-1].startswith("Usage : +inv")


@pytest.mark.asyncio
async def test_avatar_requires_image_attachment(env):
    await env.handler.dispatch(FakeMessage(env.owner, env.channel, "+avatar"))
    assert env.channel.sent_texts()[-1].startswith("Usage : +avatar")

    image = SimpleNamespace(content_type="image/png", read=AsyncMock(return_value=b"png"))
    await env.handler.dispatch(FakeMessage(env.owner, env.channel, "+avatar", attachments=[image]))
    env.bot.user.edit.assert_awaited_once_with(avatar=b"png")


@pytest.mark.asyncio
async def test_logs_requires_administrator_and_creates_channel(env):
    await env.handler.dispatch(FakeMessage(env.stranger, env.channel, "+logs"))
    assert env.channel.sent_texts()[-1] == NO_PERMISSION

    admin = FakeMember(400, "admin", admin=True)
    await env.handler.dispatch(FakeMessage(admin, env.channel, "+logs"))
    env.guild.create_text_channel.assert_awaited_once()
    assert env.guild.create_text_channel.await_args.kwargs["name"] == "eticket-logs"

    await env.handler.dispatch(FakeMessage(admin, env.channel, "+logs"))
    assert env.channel.sent_texts()[-1].startswith("Le salon de logs existe déjà")


@pytest.mark.asyncio
async def test_discord_error_is_reported(env):
    env.bot.user.edit.side_effect = prefix_cmds.discord.HTTPException(
        SimpleNamespace(status=400, reason="Bad Request"), "too fast"
    )
    image = SimpleNamespace(content_type="image/png", read=AsyncMock(return_value=b"png"))
    await env.handler.dispatch(FakeMessage(env.owner, env.channel, "+avatar", attachments=[image]))
    assert env.channel.sent_texts()[-1].startswith("Erreur :")


@pytest.mark.asyncio
async def test_stalled_reply_is_bounded(env):
    async def stall(*args, **kwargs):
        await asyncio.sleep(5)

    env.handler.settings = make_settings(platform_timeout=0.01)
    env.channel.send.side_effect = stall

    assert await env.handler.dispatch(FakeMessage(env.staff, env.channel, "+server")) is True
    env.channel.send.assert_awaited_once()
