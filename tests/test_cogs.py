from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import OWNER_ID, FakeGuild, FakeMember, FakeMessage
from eticket.cog.commands import bot_cmds, ticket_cmds
from eticket.cog.listener import events_listener, message_listener
from eticket.roster.roster import Roster
from eticket.ui.presence import PresenceSettings
from eticket.ui.ticket_views import OPEN_TICKET_CUSTOM_ID, OpenTicketView


@pytest.fixture
def fake_bot():
    return SimpleNamespace(
        user=SimpleNamespace(id=999, edit=AsyncMock()),
        guilds=[FakeGuild(), FakeGuild(guild_id=2)],
        add_view=MagicMock(),
        change_presence=AsyncMock(),
        add_cog=MagicMock(),
    )


def make_ctx(author, guild=None):
    ctx: Any = SimpleNamespace(
        author=author,
        guild=guild,
        channel=SimpleNamespace(send=AsyncMock()),
        channel_id=20,
        respond=AsyncMock(),
        defer=AsyncMock(),
        send_followup=AsyncMock(),
    )
    return ctx


# ---------- /ticket ----------

@pytest.mark.asyncio
async def test_ticket_panel_requires_administrator(fake_bot):
    cog = ticket_cmds.TicketCommandsCog(fake_bot, SimpleNamespace())
    ctx = make_ctx(FakeMember(300, "bob"), FakeGuild())

    await ticket_cmds.TicketCommandsCog.ticket.callback(cog, ctx)

    ctx.channel.send.assert_not_awaited()
    ctx.respond.assert_awaited_once_with("Vous n'avez pas la permission.", ephemeral=True)


@pytest.mark.asyncio
async def test_ticket_panel_is_posted_with_persistent_button(fake_bot):
    controller = SimpleNamespace(open_ticket_from_interaction=AsyncMock())
    cog = ticket_cmds.TicketCommandsCog(fake_bot, controller)
    ctx = make_ctx(FakeMember(300, "admin", admin=True), FakeGuild(name="Serveur"))

    await ticket_cmds.TicketCommandsCog.ticket.callback(cog, ctx)

    kwargs = ctx.channel.send.await_args.kwargs
    view = kwargs["view"]
    assert isinstance(view, OpenTicketView)
    assert view.timeout is None
    assert view.children[0].custom_id == OPEN_TICKET_CUSTOM_ID
    assert kwargs["embed"].footer.text == "Serveur"


# ---------- /bot ----------

@pytest.mark.asyncio
async def test_bot_commands_are_owner_only(fake_bot):
    presence = PresenceSettings()
    cog = bot_cmds.BotIdentityCog(fake_bot, Roster(OWNER_ID), presence)

    ctx = make_ctx(FakeMember(300, "bob"))
    await bot_cmds.BotIdentityCog.setname.callback(cog, ctx, "Nouveau")
    fake_bot.user.edit.assert_not_awaited()

    ctx = make_ctx(FakeMember(OWNER_ID, "owner"))
    await bot_cmds.BotIdentityCog.setname.callback(cog, ctx, "Nouveau")
    fake_bot.user.edit.assert_awaited_once_with(username="Nouveau")


@pytest.mark.asyncio
async def test_setavatar_downloads_and_applies(fake_bot, monkeypatch):
    download = AsyncMock(return_value=b"img")
    monkeypatch.setattr(bot_cmds, "download_image", download)
    cog = bot_cmds.BotIdentityCog(fake_bot, Roster(OWNER_ID), PresenceSettings())
    ctx = make_ctx(FakeMember(OWNER_ID, "owner"))

    await bot_cmds.BotIdentityCog.setavatar.callback(cog, ctx, "https://example.org/a.png")

    download.assert_awaited_once_with("https://example.org/a.png")
    fake_bot.user.edit.assert_awaited_once_with(avatar=b"img")


@pytest.mark.asyncio
async def test_setavatar_reports_bad_image(fake_bot, monkeypatch):
    monkeypatch.setattr(bot_cmds, "download_image", AsyncMock(side_effect=ValueError("not an image")))
    cog = bot_cmds.BotIdentityCog(fake_bot, Roster(OWNER_ID), PresenceSettings())
    ctx = make_ctx(FakeMember(OWNER_ID, "owner"))

    await bot_cmds.BotIdentityCog.setavatar.callback(cog, ctx, "https://example.org/a.txt")

    fake_bot.user.edit.assert_not_awaited()
    assert "not an image" in ctx.send_followup.await_args.args[0]


@pytest.mark.asyncio
async def test_setstatus_updates_presence(fake_bot):
    presence = PresenceSettings()
    cog = bot_cmds.BotIdentityCog(fake_bot, Roster(OWNER_ID), presence)
    ctx = make_ctx(FakeMember(OWNER_ID, "owner"))

    await bot_cmds.BotIdentityCog.setstatus.callback(cog, ctx, "WATCHING", "{server_count} serveurs")

    assert presence.status_type == "WATCHING"
    activity = fake_bot.change_presence.await_args.kwargs["activity"]
    assert activity.name == "2 serveurs"


# ---------- listeners ----------

@pytest.mark.asyncio
async def test_on_ready_registers_view_once_and_sets_presence(fake_bot):
    cog = events_listener.EventsListenerCog(fake_bot, SimpleNamespace(), PresenceSettings())

    await cog.on_ready()
    await cog.on_ready()

    fake_bot.add_view.assert_called_once()
    assert isinstance(fake_bot.add_view.call_args.args[0], OpenTicketView)
    assert fake_bot.change_presence.await_count == 2
    assert fake_bot.change_presence.await_args.kwargs["activity"].name == "GERE 2 serveurs"


@pytest.mark.asyncio
async def test_channel_delete_forgets_session(fake_bot):
    controller = SimpleNamespace(forget_channel=MagicMock())
    cog = events_listener.EventsListenerCog(fake_bot, controller, PresenceSettings())

    await cog.on_guild_channel_delete(SimpleNamespace(id=10))

    controller.forget_channel.assert_called_once_with(10)


@pytest.mark.asyncio
async def test_guild_join_refreshes_presence(fake_bot):
    cog = events_listener.EventsListenerCog(fake_bot, SimpleNamespace(), PresenceSettings())
    await cog.on_guild_join(FakeGuild(guild_id=3))
    fake_bot.change_presence.assert_awaited_once()


@pytest.mark.asyncio
async def test_message_listener_routes_commands_and_tickets(fake_bot):
    guild = FakeGuild()
    channel = guild.add_channel("ticket-bob", channel_id=10)
    prefix_handler = SimpleNamespace(
        is_command=lambda message: message.content.startswith("+"),
        dispatch=AsyncMock(return_value=True),
    )
    controller = SimpleNamespace(handle_message=AsyncMock())
    cog = message_listener.MessageListenerCog(fake_bot, controller, prefix_handler)
    member = FakeMember(300, "bob")

    await cog.on_message(FakeMessage(member, channel, "+list"))
    await cog.on_message(FakeMessage(member, channel, "bonjour"))
    await cog.on_message(FakeMessage(FakeMember(5, "bot", bot=True), channel, "bonjour"))

    prefix_handler.dispatch.assert_awaited_once()
    controller.handle_message.assert_awaited_once()
    assert controller.handle_message.await_args.args[0].content == "bonjour"


def test_setup_functions_register_cogs(fake_bot):
    events_listener.setup(fake_bot, SimpleNamespace(), PresenceSettings())
    message_listener.setup(fake_bot, SimpleNamespace(), SimpleNamespace())
    ticket_cmds.setup(fake_bot, SimpleNamespace())
    bot_cmds.setup(fake_bot, Roster(OWNER_ID), PresenceSettings())
    registered = [call.args[0] for call in fake_bot.add_cog.call_args_list]
    assert [type(cog).__name__ for cog in registered] == [
        "EventsListenerCog",
        "MessageListenerCog",
        "TicketCommandsCog",
        "BotIdentityCog",
    ]
