"""Event listener Cog for eTicket.

Handles bot lifecycle events: presence on connect and when the server count
changes, persistent view registration, and session cleanup when a ticket
channel is deleted by someone other than the bot.
"""

import discord
from discord.ext import commands

from eticket.tickets.ticket_controller import TicketController
from eticket.ui.presence import PresenceSettings, apply_presence
from eticket.ui.ticket_views import OpenTicketView
from eticket.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Handles Discord bot lifecycle events."""

    def __init__(
        self,
        bot: discord.Bot,
        controller: TicketController,
        presence: PresenceSettings,
    ) -> None:
        self.bot = bot
        self.controller = controller
        self.presence = presence
        self._views_registered = False
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected; user info not yet available.")
            return

        # on_ready fires again after reconnects
        if not self._views_registered:
            self.bot.add_view(OpenTicketView(self.controller))
            self._views_registered = True

        await apply_presence(self.bot, self.presence)
        logger.info(
            "Bot connected as %s (ID: %s) on %d server(s)",
            self.bot.user, self.bot.user.id, len(self.bot.guilds),
        )

    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild) -> None:
        logger.info("[EVENTS LISTENER] Joined guild %s (ID: %s)", guild.name, guild.id)
        await apply_presence(self.bot, self.presence)

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        logger.info("[EVENTS LISTENER] Removed from guild %s (ID: %s)", guild.name, guild.id)
        for channel in guild.channels:
            self.controller.forget_channel(channel.id)
        await apply_presence(self.bot, self.presence)

    @commands.Cog.listener(name="on_guild_channel_delete")
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        self.controller.forget_channel(channel.id)


def setup(bot: discord.Bot, controller: TicketController, presence: PresenceSettings) -> None:
    """Register the EventsListenerCog with the bot."""
    bot.add_cog(EventsListenerCog(bot, controller, presence))
