"""
Ticket panel command.

``/ticket`` posts an embed with the persistent "open ticket" button in the
current channel. Only server administrators may post a panel; members open
tickets through the button, which calls TicketController.open_ticket.
"""

import discord
from discord.ext import commands

from eticket.tickets.ticket_controller import TicketController
from eticket.ui.action_embed import create_ticket_panel_embed
from eticket.ui.ticket_views import OpenTicketView
from eticket.util import discord_utils
from eticket.util.logger import get_logger

logger = get_logger("ticket_cmds")


class TicketCommandsCog(commands.Cog):
    """Slash command posting the ticket panel."""

    def __init__(self, bot: discord.Bot, controller: TicketController) -> None:
        self.bot = bot
        self.controller = controller
        logger.info("[TICKET CMDS] Ticket commands cog loaded")

    @commands.slash_command(name="ticket", description="Publier le panneau d'ouverture de tickets")
    async def ticket(self, ctx: discord.ApplicationContext) -> None:
        if ctx.guild is None:
            await ctx.respond("Cette commande ne fonctionne que sur un serveur.", ephemeral=True)
            return
        if not discord_utils.has_administrator(ctx.author):
            await ctx.respond("Vous n'avez pas la permission.", ephemeral=True)
            return

        try:
            await ctx.channel.send(
                embed=create_ticket_panel_embed(ctx.guild.name),
                view=OpenTicketView(self.controller),
            )
        except discord.HTTPException as exc:
            logger.error("[TICKET CMDS] Could not post panel in %s: %s", ctx.channel_id, exc)
            await ctx.respond("Impossible de publier le panneau ici.", ephemeral=True)
            return
        await ctx.respond("Panneau de tickets publié.", ephemeral=True)


def setup(bot: discord.Bot, controller: TicketController) -> None:
    bot.add_cog(TicketCommandsCog(bot, controller))
