"""
Privileged slash commands: staff access, leaving a server, manual mutes.

Every command requires the invoker to be the owner or on the staff roster.
Failures are reported ephemerally to the invoker only.

Quick usage example
    from eticket.cog.commands import staff_cmds
    staff_cmds.setup(bot, roster, controller, settings)
"""

import asyncio
import datetime

import discord
from discord import Option
from discord.ext import commands

from eticket.configuration.ticket_settings import TicketSettings
from eticket.datatypes.action_datatypes import ActionType
from eticket.datatypes.discord_datatypes import UserID
from eticket.datatypes.ticket_datatypes import StaffEntry
from eticket.roster.roster import Roster
from eticket.tickets.ticket_controller import TicketController
from eticket.ui.action_embed import create_sanction_embed
from eticket.util import discord_utils
from eticket.util.logger import get_logger

logger = get_logger("staff_cmds")

NO_PERMISSION = "Vous n'avez pas la permission."


class StaffCommandsCog(commands.Cog):
    """Commands reserved to the owner and staff."""

    def __init__(
        self,
        bot: discord.Bot,
        roster: Roster,
        controller: TicketController,
        settings: TicketSettings,
    ) -> None:
        self.bot = bot
        self.roster = roster
        self.controller = controller
        self.settings = settings
        logger.info("[STAFF CMDS] Staff commands cog loaded")

    async def check_privileged(self, ctx: discord.ApplicationContext) -> bool:
        """Return True if the invoker may proceed; otherwise answer ephemerally."""
        if self.roster.is_privileged(ctx.author.id):
            return True
        await ctx.respond(NO_PERMISSION, ephemeral=True)
        return False

    @commands.slash_command(name="accès", description="Donner l'accès staff à un membre")
    async def grant_access(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "Membre à ajouter au staff", required=True),  # type: ignore
    ) -> None:
        if not await self.check_privileged(ctx):
            return
        await ctx.defer(ephemeral=True)

        entry = StaffEntry(id=UserID(user.id), display_name=user.display_name)
        try:
            await self.roster.add_staff(entry)
        except Exception as exc:
            logger.error("[STAFF CMDS] Could not add %s to staff: %s", user.id, exc)
            await ctx.send_followup("Impossible d'enregistrer ce membre.", ephemeral=True)
            return

        updated = 0
        if ctx.guild is not None and isinstance(user, discord.Member):
            updated = await self.controller.grant_staff_access(ctx.guild, user)
        logger.info("[STAFF CMDS] %s granted staff access to %s (%d tickets)", ctx.author.id, user.id, updated)
        await ctx.send_followup(
            f"{user.mention} fait maintenant partie du staff ({updated} ticket(s) ouvert(s) accessible(s)).",
            ephemeral=True,
        )

    @commands.slash_command(name="leave", description="Faire quitter ce serveur au bot")
    async def leave(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "Membre à l'origine de la demande", required=False, default=None),  # type: ignore
    ) -> None:
        if not await self.check_privileged(ctx):
            return
        if ctx.guild is None:
            await ctx.respond("Cette commande ne fonctionne que sur un serveur.", ephemeral=True)
            return

        requester = user or ctx.author
        guild = ctx.guild
        logger.warning(
            "[STAFF CMDS] Leaving guild %s (%s) on request of %s via %s",
            guild.name, guild.id, requester.id, ctx.author.id,
        )
        await ctx.respond(f"Je quitte {guild.name}.", ephemeral=True)
        try:
            await discord_utils.bounded(guild.leave(), self.settings.platform_timeout)
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[STAFF CMDS] Could not leave guild %s: %s", guild.id, exc)

    @commands.slash_command(name="mute", description="Rendre muet un membre (24h)")
    async def mute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "Membre à rendre muet", required=True),  # type: ignore
        reason: Option(str, "Raison", required=False, default="Aucune raison fournie."),  # type: ignore
    ) -> None:
        if not await self.check_privileged(ctx):
            return
        if ctx.guild is None or not isinstance(user, discord.Member):
            await ctx.respond("Ce membre n'est pas sur ce serveur.", ephemeral=True)
            return
        if not self.controller.executor.is_eligible_target(ctx.guild, user, ActionType.MUTE):
            await ctx.respond("Impossible d'appliquer la sanction à cet utilisateur.", ephemeral=True)
            return

        duration = datetime.timedelta(hours=self.settings.mute_hours)
        try:
            await discord_utils.bounded(
                user.timeout_for(duration, reason=reason), self.settings.platform_timeout
            )
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[STAFF CMDS] Mute of %s failed: %s", user.id, exc)
            await ctx.respond("La sanction n'a pas pu être appliquée.", ephemeral=True)
            return

        logger.info("[STAFF CMDS] %s muted %s for %s: %s", ctx.author.id, user.id, duration, reason)
        await ctx.respond(f"{user.mention} est muet pour {self.settings.mute_hours} h.", ephemeral=True)
        log_channel = discord_utils.find_text_channel(ctx.guild, self.settings.log_channel_name)
        if log_channel is not None:
            try:
                await discord_utils.bounded(
                    log_channel.send(embed=create_sanction_embed(ActionType.MUTE, user, reason, duration=duration)),
                    self.settings.platform_timeout,
                )
            except (discord.HTTPException, asyncio.TimeoutError) as exc:
                logger.error("[STAFF CMDS] Could not post mute log: %s", exc)

    @commands.slash_command(name="unmute", description="Retirer le mode muet d'un membre")
    async def unmute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "Membre", required=True),  # type: ignore
    ) -> None:
        if not await self.check_privileged(ctx):
            return
        if not isinstance(user, discord.Member):
            await ctx.respond("Ce membre n'est pas sur ce serveur.", ephemeral=True)
            return
        try:
            await discord_utils.bounded(
                user.remove_timeout(reason=f"Unmute par {ctx.author}"), self.settings.platform_timeout
            )
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[STAFF CMDS] Unmute of %s failed: %s", user.id, exc)
            await ctx.respond("Impossible de retirer le mode muet.", ephemeral=True)
            return
        logger.info("[STAFF CMDS] %s unmuted %s", ctx.author.id, user.id)
        await ctx.respond(f"{user.mention} n'est plus muet.", ephemeral=True)


def setup(
    bot: discord.Bot,
    roster: Roster,
    controller: TicketController,
    settings: TicketSettings,
) -> None:
    bot.add_cog(StaffCommandsCog(bot, roster, controller, settings))
