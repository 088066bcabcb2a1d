"""
Owner-only bot identity commands: ``/bot setname``, ``/bot setavatar``,
``/bot setstatus``.
"""

import aiohttp
import discord
from discord import Option
from discord.ext import commands

from eticket.roster.roster import Roster
from eticket.ui.presence import STATUS_TYPES, PresenceSettings, apply_presence
from eticket.util.logger import get_logger

logger = get_logger("bot_cmds")

AVATAR_MAX_BYTES = 8 * 1024 * 1024


async def download_image(url: str, timeout: float = 15.0) -> bytes:
    """Fetch an image for the avatar.

    Raises:
        ValueError: Non-200 response, non-image content, or an oversized file.
        aiohttp.ClientError: Transport failure.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    async with aiohttp.ClientSession(timeout=client_timeout) as session:
        async with session.get(url) as response:
            if response.status != 200:
                raise ValueError(f"HTTP {response.status}")
            if not response.content_type.startswith("image/"):
                raise ValueError(f"not an image ({response.content_type})")
            data = await response.read()
    if len(data) > AVATAR_MAX_BYTES:
        raise ValueError("image too large")
    return data


class BotIdentityCog(commands.Cog):
    """Owner-only customisation of the bot's name, avatar and presence."""

    identity_group = discord.SlashCommandGroup("bot", "Configurer le bot (propriétaire seulement)")

    def __init__(self, bot: discord.Bot, roster: Roster, presence: PresenceSettings) -> None:
        self.bot = bot
        self.roster = roster
        self.presence = presence
        logger.info("[BOT CMDS] Bot identity cog loaded")

    async def _ensure_owner(self, ctx: discord.ApplicationContext) -> bool:
        if self.roster.is_owner(ctx.author.id):
            return True
        await ctx.respond("Vous n'avez pas la permission.", ephemeral=True)
        return False

    @identity_group.command(name="setname", description="Changer le nom du bot")
    async def setname(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Nouveau nom", required=True),  # type: ignore
    ) -> None:
        if not await self._ensure_owner(ctx):
            return
        try:
            await self.bot.user.edit(username=name)
        except discord.HTTPException as exc:
            await ctx.respond(f"Erreur : {exc.text or exc}", ephemeral=True)
            return
        logger.info("[BOT CMDS] Username changed to %s by %s", name, ctx.author.id)
        await ctx.respond(f"Nom changé pour : {name}")

    @identity_group.command(name="setavatar", description="Changer l'avatar du bot")
    async def setavatar(
        self,
        ctx: discord.ApplicationContext,
        url: Option(str, "URL de l'image", required=True),  # type: ignore
    ) -> None:
        if not await self._ensure_owner(ctx):
            return
        await ctx.defer(ephemeral=True)
        try:
            image = await download_image(url)
            await self.bot.user.edit(avatar=image)
        except (ValueError, aiohttp.ClientError, discord.HTTPException) as exc:
            logger.warning("[BOT CMDS] Avatar change failed: %s", exc)
            await ctx.send_followup(f"Erreur : {exc}", ephemeral=True)
            return
        logger.info("[BOT CMDS] Avatar changed by %s", ctx.author.id)
        await ctx.send_followup("Avatar changé.", ephemeral=True)

    @identity_group.command(name="setstatus", description="Changer le statut du bot")
    async def setstatus(
        self,
        ctx: discord.ApplicationContext,
        type: Option(  # type: ignore
            str,
            "Type de statut",
            choices=[
                discord.OptionChoice(name="Play", value="PLAYING"),
                discord.OptionChoice(name="Watch", value="WATCHING"),
                discord.OptionChoice(name="Stream", value="STREAMING"),
            ],
            required=True,
        ),
        text: Option(str, "Texte du statut ({server_count} disponible)", required=True),  # type: ignore
    ) -> None:
        if not await self._ensure_owner(ctx):
            return
        self.presence.status_type = type if type in STATUS_TYPES else "PLAYING"
        self.presence.status_text = text
        await apply_presence(self.bot, self.presence)
        await ctx.respond("Statut mis à jour.", ephemeral=True)


def setup(bot: discord.Bot, roster: Roster, presence: PresenceSettings) -> None:
    bot.add_cog(BotIdentityCog(bot, roster, presence))
