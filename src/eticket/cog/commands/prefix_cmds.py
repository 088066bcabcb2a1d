"""
Text-prefix commands parsed from plain messages.

    +server             list connected servers                 (owner/staff)
    +inv <serverId>     create an invite for a server          (owner/staff)
    +add <mention>      add a staff member                     (owner)
    +del <mention>      remove a staff member                  (owner)
    +list               list staff                             (owner)
    +avatar <file>      set the bot avatar from an attachment  (owner)
    +logs               create the private log channel         (administrator)

Unauthorised callers get a short refusal in the same channel; nothing else
happens.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict

import aiosqlite
import discord

from eticket.configuration.ticket_settings import TicketSettings
from eticket.datatypes.discord_datatypes import GuildID, UserID
from eticket.datatypes.ticket_datatypes import StaffEntry
from eticket.roster.roster import Roster
from eticket.util import discord_utils
from eticket.util.logger import get_logger

logger = get_logger("prefix_cmds")

PREFIX = "+"
NO_PERMISSION = "Vous n'avez pas la permission."
INVITE_MAX_AGE = 3600

Handler = Callable[[discord.Message, str], Awaitable[None]]


class PrefixCommandHandler:
    """Dispatches ``+command`` messages to handlers after the authorization check."""

    def __init__(self, bot: discord.Bot, roster: Roster, settings: TicketSettings) -> None:
        self.bot = bot
        self.roster = roster
        self.settings = settings
        self._commands: Dict[str, tuple[str, Handler]] = {
            "server": ("privileged", self.cmd_server),
            "inv": ("privileged", self.cmd_invite),
            "add": ("owner", self.cmd_add),
            "del": ("owner", self.cmd_del),
            "list": ("owner", self.cmd_list),
            "avatar": ("owner", self.cmd_avatar),
            "logs": ("admin", self.cmd_logs),
        }

    @staticmethod
    def parse(content: str) -> tuple[str, str] | None:
        """Split ``+name args`` into (name, args); None when not a prefix command."""
        if not content.startswith(PREFIX):
            return None
        body = content[len(PREFIX):].strip()
        if not body:
            return None
        name, _, args = body.partition(" ")
        return name.lower(), args.strip()

    def is_command(self, message: discord.Message) -> bool:
        parsed = self.parse(message.content or "")
        return parsed is not None and parsed[0] in self._commands

    def _authorized(self, level: str, message: discord.Message) -> bool:
        if level == "owner":
            return self.roster.is_owner(message.author.id)
        if level == "privileged":
            return self.roster.is_privileged(message.author.id)
        return discord_utils.has_administrator(message.author)

    async def dispatch(self, message: discord.Message) -> bool:
        """Run the command in `message`. Returns False when it is not a known command."""
        parsed = self.parse(message.content or "")
        if parsed is None or parsed[0] not in self._commands:
            return False
        name, args = parsed
        level, handler = self._commands[name]

        if not self._authorized(level, message):
            logger.info("[PREFIX] %s denied +%s", message.author.id, name)
            await self._reply(message, NO_PERMISSION)
            return True

        try:
            await handler(message, args)
        except (discord.HTTPException, asyncio.TimeoutError, aiosqlite.Error) as exc:
            logger.error("[PREFIX] +%s failed: %s", name, exc)
            await self._reply(message, f"Erreur : {exc}")
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def cmd_server(self, message: discord.Message, args: str) -> None:
        guilds = sorted(self.bot.guilds, key=lambda g: g.id)
        if not guilds:
            await self._reply(message, "Aucun serveur.")
            return
        lines = [f"- {g.name} (`{g.id}`), {g.member_count or 0} membres" for g in guilds]
        await self._reply(message, "\n".join([f"**{len(guilds)} serveur(s)**", *lines]))

    async def cmd_invite(self, message: discord.Message, args: str) -> None:
        guild_id = GuildID.parse(args.split()[0]) if args else None
        guild = self.bot.get_guild(guild_id.to_int()) if guild_id else None
        if guild is None:
            await self._reply(message, "Usage : +inv <serverId> (serveur inconnu).")
            return
        channel = discord_utils.first_invitable_channel(guild)
        if channel is None:
            await self._reply(message, "Aucun salon ne permet de créer une invitation.")
            return
        invite = await discord_utils.bounded(
            channel.create_invite(max_age=INVITE_MAX_AGE, max_uses=1, reason=f"+inv par {message.author}"),
            self.settings.platform_timeout,
        )
        logger.info("[PREFIX] Invite for guild %s created by %s", guild.id, message.author.id)
        await self._reply(message, invite.url)

    async def cmd_add(self, message: discord.Message, args: str) -> None:
        if not message.mentions:
            await self._reply(message, "Usage : +add @membre")
            return
        user = message.mentions[0]
        await self.roster.add_staff(StaffEntry(id=UserID(user.id), display_name=user.display_name))
        await self._reply(message, f"{user.mention} ajouté au staff.")

    async def cmd_del(self, message: discord.Message, args: str) -> None:
        if not message.mentions:
            await self._reply(message, "Usage : +del @membre")
            return
        user = message.mentions[0]
        if await self.roster.remove_staff(user.id):
            await self._reply(message, f"{user.mention} retiré du staff.")
        else:
            await self._reply(message, f"{user.mention} ne fait pas partie du staff.")

    async def cmd_list(self, message: discord.Message, args: str) -> None:
        staff = self.roster.list_staff()
        if not staff:
            await self._reply(message, "Le staff est vide.")
            return
        lines = [f"- {entry.display_name} ({entry.mention})" for entry in staff]
        await self._reply(message, "\n".join([f"**Staff ({len(staff)})**", *lines]))

    async def cmd_avatar(self, message: discord.Message, args: str) -> None:
        if not message.attachments:
            await self._reply(message, "Usage : +avatar avec une image en pièce jointe.")
            return
        attachment = message.attachments[0]
        if not (attachment.content_type or "").startswith("image/"):
            await self._reply(message, "La pièce jointe doit être une image.")
            return
        image = await attachment.read()
        await discord_utils.bounded(self.bot.user.edit(avatar=image), self.settings.platform_timeout)
        logger.info("[PREFIX] Avatar changed by %s", message.author.id)
        await self._reply(message, "Avatar changé.")

    async def cmd_logs(self, message: discord.Message, args: str) -> None:
        guild = message.guild
        if guild is None:
            return
        name = self.settings.log_channel_name
        existing = discord_utils.find_text_channel(guild, name)
        if existing is not None:
            await self._reply(message, f"Le salon de logs existe déjà : {existing.mention}")
            return
        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            guild.me: discord.PermissionOverwrite(view_channel=True, send_messages=True, embed_links=True),
        }
        channel = await discord_utils.bounded(
            guild.create_text_channel(name=name, overwrites=overwrites, reason=f"+logs par {message.author}"),
            self.settings.platform_timeout,
        )
        logger.info("[PREFIX] Log channel %s created in guild %s", channel.id, guild.id)
        await self._reply(message, f"Salon de logs créé : {channel.mention}")

    async def _reply(self, message: discord.Message, content: str) -> None:
        try:
            await discord_utils.bounded(message.channel.send(content), self.settings.platform_timeout)
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[PREFIX] Could not reply in %s: %s", message.channel.id, exc)
