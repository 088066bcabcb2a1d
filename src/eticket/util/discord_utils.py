"""
discord_utils.py
================

Low-level, stateless Discord helpers for eTicket: author filtering,
permission checks mirroring Discord's own "bannable / kickable /
moderatable" rules, member resolution from model output, and bounded API
calls.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Literal, TypeVar, Union

import discord

from eticket.datatypes.discord_datatypes import UserID
from eticket.util.logger import get_logger

logger = get_logger("discord_utils")

T = TypeVar("T")

SanctionCheck = Literal["ban", "kick", "moderate"]

_REQUIRED_PERMISSION = {
    "ban": "ban_members",
    "kick": "kick_members",
    "moderate": "moderate_members",
}


def is_ignored_author(author: Union[discord.User, discord.Member]) -> bool:
    """Bots (including ourselves) never drive a ticket turn."""
    return bool(getattr(author, "bot", False))


def has_administrator(member: Any) -> bool:
    perms = getattr(member, "guild_permissions", None)
    return bool(getattr(perms, "administrator", False))


def can_sanction(guild: discord.Guild, member: discord.Member, check: SanctionCheck) -> bool:
    """
    Return True when the bot could apply `check` to `member`.

    Mirrors Discord's hierarchy rules: the target must not be the guild owner
    or the bot itself, the bot needs the matching permission, and the bot's
    top role must sit strictly above the target's. Timeouts additionally
    cannot apply to administrators.
    """
    me = getattr(guild, "me", None)
    if me is None or member.id == me.id or member.id == guild.owner_id:
        return False

    perms = me.guild_permissions
    if not (getattr(perms, "administrator", False) or getattr(perms, _REQUIRED_PERMISSION[check], False)):
        return False

    if check == "moderate" and has_administrator(member):
        return False

    try:
        return me.top_role > member.top_role
    except (AttributeError, TypeError):
        return False


def resolve_member(guild: discord.Guild, target: UserID | str | None) -> discord.Member | None:
    """Find a guild member from an id, a mention, or a member name."""
    if target is None:
        return None
    user_id = target if isinstance(target, UserID) else UserID.parse(target)
    if user_id is not None:
        return guild.get_member(user_id.to_int())
    return guild.get_member_named(str(target).strip().lstrip("@"))


async def bounded(call: Awaitable[T], timeout: float) -> T:
    """Await a Discord API call with an upper time bound."""
    return await asyncio.wait_for(call, timeout=timeout)


def find_text_channel(guild: discord.Guild, name: str) -> discord.TextChannel | None:
    return discord.utils.get(guild.text_channels, name=name)


def channel_type_name(channel: Any) -> str:
    kind = getattr(channel, "type", None)
    return str(getattr(kind, "name", kind or "unknown"))


def first_invitable_channel(guild: discord.Guild) -> discord.TextChannel | None:
    """First text channel where the bot may create an invite."""
    me = guild.me
    for channel in guild.text_channels:
        if channel.permissions_for(me).create_instant_invite:
            return channel
    return None
