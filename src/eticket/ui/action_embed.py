"""
Embed creation utilities for sanction logs and the ticket panel.
"""

import datetime
import discord
from eticket.datatypes.action_datatypes import ActionType

ACTION_EMOJIS = {
    ActionType.BAN: "🔨",
    ActionType.KICK: "👢",
    ActionType.MUTE: "⏱️",
}

ACTION_COLORS = {
    ActionType.BAN: discord.Color.dark_red(),
    ActionType.KICK: discord.Color.red(),
    ActionType.MUTE: discord.Color.orange(),
}


def create_sanction_embed(
    action_type: ActionType,
    member: discord.Member,
    reason: str,
    ticket_channel: discord.abc.GuildChannel | None = None,
    duration: datetime.timedelta | None = None,
) -> discord.Embed:
    """
    Create the log embed for a sanction applied from a ticket.

    Args:
        action_type: BAN, KICK or MUTE.
        member: Sanctioned member.
        reason: Reason given by the model or the moderator.
        ticket_channel: Ticket the decision came from, if any.
        duration: Timeout length for MUTE.
    """
    emoji = ACTION_EMOJIS.get(action_type, "⚙️")
    embed = discord.Embed(
        title=f"{emoji} {action_type.value.capitalize()}",
        color=ACTION_COLORS.get(action_type, discord.Color.red()),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="Membre", value=f"{member.mention} (`{member.id}`)", inline=True)
    if ticket_channel is not None:
        embed.add_field(name="Ticket", value=ticket_channel.mention, inline=True)
    embed.add_field(name="Raison", value=reason or "Aucune raison fournie.", inline=False)

    if duration and duration.total_seconds() > 0:
        expires = discord.utils.utcnow() + duration
        embed.add_field(
            name="Durée",
            value=f"{int(duration.total_seconds() // 3600)} h (fin <t:{int(expires.timestamp())}:R>)",
            inline=False,
        )
    return embed


def create_ticket_panel_embed(guild_name: str) -> discord.Embed:
    embed = discord.Embed(
        title="🎫 Support",
        description=(
            "Besoin d'aide, d'un signalement ou d'une réclamation ?\n"
            "Clique sur le bouton ci-dessous pour ouvrir un ticket privé."
        ),
        color=discord.Color.blurple(),
    )
    embed.set_footer(text=guild_name)
    return embed
