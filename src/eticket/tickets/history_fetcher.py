"""Builds the model context for one ticket turn.

Reads the recent channel history, the guild channel directory and the staff
roster into a ConversationContext.
"""

from __future__ import annotations

from typing import List, Tuple

import discord

from eticket.datatypes.discord_datatypes import ChannelID, UserID
from eticket.datatypes.ticket_datatypes import (
    ChannelInfo,
    ConversationContext,
    TicketSession,
    TranscriptLine,
)
from eticket.roster.roster import Roster
from eticket.util import discord_utils
from eticket.util.logger import get_logger

logger = get_logger("history_fetcher")


async def fetch_transcript(
    channel: discord.abc.Messageable,
    before: discord.Message,
    history_limit: int,
) -> Tuple[TranscriptLine, ...]:
    """Return up to `history_limit` messages preceding `before`, oldest first.

    Permission or lookup failures yield an empty transcript; the turn still runs.
    """
    results: List[TranscriptLine] = []

    try:
        async for msg in channel.history(limit=history_limit, before=before):
            content = (msg.clean_content or "").strip()
            if not content:
                continue
            results.append(
                TranscriptLine(
                    author_id=UserID(msg.author.id),
                    author_name=str(msg.author),
                    content=content,
                    is_bot=bool(msg.author.bot),
                )
            )
    except discord.Forbidden:
        logger.warning("Missing permissions to read history of channel %s", getattr(channel, "id", "?"))
    except discord.HTTPException as exc:
        logger.warning("Could not fetch history of channel %s: %s", getattr(channel, "id", "?"), exc)

    results.reverse()
    return tuple(results)


def channel_directory(guild: discord.Guild) -> Tuple[ChannelInfo, ...]:
    channels = [
        ChannelInfo(
            id=ChannelID(channel.id),
            name=channel.name,
            type=discord_utils.channel_type_name(channel),
        )
        for channel in guild.channels
    ]
    return tuple(sorted(channels, key=lambda info: info.id.to_int()))


async def build_context(
    message: discord.Message,
    session: TicketSession,
    roster: Roster,
    history_limit: int,
) -> ConversationContext:
    """Assemble the per-turn context for the Decision Client."""
    transcript = await fetch_transcript(message.channel, message, history_limit)
    return ConversationContext(
        step=session.step,
        reason=session.reason,
        owner_id=roster.owner_id,
        author_id=UserID(message.author.id),
        latest_message=message.clean_content or "",
        attachment_count=len(message.attachments),
        staff=tuple(roster.list_staff()),
        channels=channel_directory(message.guild),
        transcript=transcript,
        guild_name=message.guild.name,
    )
