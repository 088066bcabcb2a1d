"""Bot presence (status line) configurable from ``/bot setstatus``."""

from __future__ import annotations

from dataclasses import dataclass

import discord

from eticket.util.logger import get_logger

logger = get_logger("presence")

STATUS_TYPES = ("PLAYING", "WATCHING", "STREAMING")
STREAM_URL = "https://www.twitch.tv/discord"


@dataclass(slots=True)
class PresenceSettings:
    """Presence kind plus a text template; ``{server_count}`` is substituted."""

    status_type: str = "STREAMING"
    status_text: str = "GERE {server_count} serveurs"

    def render(self, server_count: int) -> str:
        return self.status_text.replace("{server_count}", str(server_count))


def build_activity(presence: PresenceSettings, server_count: int) -> discord.BaseActivity:
    text = presence.render(server_count)
    if presence.status_type == "STREAMING":
        return discord.Streaming(name=text, url=STREAM_URL)
    if presence.status_type == "WATCHING":
        return discord.Activity(type=discord.ActivityType.watching, name=text)
    return discord.Game(name=text)


async def apply_presence(bot: discord.Bot, presence: PresenceSettings) -> None:
    if bot.user is None:
        return
    try:
        await bot.change_presence(activity=build_activity(presence, len(bot.guilds)))
    except Exception as exc:
        logger.warning("[PRESENCE] Could not update presence: %s", exc)
