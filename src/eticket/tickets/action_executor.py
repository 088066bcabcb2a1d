"""
Apply a validated Decision to Discord.

Each action has one precondition and one effect:

    NONE           -> nothing
    BAN/KICK/MUTE  -> target resolves to a guild member who is neither owner
                      nor staff, and the bot outranks them with the needed
                      permission -> ban / kick / fixed-length timeout
    DELETE_TICKET  -> a session exists and is still OPEN -> mark CLOSING,
                      delete the channel after the grace delay
    PING_OWNER     -> mention the owner in the ticket

Sanctions cannot be undone, so the only safety net is the re-check done here
against the guild's live member and role data. A failed precondition sends a
"cannot sanction" notice and makes no API call. Discord errors and timeouts
are caught, logged and reported in the ticket; they never escape ``execute``.
"""

from __future__ import annotations

import asyncio
import datetime
from enum import Enum
from typing import Awaitable, Callable, Set

import discord

from eticket.configuration.ticket_settings import TicketSettings
from eticket.datatypes.action_datatypes import ActionType, Decision
from eticket.datatypes.ticket_datatypes import TicketSession, TicketState
from eticket.roster.roster import Roster
from eticket.tickets.session_registry import SessionRegistry
from eticket.ui.action_embed import create_sanction_embed
from eticket.util import discord_utils
from eticket.util.logger import get_logger

logger = get_logger("action_executor")

CANNOT_SANCTION_NOTICE = "Impossible d'appliquer la sanction à cet utilisateur."
SANCTION_FAILED_NOTICE = "La sanction n'a pas pu être appliquée (erreur Discord)."
DELETE_NOTICE = "Suppression du ticket dans {seconds} secondes..."
DELETE_FAILED_NOTICE = "Le ticket n'a pas pu être supprimé (erreur Discord). Un membre du staff doit le fermer manuellement."
PING_OWNER_NOTICE = "{mention}, ton intervention est demandée dans ce ticket."

_CHECKS = {
    ActionType.BAN: "ban",
    ActionType.KICK: "kick",
    ActionType.MUTE: "moderate",
}


class ActionOutcome(Enum):
    SKIPPED = "skipped"
    APPLIED = "applied"
    REFUSED = "refused"
    FAILED = "failed"
    SCHEDULED = "scheduled"
    ALREADY_CLOSING = "already_closing"


class ActionExecutor:
    """
    Executes decisions for the ticket controller.

    Args:
        roster: Used to protect owner and staff from sanctions and to find the owner.
        registry: Session registry; DELETE_TICKET updates and clears entries.
        settings: Grace delay, mute length, platform timeout, log channel name.
        sleep: Awaitable delay function, replaceable in tests.
    """

    def __init__(
        self,
        roster: Roster,
        registry: SessionRegistry,
        settings: TicketSettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._roster = roster
        self._registry = registry
        self._settings = settings
        self._sleep = sleep
        self._pending_deletions: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(
        self,
        decision: Decision,
        channel: discord.TextChannel,
        session: TicketSession | None,
    ) -> ActionOutcome:
        action = decision.action
        if action is ActionType.NONE:
            return ActionOutcome.SKIPPED
        if action.is_sanction:
            return await self._apply_sanction(decision, channel)
        if action is ActionType.DELETE_TICKET:
            return await self._close_ticket(channel, session)
        if action is ActionType.PING_OWNER:
            return await self._ping_owner(channel)
        logger.error("[EXECUTOR] Unhandled action %s", action)
        return ActionOutcome.SKIPPED

    def is_eligible_target(self, guild: discord.Guild, member: discord.Member, action: ActionType) -> bool:
        """Owner and staff are never sanctioned; otherwise Discord's hierarchy decides."""
        if self._roster.is_privileged(member.id):
            logger.warning("[EXECUTOR] Refusing %s against privileged user %s", action, member.id)
            return False
        if not discord_utils.can_sanction(guild, member, _CHECKS[action]):  # type: ignore[arg-type]
            logger.warning("[EXECUTOR] %s not permitted on %s (hierarchy or permissions)", action, member.id)
            return False
        return True

    async def drain(self) -> None:
        """Wait for every scheduled channel deletion to finish."""
        if self._pending_deletions:
            await asyncio.gather(*list(self._pending_deletions), return_exceptions=True)

    @property
    def pending_deletions(self) -> int:
        return len(self._pending_deletions)

    # ------------------------------------------------------------------
    # Sanctions
    # ------------------------------------------------------------------

    async def _apply_sanction(self, decision: Decision, channel: discord.TextChannel) -> ActionOutcome:
        action = decision.action
        guild = channel.guild
        member = discord_utils.resolve_member(guild, decision.target_user_id)

        if member is None:
            logger.warning("[EXECUTOR] %s target %s is not a member of guild %s", action, decision.target_user_id, guild.id)
            await self._notify(channel, CANNOT_SANCTION_NOTICE)
            return ActionOutcome.REFUSED

        if not self.is_eligible_target(guild, member, action):
            await self._notify(channel, CANNOT_SANCTION_NOTICE)
            return ActionOutcome.REFUSED

        reason = decision.reason or f"Ticket #{channel.name}"
        duration = datetime.timedelta(hours=self._settings.mute_hours) if action is ActionType.MUTE else None

        try:
            if action is ActionType.BAN:
                call = member.ban(reason=reason)
            elif action is ActionType.KICK:
                call = member.kick(reason=reason)
            else:
                call = member.timeout_for(duration, reason=reason)
            await discord_utils.bounded(call, self._settings.platform_timeout)
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[EXECUTOR] %s on %s failed: %s", action, member.id, exc)
            await self._notify(channel, SANCTION_FAILED_NOTICE)
            return ActionOutcome.FAILED

        logger.info(
            "[EXECUTOR] %s applied to %s (%s) in guild %s from ticket %s: %s",
            action, member, member.id, guild.id, channel.id, reason,
        )
        await self._notify(channel, f"[SYSTEM] Sanction appliquée : {action.value} pour {member.mention}.")
        await self._post_log(guild, create_sanction_embed(action, member, reason, channel, duration))
        return ActionOutcome.APPLIED

    # ------------------------------------------------------------------
    # Ticket closing
    # ------------------------------------------------------------------

    async def _close_ticket(self, channel: discord.TextChannel, session: TicketSession | None) -> ActionOutcome:
        if session is None:
            logger.warning("[EXECUTOR] DELETE_TICKET in channel %s without a session", channel.id)
            return ActionOutcome.SKIPPED
        if session.state is TicketState.CLOSING:
            logger.debug("[EXECUTOR] Ticket %s already closing", channel.id)
            return ActionOutcome.ALREADY_CLOSING

        session.state = TicketState.CLOSING
        # Ephemeral sessions are stored while closing so later turns see CLOSING
        self._registry.put(session.channel_id, session)

        delay = self._settings.grace_delay_seconds
        await self._notify(channel, DELETE_NOTICE.format(seconds=int(delay)))

        task = asyncio.create_task(self._delete_later(channel, delay), name=f"eticket-delete-{channel.id}")
        self._pending_deletions.add(task)
        task.add_done_callback(self._pending_deletions.discard)
        logger.info("[EXECUTOR] Ticket %s scheduled for deletion in %.1fs", channel.id, delay)
        return ActionOutcome.SCHEDULED

    async def _delete_later(self, channel: discord.TextChannel, delay: float) -> None:
        try:
            await self._sleep(delay)
            await discord_utils.bounded(
                channel.delete(reason="Ticket fermé"), self._settings.platform_timeout
            )
            logger.info("[EXECUTOR] Ticket channel %s deleted", channel.id)
        except discord.NotFound:
            logger.info("[EXECUTOR] Ticket channel %s was already deleted", channel.id)
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            # Channel still exists: the session stays CLOSING so no further turns run
            logger.error("[EXECUTOR] Failed to delete ticket channel %s: %s", channel.id, exc)
            await self._notify(channel, DELETE_FAILED_NOTICE)
            return
        self._registry.delete(channel.id)

    # ------------------------------------------------------------------
    # Owner ping
    # ------------------------------------------------------------------

    async def _ping_owner(self, channel: discord.TextChannel) -> ActionOutcome:
        owner_id = self._roster.owner_id
        if owner_id is None:
            logger.warning("[EXECUTOR] PING_OWNER requested but no owner is configured")
            return ActionOutcome.SKIPPED
        sent = await self._notify(channel, PING_OWNER_NOTICE.format(mention=owner_id.mention))
        return ActionOutcome.APPLIED if sent else ActionOutcome.FAILED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _notify(self, channel: discord.abc.Messageable, content: str) -> bool:
        try:
            await discord_utils.bounded(channel.send(content), self._settings.platform_timeout)
            return True
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[EXECUTOR] Could not send notice to %s: %s", getattr(channel, "id", "?"), exc)
            return False

    async def _post_log(self, guild: discord.Guild, embed: discord.Embed) -> None:
        log_channel = discord_utils.find_text_channel(guild, self._settings.log_channel_name)
        if log_channel is None:
            return
        try:
            await discord_utils.bounded(log_channel.send(embed=embed), self._settings.platform_timeout)
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[EXECUTOR] Could not post to log channel in guild %s: %s", guild.id, exc)
