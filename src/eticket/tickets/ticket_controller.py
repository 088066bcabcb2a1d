"""
Ticket lifecycle: opening, per-message turns, and cleanup.

States of a ticket channel::

    NO_SESSION --open--> OPEN(step) --turn--> OPEN(newStep)
                              |
                              +--DELETE_TICKET--> CLOSING --grace delay--> removed

A turn is: resolve session -> build context -> one model call -> send reply
-> apply newStep -> execute action. The whole turn runs under the channel's
lock, so two quick messages in one ticket are processed one after the other
and the second sees the first one's step. Messages arriving while a ticket is
CLOSING are ignored.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Set

import discord

from eticket.ai.llm_engine import DecisionClient
from eticket.configuration.ticket_settings import TicketSettings
from eticket.datatypes.action_datatypes import Decision
from eticket.datatypes.discord_datatypes import ChannelID, UserID
from eticket.datatypes.ticket_datatypes import (
    INITIAL_STEP,
    RECOVERED_STEP,
    TicketSession,
)
from eticket.roster.roster import Roster
from eticket.tickets import history_fetcher
from eticket.tickets.action_executor import ActionExecutor
from eticket.tickets.session_registry import SessionRegistry
from eticket.util import discord_utils
from eticket.util.logger import get_logger

logger = get_logger("ticket_controller")

OPENING_PROMPT = "Bonjour {mention}, quel est le but du ticket ?"
TICKET_CREATED = "Ticket créé : {channel}"
TICKET_CREATE_FAILED = "Erreur lors de la création du ticket."
GENERIC_FAILURE = "Une erreur est survenue lors du traitement de votre demande."
MAX_REASON_LENGTH = 200


class TicketController:
    """
    Orchestrates ticket sessions.

    Args:
        roster: Owner/staff roster (staff visibility, context facts).
        registry: Session registry owned by this controller.
        decision_client: Model adapter.
        executor: Applies decisions.
        settings: Ticket settings.
        sleep: Delay function, replaceable in tests.
    """

    def __init__(
        self,
        roster: Roster,
        registry: SessionRegistry,
        decision_client: DecisionClient,
        executor: ActionExecutor,
        settings: TicketSettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.roster = roster
        self.registry = registry
        self.decision_client = decision_client
        self.executor = executor
        self.settings = settings
        self._sleep = sleep
        self._background: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Opening
    # ------------------------------------------------------------------

    def build_overwrites(
        self, guild: discord.Guild, opener: discord.abc.User
    ) -> Dict[discord.abc.Snowflake, discord.PermissionOverwrite]:
        """Deny everyone; allow the opener, the bot and (optionally) all staff."""
        allow = discord.PermissionOverwrite(
            view_channel=True,
            send_messages=True,
            read_message_history=True,
            attach_files=True,
        )
        overwrites: Dict[discord.abc.Snowflake, discord.PermissionOverwrite] = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            opener: allow,
            guild.me: allow,
        }
        if self.settings.staff_visibility:
            for entry in self.roster.list_staff():
                member = guild.get_member(entry.id.to_int())
                if member is not None and member.id != opener.id:
                    overwrites[member] = allow
        return overwrites

    async def open_ticket(self, guild: discord.Guild, opener: discord.abc.User) -> discord.TextChannel:
        """Create the private channel, register OPEN("init") and queue the opening prompt.

        Raises:
            discord.HTTPException, asyncio.TimeoutError: channel creation failed;
                nothing is registered in that case.
        """
        channel = await discord_utils.bounded(
            guild.create_text_channel(
                name=f"{self.settings.channel_prefix}{opener.name}",
                overwrites=self.build_overwrites(guild, opener),
                reason=f"Ticket ouvert par {opener}",
            ),
            self.settings.platform_timeout,
        )
        channel_id = ChannelID(channel.id)
        self.registry.put(
            channel_id,
            TicketSession(channel_id=channel_id, step=INITIAL_STEP, opener_id=UserID(opener.id)),
        )
        logger.info("[TICKETS] Opened ticket %s (%s) for %s in guild %s", channel.name, channel.id, opener.id, guild.id)

        self._spawn(self._send_opening_prompt(channel, opener), name=f"eticket-open-{channel.id}")
        return channel

    async def open_ticket_from_interaction(self, interaction: discord.Interaction) -> None:
        """Button / slash-command entry point; replies ephemerally to the opener."""
        if interaction.guild is None:
            await interaction.response.send_message("Les tickets ne fonctionnent que sur un serveur.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True)
        try:
            channel = await self.open_ticket(interaction.guild, interaction.user)
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[TICKETS] Could not create ticket for %s: %s", interaction.user.id, exc)
            await interaction.followup.send(TICKET_CREATE_FAILED, ephemeral=True)
            return
        await interaction.followup.send(TICKET_CREATED.format(channel=channel.mention), ephemeral=True)

    async def _send_opening_prompt(self, channel: discord.TextChannel, opener: discord.abc.User) -> None:
        # Short wait so the channel is visible to the opener before the bot speaks
        await self._sleep(self.settings.opening_delay_seconds)
        try:
            await discord_utils.bounded(
                channel.send(OPENING_PROMPT.format(mention=opener.mention)),
                self.settings.platform_timeout,
            )
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[TICKETS] Opening prompt failed in %s: %s", channel.id, exc)

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def resolve_session(self, channel: discord.abc.GuildChannel) -> TicketSession | None:
        """Registry entry, or an ephemeral OPEN("conversation") for ticket-named channels."""
        session = self.registry.get(channel.id)
        if session is not None:
            return session
        if getattr(channel, "name", "").startswith(self.settings.channel_prefix):
            return TicketSession(channel_id=ChannelID(channel.id), step=RECOVERED_STEP, ephemeral=True)
        return None

    async def handle_message(self, message: discord.Message) -> Decision | None:
        """Process one inbound message. Returns the Decision, or None if ignored or failed."""
        if message.guild is None or discord_utils.is_ignored_author(message.author):
            return None

        channel = message.channel
        if self.resolve_session(channel) is None:
            return None

        async with self.registry.lock(channel.id):
            # Re-read under the lock; a previous turn may have closed the ticket
            session = self.resolve_session(channel)
            if session is None or session.is_closing:
                logger.debug("[TICKETS] Ignoring message in closing/unknown channel %s", channel.id)
                return None

            try:
                return await self._run_turn(message, session)
            except Exception:
                logger.exception("[TICKETS] Turn failed in channel %s", channel.id)
                await self._safe_send(channel, GENERIC_FAILURE)
                return None

    async def _run_turn(self, message: discord.Message, session: TicketSession) -> Decision:
        channel = message.channel
        context = await history_fetcher.build_context(
            message, session, self.roster, self.settings.history_limit
        )
        decision = await self.decision_client.decide(context)

        await self._safe_send(channel, decision.reply)

        if session.reason is None and session.step == INITIAL_STEP and message.clean_content:
            session.reason = message.clean_content.strip()[:MAX_REASON_LENGTH]
        if decision.new_step:
            logger.debug("[TICKETS] Channel %s: step %s -> %s", channel.id, session.step, decision.new_step)
            session.step = decision.new_step

        await self.executor.execute(decision, channel, session)
        return decision

    # ------------------------------------------------------------------
    # Staff access and cleanup
    # ------------------------------------------------------------------

    def is_ticket_channel(self, channel: discord.abc.GuildChannel) -> bool:
        return channel.id in self.registry or getattr(channel, "name", "").startswith(self.settings.channel_prefix)

    async def grant_staff_access(self, guild: discord.Guild, member: discord.Member) -> int:
        """Let `member` see every open ticket in `guild`. Returns the number of channels updated."""
        updated = 0
        for channel in guild.text_channels:
            if not self.is_ticket_channel(channel):
                continue
            session = self.registry.get(channel.id)
            if session is not None and session.is_closing:
                continue
            try:
                await discord_utils.bounded(
                    channel.set_permissions(
                        member,
                        view_channel=True,
                        send_messages=True,
                        read_message_history=True,
                        reason="Accès staff",
                    ),
                    self.settings.platform_timeout,
                )
                updated += 1
            except (discord.HTTPException, asyncio.TimeoutError) as exc:
                logger.error("[TICKETS] Could not grant %s access to %s: %s", member.id, channel.id, exc)
        return updated

    def forget_channel(self, channel_id: int) -> None:
        """Drop the session of a channel deleted outside the bot's control."""
        if self.registry.delete(channel_id) is not None:
            logger.info("[TICKETS] Session for deleted channel %s cleared", channel_id)

    async def shutdown(self) -> None:
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.executor.drain()

    async def wait_background(self) -> None:
        """Wait for pending opening prompts (used by tests and shutdown)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _spawn(self, coro: Awaitable[None], name: str) -> None:
        task = asyncio.create_task(coro, name=name)  # type: ignore[arg-type]
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _safe_send(self, channel: discord.abc.Messageable, content: str) -> None:
        try:
            await discord_utils.bounded(channel.send(content), self.settings.platform_timeout)
        except (discord.HTTPException, asyncio.TimeoutError) as exc:
            logger.error("[TICKETS] Could not send message to %s: %s", getattr(channel, "id", "?"), exc)
