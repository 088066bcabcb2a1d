"""Persistent button view attached to the ticket panel."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from eticket.util.logger import get_logger

if TYPE_CHECKING:
    from eticket.tickets.ticket_controller import TicketController

logger = get_logger("ticket_views")

OPEN_TICKET_CUSTOM_ID = "eticket:open"


class OpenTicketView(discord.ui.View):
    """Panel view with one "open ticket" button.

    ``timeout=None`` plus a fixed ``custom_id`` keeps the button working after
    a restart once the view is re-registered with ``bot.add_view``.
    """

    def __init__(self, controller: "TicketController") -> None:
        super().__init__(timeout=None)
        self.controller = controller

    @discord.ui.button(
        label="Ouvrir un ticket",
        style=discord.ButtonStyle.primary,
        emoji="🎫",
        custom_id=OPEN_TICKET_CUSTOM_ID,
    )
    async def open_ticket(self, button: discord.ui.Button, interaction: discord.Interaction) -> None:
        await self.controller.open_ticket_from_interaction(interaction)
