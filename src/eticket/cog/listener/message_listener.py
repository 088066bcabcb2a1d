"""Message listener Cog for eTicket.

One responsibility: route each inbound message either to the prefix-command
handler or to the ticket controller. All ticket logic lives in
``eticket.tickets``; all command logic in ``eticket.cog.commands``.
"""

import discord
from discord.ext import commands

from eticket.cog.commands.prefix_cmds import PrefixCommandHandler
from eticket.tickets.ticket_controller import TicketController
from eticket.util import discord_utils
from eticket.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """
    Thin event listener.

    Parameters
    ----------
    bot:
        Discord bot instance.
    controller:
        Runs ticket turns.
    prefix_handler:
        Handles ``+command`` messages.
    """

    def __init__(
        self,
        bot: discord.Bot,
        controller: TicketController,
        prefix_handler: PrefixCommandHandler,
    ) -> None:
        self.bot = bot
        self._controller = controller
        self._prefix_handler = prefix_handler
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        if discord_utils.is_ignored_author(message.author):
            return

        if self._prefix_handler.is_command(message):
            await self._prefix_handler.dispatch(message)
            return

        if message.guild is None:
            return

        logger.debug(
            "Received message from %s in %s: %s",
            message.author,
            message.channel.id,
            (message.clean_content or "[no text]")[:80],
        )
        await self._controller.handle_message(message)


def setup(
    bot: discord.Bot,
    controller: TicketController,
    prefix_handler: PrefixCommandHandler,
) -> None:
    """Register the MessageListenerCog with the bot."""
    bot.add_cog(MessageListenerCog(bot, controller, prefix_handler))
