"""
eTicket Discord Assistant
=========================

A Discord bot that opens private support tickets and lets a language model
drive each ticket conversation: answering the member, sanctioning abusive
users, pinging the owner, and closing the ticket when it is resolved.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. ETICKET_HOME environment variable, if set.
    2. If running frozen (PyInstaller, Nuitka), the executable's directory.
    3. Otherwise the repository root (two levels above this package).
    """
    if env_home := os.getenv("ETICKET_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from dataclasses import dataclass

import discord
from dotenv import load_dotenv

from eticket.ai.llm_engine import DecisionClient
from eticket.configuration.app_configuration import app_config
from eticket.database.db_connection import db_connection
from eticket.roster.roster import Roster
from eticket.tickets.action_executor import ActionExecutor
from eticket.tickets.session_registry import SessionRegistry
from eticket.tickets.ticket_controller import TicketController
from eticket.ui.presence import PresenceSettings
from eticket.util.logger import get_logger, handle_exception

logger = get_logger("main")


@dataclass(slots=True)
class Runtime:
    """Services shared by all cogs for one bot process."""

    bot: discord.Bot
    roster: Roster
    controller: TicketController


def load_environment() -> str:
    """Load ``.env`` and return the Discord bot token.

    Raises
    ------
    SystemExit
        If ``DISCORD_BOT_TOKEN`` is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for guild, member and message-content events."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def load_cogs(runtime: Runtime, presence: PresenceSettings) -> None:
    """Register every cog with the bot, injecting the shared services."""
    from eticket.cog.commands import bot_cmds, prefix_cmds, staff_cmds, ticket_cmds
    from eticket.cog.listener import events_listener, message_listener

    settings = app_config.ticket_settings
    prefix_handler = prefix_cmds.PrefixCommandHandler(runtime.bot, runtime.roster, settings)

    events_listener.setup(runtime.bot, runtime.controller, presence)
    message_listener.setup(runtime.bot, runtime.controller, prefix_handler)
    ticket_cmds.setup(runtime.bot, runtime.controller)
    staff_cmds.setup(runtime.bot, runtime.roster, runtime.controller, settings)
    bot_cmds.setup(runtime.bot, runtime.roster, presence)

    logger.info("All cogs loaded successfully.")


def create_runtime() -> Runtime:
    """Instantiate the bot and wire the ticket services together."""
    settings = app_config.ticket_settings
    bot = discord.Bot(intents=build_intents())

    roster = Roster(settings.owner_id, db=db_connection)
    registry = SessionRegistry()
    decision_client = DecisionClient(app_config.ai_settings, target_policy=settings.target_policy)
    executor = ActionExecutor(roster, registry, settings)
    controller = TicketController(roster, registry, decision_client, executor, settings)

    runtime = Runtime(bot=bot, roster=roster, controller=controller)
    load_cogs(runtime, PresenceSettings())
    return runtime


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(runtime: Runtime | None) -> None:
    """Cancel pending ticket work, close the bot and the database."""
    if runtime is not None:
        try:
            await runtime.controller.shutdown()
        except Exception as exc:
            logger.exception("Error during ticket controller shutdown: %s", exc)

        if not runtime.bot.is_closed():
            try:
                await runtime.bot.close()
            except Exception as exc:
                logger.exception("Error while closing the Discord client: %s", exc)

    await db_connection.close()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database, roster and bot, returning an exit code."""
    token = load_environment()

    try:
        logger.info("Opening database at %s…", app_config.database_path)
        await db_connection.open(app_config.database_path)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        runtime = create_runtime()
        await runtime.roster.load()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await shutdown_runtime(None)
        return 1

    exit_code = 0
    try:
        await start_bot(runtime.bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(runtime)
    return exit_code


def main() -> int:
    """Console entry point."""
    sys.excepthook = handle_exception
    logger.info("Starting eTicket…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
