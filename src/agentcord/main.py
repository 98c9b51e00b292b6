"""
Agentcord Discord Bot
=====================

A Discord bot that turns messages addressed to it into moderation and server
administration actions, either directly from call syntax or through a
language model, and answers everything else conversationally.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. AGENTCORD_HOME environment variable, if set.
    2. If running in a frozen/compiled context, the executable's directory.
    3. Otherwise the repository root (two levels above this package).
    """
    if env_home := os.getenv("AGENTCORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from typing import Tuple

import discord
from dotenv import load_dotenv

from agentcord.actions.action_catalog import ActionCatalog, build_default_catalog
from agentcord.ai.model_bridge import ModelBridge, create_client
from agentcord.configuration.app_configuration import AppConfig, load_app_config
from agentcord.database.db_connection import ConnectionManager
from agentcord.database.ledger_store import SqliteLedgerStore
from agentcord.dispatch.action_executor import ActionExecutor
from agentcord.dispatch.call_parser import DirectTextCallParser
from agentcord.dispatch.command_dispatcher import CommandDispatcher
from agentcord.dispatch.intent_router import IntentRouter
from agentcord.moderation.content_filter import ContentFilter
from agentcord.moderation.moderation_ledger import ModerationLedger
from agentcord.util.logger import get_logger, handle_exception


logger = get_logger("main")

# Placeholder so the client can be built without a key; requests then fail soft.
MISSING_AI_KEY = "missing-api-key"


def load_environment() -> Tuple[str, str]:
    """Load environment variables and return ``(discord_token, ai_api_key)``.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)

    api_key = os.getenv("AI_API_KEY")
    if not api_key:
        logger.warning("'AI_API_KEY' not set; conversational replies will use the AI failure message.")
        api_key = MISSING_AI_KEY
    return token, api_key


def build_intents() -> discord.Intents:
    """Construct the Discord intents Agentcord needs."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def create_bot(
    config: AppConfig,
    catalog: ActionCatalog,
    ledger: ModerationLedger,
    api_key: str,
) -> discord.Bot:
    """Instantiate the Discord bot, build the dispatch pipeline and register the cogs."""
    from agentcord.bot.cogs import events_listener, message_listener

    bot = discord.Bot(intents=build_intents())
    persona = config.persona

    executor = ActionExecutor(bot, catalog, ledger)
    bridge = ModelBridge(create_client(config.ai_settings, api_key), persona, catalog, config.ai_settings)
    dispatcher = CommandDispatcher(
        router=IntentRouter(config.command_prefix, config.allow_mention_trigger, persona.name),
        parser=DirectTextCallParser(),
        bridge=bridge,
        executor=executor,
        persona=persona,
    )
    content_filter = ContentFilter(config.content_filter_patterns)

    events_listener.setup(bot, config.command_prefix)
    message_listener.setup(bot, dispatcher, executor, ledger, content_filter, persona)
    logger.info("All cogs loaded successfully (%d actions, %d filter patterns).", len(catalog), len(content_filter))
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Connect to Discord and run until the connection closes."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, connection: ConnectionManager) -> None:
    """Close the Discord connection and the database."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord bot: %s", exc)

    await connection.close()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap configuration, persistence and the bot, returning an exit code."""
    token, api_key = load_environment()
    config = load_app_config()
    connection = ConnectionManager()

    try:
        logger.info("Initializing database and loading moderation ledger...")
        await connection.open(config.database_path)
        store = SqliteLedgerStore(connection)
        await store.initialize()
        ledger = ModerationLedger(store)
        await ledger.load()
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        await connection.close()
        return 1

    bot = None
    exit_code = 0
    try:
        bot = create_bot(config, build_default_catalog(), ledger, api_key)
        await start_bot(bot, token)
    except discord.LoginFailure as exc:
        logger.critical("Failed to log in to Discord: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, connection)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting Agentcord…")
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
