"""
Console entry point: chat with the configured model from a terminal.
"""

import asyncio
import logging
import os
import sys

from . import __version__
from .config import ChatModelConfig, ConfigurationError
from .plugin import ChatModelPlugin
from .services.storage import SQLiteDatabase

logger = logging.getLogger(__name__)

CONSOLE_USER_ID = "console-user"
CONSOLE_BOT_ID = "console-bot"
CLEAR_LINE = "/clear"


class ConsoleSession:
    """A private-chat session backed by stdout."""

    def __init__(self, content: str, user_id: str = CONSOLE_USER_ID):
        self.user_id = user_id
        self.channel_id = user_id
        self.self_id = CONSOLE_BOT_ID
        self.content = content
        self.handled = False

    async def send(self, text: str) -> None:
        print(text, flush=True)


async def _no_handler() -> bool:
    return False


async def run_console(plugin: ChatModelPlugin, prompt: str = "> ") -> None:
    """Feed stdin lines to the plugin until EOF."""
    while True:
        try:
            line = await asyncio.to_thread(input, prompt)
        except EOFError:
            break

        line = line.strip()
        if not line:
            continue

        session = ConsoleSession(line)
        if line == CLEAR_LINE:
            await session.send(await plugin.clear_context(session))
            continue

        await plugin.middleware(session, _no_handler)


async def _run(config: ChatModelConfig, db_path: str) -> None:
    database = SQLiteDatabase(db_path)
    try:
        plugin = ChatModelPlugin(config, database)
        try:
            await run_console(plugin)
        finally:
            await plugin.dispose()
    finally:
        await database.close()


def main() -> int:
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logger.info(f"Starting chat model console v{__version__}")

    try:
        config = ChatModelConfig.from_env()
        db_path = os.getenv("CHAT_MODEL_DB_PATH", "chat_model.db")
        asyncio.run(_run(config, db_path))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Console stopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
