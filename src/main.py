"""Singular chat proxy entry point."""

import asyncio
import logging
import signal

from src.config import settings
from src.server.app import ChatServer

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def _serve() -> None:
    server = ChatServer()
    await server.start()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await stop.wait()
    finally:
        await server.stop()


def main() -> None:
    """Start the chat proxy HTTP server."""
    logger.info(
        "Starting Singular chat proxy with model %s (conversation persistence %s)",
        settings.chat_model,
        "on" if settings.persist_conversations else "off",
    )
    asyncio.run(_serve())


if __name__ == "__main__":
    main()
