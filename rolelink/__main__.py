"""
rolelink.__main__ — Entry point for ``python -m rolelink``
==========================================================

Wiring:
1. Load .env (secrets).
2. Build the config; exit if any required value is missing.
3. Open the store (JSON file or SQL).
4. Create the shared Discord REST client.
5. Start the bot and the OAuth web server on one event loop.

Run with::

    python -m rolelink
"""

from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn
from dotenv import load_dotenv

from rolelink.api.main import create_app
from rolelink.bot.core import RoleLinkBot
from rolelink.config import ConfigError, RoleLinkConfig, load_config
from rolelink.database.store import Store, build_store
from rolelink.services.discord_api import DiscordAPI

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("rolelink")


async def serve(cfg: RoleLinkConfig, store: Store) -> None:
    """Run the bot and the web server until either stops."""
    api = DiscordAPI(cfg)
    bot = RoleLinkBot(cfg=cfg, store=store, api=api)
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(cfg, store, api),
            host=cfg.web_host,
            port=cfg.web_port,
            log_config=None,
        )
    )

    try:
        async with bot:
            bot_task = asyncio.create_task(bot.start(cfg.bot_token), name="discord-bot")
            web_task = asyncio.create_task(server.serve(), name="web")
            done, pending = await asyncio.wait(
                {bot_task, web_task}, return_when=asyncio.FIRST_COMPLETED,
            )
            # Whichever half stopped first takes the other one down with it.
            server.should_exit = True
            await bot.close()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                exc = task.exception()
                if exc is not None:
                    raise exc
    finally:
        await api.aclose()


def main() -> None:
    """Bootstrap and run RoleLink."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Configuration.
    try:
        cfg = load_config()
    except ConfigError as exc:
        logger.critical("%s  Copy .env.example → .env and fill it in.", exc)
        sys.exit(1)

    # 3. Store.
    store = build_store(cfg)
    logger.info("Store ready (%s backend)", cfg.storage_backend)

    # 4–5. Bot + web.
    logger.info("Starting RoleLink on %s:%d…", cfg.web_host, cfg.web_port)
    try:
        asyncio.run(serve(cfg, store))
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
