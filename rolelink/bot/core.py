"""
rolelink.bot.core — Bot Instance & Cog Loader
==============================================

:class:`RoleLinkBot` is a ``commands.Bot`` subclass that:

1. Carries the shared config, store and Discord REST client so every Cog
   can reach them via ``self.bot.cfg`` / ``self.bot.store`` / ``self.bot.sync``.
2. Loads the Cogs listed in :data:`EXTENSIONS`.
3. Syncs the slash-command tree on ready (guild-scoped when
   ``DEV_GUILD_ID`` is set, global otherwise).
"""

from __future__ import annotations

import logging

import discord
from discord.ext import commands

from rolelink.config import RoleLinkConfig
from rolelink.database.store import Store
from rolelink.services.discord_api import DiscordAPI
from rolelink.services.schema_service import SchemaService
from rolelink.services.sync_service import RoleSyncService

logger = logging.getLogger(__name__)

EXTENSIONS: list[str] = [
    "rolelink.bot.cogs.membership",
    "rolelink.bot.cogs.admin",
]


class RoleLinkBot(commands.Bot):
    """Bot subclass holding project-wide state.

    Parameters
    ----------
    cfg:
        The :class:`RoleLinkConfig` built at startup.
    store:
        Token + mapping store shared with the web app.
    api:
        Discord REST client shared with the web app.
    """

    def __init__(self, cfg: RoleLinkConfig, store: Store, api: DiscordAPI) -> None:
        # GUILD_MEMBERS is privileged — enable it in the Developer Portal,
        # otherwise on_member_update never carries role changes.
        intents = discord.Intents.default()
        intents.members = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            description="Linked Roles bridge",
        )

        self.cfg = cfg
        self.store = store
        self.api = api
        self.sync = RoleSyncService(cfg, store, api)
        self.schema = SchemaService(api)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load all Cog extensions; one broken Cog shouldn't stop the rest."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Bot ready %s (ID: %s)", self.user, self.user.id)
        await self._sync_commands()

    async def _sync_commands(self) -> None:
        """Register admin slash commands with Discord."""
        try:
            if self.cfg.dev_guild_id:
                guild = discord.Object(id=self.cfg.dev_guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info("Synced %d commands to dev guild %s", len(synced), self.cfg.dev_guild_id)
            else:
                synced = await self.tree.sync()
                logger.info("Admin commands registered globally (%d).", len(synced))
        except discord.HTTPException:
            logger.exception("Failed to register commands")
