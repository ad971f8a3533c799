"""
rolelink.bot.cogs.membership — Member Role Change Capture
==========================================================

Listens for GUILD_MEMBER_UPDATE and hands each (before, after) pair to
:class:`~rolelink.services.sync_service.RoleSyncService`.  Requires the
GUILD_MEMBERS privileged intent.

Each update runs as its own named task so a slow metadata write for one
member never delays another, and unloading the Cog cancels whatever is
still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

if TYPE_CHECKING:
    from rolelink.bot.core import RoleLinkBot

logger = logging.getLogger(__name__)


class Membership(commands.Cog, name="Membership"):
    """Schedules a role-connection sync for every member update."""

    def __init__(self, bot: RoleLinkBot) -> None:
        self.bot = bot
        self._tasks: set[asyncio.Task] = set()

    async def cog_unload(self) -> None:
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Cancelled %d in-flight role sync task(s)", len(pending))

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        self.schedule(before, after)

    def schedule(self, before: discord.Member, after: discord.Member) -> asyncio.Task:
        """Start a sync task for one update and track it until it finishes."""
        task = asyncio.get_running_loop().create_task(
            self.bot.sync.handle_member_update(before, after),
            name=f"role-sync:{after.guild.id}:{after.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


async def setup(bot: RoleLinkBot) -> None:
    await bot.add_cog(Membership(bot))
