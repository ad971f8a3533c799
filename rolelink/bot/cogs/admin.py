"""
rolelink.bot.cogs.admin — Admin Slash Commands
===============================================

Discord slash commands for server admins:
- /register_metadata — add or replace a role-connection metadata key
- /map_role — watch a guild role and mirror it into a metadata key
- /unmap_role — stop watching a guild role
- /list_mappings — show this server's role → key mappings

All commands require the Manage Server permission and always answer
ephemerally, including when the store or Discord fails.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
import httpx
from discord import app_commands
from discord.ext import commands

from rolelink.database.engine import run_db
from rolelink.engine.schema import (
    MetadataDefinition,
    MetadataType,
    is_valid_key,
)
from rolelink.services.schema_service import SchemaRegistrationError

if TYPE_CHECKING:
    from rolelink.bot.core import RoleLinkBot

logger = logging.getLogger(__name__)

STORE_FAILURE = "Failed to update role mappings. Check logs."


def has_manage_guild():
    """Check that the invoker holds Manage Server in a guild context."""
    async def predicate(interaction: discord.Interaction) -> bool:
        if interaction.guild_id is None:
            return False
        perms = interaction.permissions
        return bool(perms and perms.manage_guild)
    return app_commands.check(predicate)


class Admin(commands.Cog, name="Admin"):
    """Metadata schema and role-mapping administration."""

    def __init__(self, bot: RoleLinkBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # /register_metadata
    # -------------------------------------------------------------------
    @app_commands.command(
        name="register_metadata",
        description="Register role-connection metadata (bot).",
    )
    @app_commands.describe(
        key="metadata key",
        name="human name",
        description="description",
        metadata_type="type (1=string,2=boolean,3=integer_equal)",
    )
    @app_commands.rename(metadata_type="type")
    @app_commands.choices(
        metadata_type=[
            app_commands.Choice(name=t.name.lower(), value=t.value)
            for t in MetadataType
        ],
    )
    @has_manage_guild()
    async def register_metadata(
        self,
        interaction: discord.Interaction,
        key: str,
        name: str,
        description: str,
        metadata_type: int,
    ) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            definition = MetadataDefinition(
                key=key,
                name=name,
                description=description,
                type=MetadataType(metadata_type),
            )
            await self.bot.schema.register(definition)
        except ValueError as exc:  # includes SchemaValidationError
            await interaction.followup.send(f"❌ {exc}", ephemeral=True)
            return
        except (SchemaRegistrationError, httpx.HTTPError):
            logger.exception("Metadata registration for %r failed", key)
            await interaction.followup.send(
                "Failed to register metadata. Check logs.", ephemeral=True,
            )
            return

        await interaction.followup.send(
            "Metadata registered (bot) — Guilds can now use it in Links.",
            ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /map_role
    # -------------------------------------------------------------------
    @app_commands.command(name="map_role", description="Map a guild role to a metadata key.")
    @app_commands.describe(
        source_role="role to watch",
        metadata_key="metadata key to set",
    )
    @has_manage_guild()
    async def map_role(
        self,
        interaction: discord.Interaction,
        source_role: discord.Role,
        metadata_key: str,
    ) -> None:
        if not is_valid_key(metadata_key):
            await interaction.response.send_message(
                "❌ Metadata key must be 1-50 characters of a-z, 0-9 or underscore.",
                ephemeral=True,
            )
            return

        try:
            await run_db(
                self.bot.store.set_mapping,
                interaction.guild_id,
                source_role.id,
                metadata_key,
            )
        except Exception:
            logger.exception(
                "Failed to save mapping %s -> %s in guild %s",
                source_role.id, metadata_key, interaction.guild_id,
            )
            await interaction.response.send_message(STORE_FAILURE, ephemeral=True)
            return

        logger.info(
            "Guild %s mapped role %s -> %s (by %s)",
            interaction.guild_id, source_role.id, metadata_key, interaction.user.id,
        )
        await interaction.response.send_message(
            f"Mapped {source_role.name} -> {metadata_key}", ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /unmap_role
    # -------------------------------------------------------------------
    @app_commands.command(name="unmap_role", description="Remove mapping for a guild role.")
    @app_commands.describe(source_role="role to unmap")
    @has_manage_guild()
    async def unmap_role(
        self,
        interaction: discord.Interaction,
        source_role: discord.Role,
    ) -> None:
        try:
            removed = await run_db(
                self.bot.store.delete_mapping, interaction.guild_id, source_role.id,
            )
        except Exception:
            logger.exception(
                "Failed to remove mapping for role %s in guild %s",
                source_role.id, interaction.guild_id,
            )
            await interaction.response.send_message(STORE_FAILURE, ephemeral=True)
            return

        if removed:
            logger.info(
                "Guild %s unmapped role %s (by %s)",
                interaction.guild_id, source_role.id, interaction.user.id,
            )
            await interaction.response.send_message(
                f"Unmapped {source_role.name}", ephemeral=True,
            )
        else:
            await interaction.response.send_message("No mapping found.", ephemeral=True)

    # -------------------------------------------------------------------
    # /list_mappings
    # -------------------------------------------------------------------
    @app_commands.command(name="list_mappings", description="List role → metadata key mappings.")
    @has_manage_guild()
    async def list_mappings(self, interaction: discord.Interaction) -> None:
        try:
            mappings = await run_db(self.bot.store.guild_mappings, interaction.guild_id)
        except Exception:
            logger.exception("Failed to read mappings for guild %s", interaction.guild_id)
            await interaction.response.send_message(
                "Failed to read role mappings. Check logs.", ephemeral=True,
            )
            return

        if not mappings:
            await interaction.response.send_message(
                "No role mappings in this server.", ephemeral=True,
            )
            return

        lines = [f"<@&{role_id}> -> `{key}`" for role_id, key in sorted(mappings.items())]
        await interaction.response.send_message(
            "\n".join(lines),
            ephemeral=True,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    # -------------------------------------------------------------------
    # Error handler for missing permission
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            await interaction.response.send_message(
                "You need Manage Server.", ephemeral=True,
            )
        else:
            raise error


async def setup(bot: RoleLinkBot) -> None:
    await bot.add_cog(Admin(bot))
