"""
rolelink.services.schema_service — Metadata Schema Registration
================================================================

Discord's schema endpoint replaces the whole record list on every PUT.
Registering one key therefore means: validate it, read what is already
registered, merge by key, and push the merged list back.
"""

from __future__ import annotations

import logging

from rolelink.engine.schema import (
    MetadataDefinition,
    merge_definitions,
    validate_definition,
)
from rolelink.services.discord_api import DiscordAPI

logger = logging.getLogger(__name__)


class SchemaRegistrationError(RuntimeError):
    """Discord could not be read from or rejected the new schema."""


class SchemaService:
    def __init__(self, api: DiscordAPI) -> None:
        self.api = api

    async def register(self, definition: MetadataDefinition) -> list[MetadataDefinition]:
        """Add or replace *definition* in the application's schema.

        Raises
        ------
        SchemaValidationError
            The definition (or the merged schema) breaks Discord's limits.
        SchemaRegistrationError
            The current schema could not be read or the PUT was rejected.
        """
        validate_definition(definition)

        current = await self.api.fetch_metadata_schema()
        if current is None:
            raise SchemaRegistrationError("Could not read the current metadata schema.")

        merged = merge_definitions(current, definition)
        if not await self.api.register_metadata_schema(merged):
            raise SchemaRegistrationError("Discord rejected the metadata schema.")

        logger.info("Registered metadata key %r (%d records total)", definition.key, len(merged))
        return merged
