"""
rolelink.engine.schema — Role-Connection Metadata Schema
=========================================================

Typed representation of the metadata records an application registers
with Discord, plus validation and merge rules.  Validation runs before
anything is sent, so a bad definition surfaces at registration time
instead of as a failed write later.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from rolelink.constants import MAX_METADATA_RECORDS

_KEY_RE = re.compile(r"^[a-z0-9_]{1,50}$")


class MetadataType(enum.IntEnum):
    """Value type of a metadata record (wire value in parentheses)."""
    STRING = 1
    BOOLEAN = 2
    INTEGER_EQUAL = 3


class SchemaValidationError(ValueError):
    """A metadata definition or merged schema is not acceptable."""


@dataclass(frozen=True, slots=True)
class MetadataDefinition:
    key: str
    name: str
    description: str
    # Unknown wire types from the live schema are kept as plain ints so a
    # merge never drops or rejects records this app did not create.
    type: MetadataType | int

    def to_payload(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "type": int(self.type),
        }

    @classmethod
    def from_payload(cls, data: dict) -> MetadataDefinition:
        try:
            raw_type = int(data["type"])
        except (TypeError, ValueError) as exc:
            raise SchemaValidationError(
                f"Unsupported metadata type {data.get('type')!r} for key {data.get('key')!r}"
            ) from exc
        try:
            mtype: MetadataType | int = MetadataType(raw_type)
        except ValueError:
            mtype = raw_type
        return cls(
            key=str(data["key"]),
            name=str(data["name"]),
            description=str(data["description"]),
            type=mtype,
        )


def is_valid_key(key: str) -> bool:
    return bool(_KEY_RE.match(key))


def validate_definition(definition: MetadataDefinition) -> None:
    """Raise :class:`SchemaValidationError` if *definition* breaks Discord's limits."""
    if not is_valid_key(definition.key):
        raise SchemaValidationError(
            "Metadata key must be 1-50 characters of a-z, 0-9 or underscore."
        )
    if not 1 <= len(definition.name) <= 100:
        raise SchemaValidationError("Metadata name must be 1-100 characters.")
    if not 1 <= len(definition.description) <= 200:
        raise SchemaValidationError("Metadata description must be 1-200 characters.")
    if not isinstance(definition.type, MetadataType):
        raise SchemaValidationError(f"Unsupported metadata type {definition.type!r}.")


def merge_definitions(
    current: list[MetadataDefinition],
    incoming: MetadataDefinition,
) -> list[MetadataDefinition]:
    """Replace the record with the same key, or append a new one.

    Order of existing records is preserved.  Raises
    :class:`SchemaValidationError` if the result exceeds the record cap.
    """
    merged: list[MetadataDefinition] = []
    replaced = False
    for existing in current:
        if existing.key == incoming.key:
            merged.append(incoming)
            replaced = True
        else:
            merged.append(existing)
    if not replaced:
        merged.append(incoming)

    if len(merged) > MAX_METADATA_RECORDS:
        raise SchemaValidationError(
            f"Discord allows at most {MAX_METADATA_RECORDS} metadata records; "
            f"{len(current)} already registered."
        )
    return merged
