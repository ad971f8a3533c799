"""
rolelink.engine.roles — Role-Change Detection
==============================================

Pure functions that turn a member update into the set of role ids whose
presence flipped, plus the encoding of that presence for metadata writes.
No I/O, no Discord objects beyond duck-typed ``.roles``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from rolelink.constants import PRESENCE_FALSE, PRESENCE_TRUE

__all__ = [
    "MembershipSnapshot",
    "changed_roles",
    "encode_presence",
    "role_ids_of",
]


@dataclass(frozen=True, slots=True)
class MembershipSnapshot:
    """Role ids held by one member before and after a single update."""

    before: frozenset[int]
    after: frozenset[int]

    @classmethod
    def from_members(cls, before_member, after_member) -> MembershipSnapshot:
        return cls(role_ids_of(before_member), role_ids_of(after_member))

    def changed(self) -> frozenset[int]:
        return changed_roles(self.before, self.after)

    def has_now(self, role_id: int) -> bool:
        return role_id in self.after


def changed_roles(before: Iterable[int], after: Iterable[int]) -> frozenset[int]:
    """Return role ids present in exactly one of *before* / *after*.

    Roles held on both sides are never reported, whatever else about them
    changed.  Two empty inputs give an empty result.
    """
    return frozenset(before) ^ frozenset(after)


def encode_presence(has_role: bool) -> str:
    """Encode role presence the way an ``integer_equal`` record expects."""
    return PRESENCE_TRUE if has_role else PRESENCE_FALSE


def role_ids_of(member) -> frozenset[int]:
    """Collect role ids from a ``discord.Member`` (or anything with ``.roles``)."""
    return frozenset(role.id for role in getattr(member, "roles", None) or ())
