"""
tests/test_roles.py — Role-Change Detection
============================================
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from rolelink.engine.roles import (
    MembershipSnapshot,
    changed_roles,
    encode_presence,
    role_ids_of,
)

ROLE_SETS = [
    set(),
    {1},
    {1, 2, 3},
    {2, 3, 4},
    {10, 20},
]


def _member(*role_ids: int) -> SimpleNamespace:
    return SimpleNamespace(roles=[SimpleNamespace(id=r, name=f"role-{r}") for r in role_ids])


class TestChangedRoles:
    @pytest.mark.parametrize("a", ROLE_SETS)
    @pytest.mark.parametrize("b", ROLE_SETS)
    def test_is_commutative(self, a, b):
        assert changed_roles(a, b) == changed_roles(b, a)

    @pytest.mark.parametrize("a", ROLE_SETS)
    def test_same_set_reports_nothing(self, a):
        assert changed_roles(a, a) == frozenset()

    def test_empty_inputs(self):
        assert changed_roles(set(), set()) == frozenset()
        assert changed_roles(set(), {5}) == {5}
        assert changed_roles({5}, set()) == {5}

    def test_gained_and_lost_reported_shared_not(self):
        assert changed_roles({1, 2, 3}, {2, 3, 4}) == {1, 4}

    def test_accepts_any_iterable(self):
        assert changed_roles([1, 1, 2], (2, 3)) == {1, 3}


class TestSnapshot:
    def test_from_members(self):
        snap = MembershipSnapshot.from_members(_member(1, 2), _member(2, 3))
        assert snap.before == {1, 2}
        assert snap.after == {2, 3}
        assert snap.changed() == {1, 3}
        assert snap.has_now(3)
        assert not snap.has_now(1)

    def test_role_ids_of_handles_missing_roles(self):
        assert role_ids_of(SimpleNamespace()) == frozenset()
        assert role_ids_of(SimpleNamespace(roles=None)) == frozenset()


def test_encode_presence():
    assert encode_presence(True) == "1"
    assert encode_presence(False) == "0"
