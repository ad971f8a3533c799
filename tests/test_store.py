"""
tests/test_store.py — Token & Mapping Store Backends
=====================================================
"""

from __future__ import annotations

import json

import pytest

from rolelink.database.store import Credential, JsonFileStore, MemoryStore, SqlStore

GUILD_ID = 555
OTHER_GUILD = 556


def _cred(token: str = "tok") -> Credential:
    return Credential(
        access_token=token,
        refresh_token="refresh",
        scope="identify role_connections.write",
        obtained_at=1_700_000_000_000,
    )


@pytest.fixture(params=["memory", "json", "sql"])
def store(request, tmp_path, db_engine):
    if request.param == "memory":
        return MemoryStore()
    if request.param == "json":
        return JsonFileStore(tmp_path / "storage.json")
    return SqlStore(db_engine)


class TestStoreContract:
    """Behaviour every backend must share."""

    def test_unknown_user_has_no_credential(self, store):
        assert store.get_credential(1) is None

    def test_reauthorization_overwrites_credential(self, store):
        store.set_credential(1, _cred("first"))
        store.set_credential(1, _cred("second"))
        assert store.get_credential(1) == _cred("second")

    def test_mapping_last_write_wins(self, store):
        store.set_mapping(GUILD_ID, 10, "verified")
        store.set_mapping(GUILD_ID, 10, "member")
        assert store.get_mapping(GUILD_ID, 10) == "member"
        assert store.guild_mappings(GUILD_ID) == {10: "member"}

    def test_mappings_are_scoped_per_guild(self, store):
        store.set_mapping(GUILD_ID, 10, "verified")
        store.set_mapping(GUILD_ID, 11, "donor")
        store.set_mapping(OTHER_GUILD, 10, "other")

        assert store.guild_mappings(GUILD_ID) == {10: "verified", 11: "donor"}
        assert store.get_mapping(OTHER_GUILD, 10) == "other"
        assert store.guild_mappings(999) == {}

    def test_delete_mapping(self, store):
        store.set_mapping(GUILD_ID, 10, "verified")

        assert store.delete_mapping(GUILD_ID, 10) is True
        assert store.get_mapping(GUILD_ID, 10) is None
        assert store.delete_mapping(GUILD_ID, 10) is False
        assert store.delete_mapping(OTHER_GUILD, 10) is False


class TestJsonFileStore:
    def test_writes_storage_document_shape(self, tmp_path):
        path = tmp_path / "storage.json"
        store = JsonFileStore(path)
        store.set_credential(42, _cred())
        store.set_mapping(GUILD_ID, 10, "verified")

        doc = json.loads(path.read_text(encoding="utf-8"))
        assert doc == {
            "tokens": {
                "42": {
                    "access_token": "tok",
                    "refresh_token": "refresh",
                    "scope": "identify role_connections.write",
                    "obtained_at": 1_700_000_000_000,
                }
            },
            "mappings": {"555": {"10": "verified"}},
        }

    def test_loads_existing_file_at_startup(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({
            "tokens": {"42": {"access_token": "a", "refresh_token": "r", "scope": "identify",
                              "obtained_at": 5}},
            "mappings": {"555": {"10": "verified"}},
        }), encoding="utf-8")

        store = JsonFileStore(path)

        assert store.get_credential(42) == Credential("a", "r", "identify", 5)
        assert store.guild_mappings(GUILD_ID) == {10: "verified"}

    def test_missing_file_starts_empty_and_is_created_on_first_write(self, tmp_path):
        path = tmp_path / "storage.json"
        store = JsonFileStore(path)
        assert not path.exists()

        store.set_mapping(GUILD_ID, 10, "verified")
        assert path.exists()
        assert not (tmp_path / "storage.json.tmp").exists()

    def test_delete_rewrites_file(self, tmp_path):
        path = tmp_path / "storage.json"
        store = JsonFileStore(path)
        store.set_mapping(GUILD_ID, 10, "verified")
        store.delete_mapping(GUILD_ID, 10)

        reloaded = JsonFileStore(path)
        assert reloaded.get_mapping(GUILD_ID, 10) is None


def test_credential_from_token_response_stamps_time():
    cred = Credential.from_token_response(
        {"access_token": "a", "refresh_token": "r", "scope": "identify"}
    )
    assert cred.access_token == "a"
    assert cred.refresh_token == "r"
    assert cred.obtained_at > 1_600_000_000_000
