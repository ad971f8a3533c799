"""
tests/test_schema.py — Metadata Schema Validation & Registration
=================================================================
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import run_async
from rolelink.engine.schema import (
    MetadataDefinition,
    MetadataType,
    SchemaValidationError,
    is_valid_key,
    merge_definitions,
    validate_definition,
)
from rolelink.services.schema_service import SchemaRegistrationError, SchemaService


def _def(key: str, name: str = "Name", mtype: MetadataType = MetadataType.INTEGER_EQUAL):
    return MetadataDefinition(key=key, name=name, description="desc", type=mtype)


class TestValidation:
    @pytest.mark.parametrize("key", ["verified", "tier_2", "a", "x" * 50])
    def test_accepts_valid_keys(self, key):
        assert is_valid_key(key)
        validate_definition(_def(key))

    @pytest.mark.parametrize("key", ["", "Verified", "has space", "dash-key", "x" * 51])
    def test_rejects_bad_keys(self, key):
        assert not is_valid_key(key)
        with pytest.raises(SchemaValidationError, match="key"):
            validate_definition(_def(key))

    def test_rejects_long_name(self):
        with pytest.raises(SchemaValidationError, match="name"):
            validate_definition(_def("k", name="n" * 101))

    def test_rejects_empty_description(self):
        with pytest.raises(SchemaValidationError, match="description"):
            validate_definition(MetadataDefinition("k", "Name", "", MetadataType.BOOLEAN))

    def test_non_numeric_wire_type_rejected(self):
        with pytest.raises(SchemaValidationError, match="Unsupported"):
            MetadataDefinition.from_payload({"key": "k", "name": "n", "description": "d", "type": "abc"})

    def test_unknown_wire_type_is_kept(self):
        payload = {"key": "joined", "name": "Joined", "description": "d", "type": 7}

        definition = MetadataDefinition.from_payload(payload)

        assert definition.type == 7
        assert definition.to_payload() == payload

    def test_wire_types(self):
        assert [int(t) for t in MetadataType] == [1, 2, 3]


class TestMerge:
    def test_appends_new_key(self):
        merged = merge_definitions([_def("a")], _def("b"))
        assert [d.key for d in merged] == ["a", "b"]

    def test_replaces_existing_key_in_place(self):
        merged = merge_definitions([_def("a"), _def("b"), _def("c")], _def("b", name="New"))
        assert [d.key for d in merged] == ["a", "b", "c"]
        assert merged[1].name == "New"

    def test_rejects_sixth_record(self):
        current = [_def(k) for k in "abcde"]
        with pytest.raises(SchemaValidationError, match="at most 5"):
            merge_definitions(current, _def("f"))

    def test_replacing_at_cap_is_allowed(self):
        current = [_def(k) for k in "abcde"]
        assert len(merge_definitions(current, _def("c", name="Renamed"))) == 5


class TestSchemaService:
    def _service(self, current, registered=True):
        api = MagicMock()
        api.fetch_metadata_schema = AsyncMock(return_value=current)
        api.register_metadata_schema = AsyncMock(return_value=registered)
        return SchemaService(api), api

    def test_keeps_previously_registered_keys(self):
        service, api = self._service([_def("verified")])

        merged = run_async(service.register(_def("donor")))

        assert [d.key for d in merged] == ["verified", "donor"]
        api.register_metadata_schema.assert_awaited_once_with(merged)

    def test_invalid_definition_sends_nothing(self):
        service, api = self._service([])

        with pytest.raises(SchemaValidationError):
            run_async(service.register(_def("Bad Key")))

        api.fetch_metadata_schema.assert_not_awaited()
        api.register_metadata_schema.assert_not_awaited()

    def test_foreign_record_types_survive_merge(self):
        foreign = MetadataDefinition.from_payload(
            {"key": "joined", "name": "Joined", "description": "d", "type": 6},
        )
        service, api = self._service([foreign])

        merged = run_async(service.register(_def("verified")))

        assert [d.to_payload()["type"] for d in merged] == [6, 3]
        api.register_metadata_schema.assert_awaited_once_with(merged)

    def test_unreadable_schema_aborts(self):
        service, api = self._service(None)

        with pytest.raises(SchemaRegistrationError):
            run_async(service.register(_def("verified")))

        api.register_metadata_schema.assert_not_awaited()

    def test_rejected_put_raises(self):
        service, _ = self._service([], registered=False)

        with pytest.raises(SchemaRegistrationError, match="rejected"):
            run_async(service.register(_def("verified")))
