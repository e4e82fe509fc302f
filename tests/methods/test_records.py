"""Tests for record materialization and schema verification."""

import pytest

from spine_orm import AdapterContractError, RecordVerificationError
from spine_orm.query import Criteria, QueryMeta
from spine_orm.records import materialize, process_all_records
from tests._support import assert_dict_subset, record_ids


@pytest.fixture
def user_entry(registry):
    return registry.get("user")


class TestMaterialize:
    def test_columns_become_attribute_names(self, user_entry):
        records = materialize(
            user_entry,
            [{"id": 1, "name": "ada", "email_address": "ada@example.com", "age": 36}],
            QueryMeta(),
        )

        assert records == [{"id": 1, "name": "ada", "email": "ada@example.com", "age": 36}]

    def test_undeclared_columns_are_kept(self, user_entry):
        records = materialize(user_entry, [{"id": 1, "_rev": "3-abc"}], QueryMeta())

        assert_dict_subset(records[0], {"id": 1, "_rev": "3-abc"})

    def test_omitted_attributes_are_removed(self, user_entry):
        records = materialize(
            user_entry,
            [{"id": 1, "name": "ada", "age": 36}, {"id": 2, "name": "bob", "age": 25}],
            QueryMeta(),
            Criteria(omit=("age",)),
        )

        assert record_ids(records) == [1, 2]
        assert all("age" not in record for record in records)

    def test_non_dictionary_record(self, user_entry):
        with pytest.raises(AdapterContractError):
            materialize(user_entry, [("id", 1)], QueryMeta())


class TestProcessAllRecords:
    def test_missing_primary_key(self, user_entry):
        with pytest.raises(RecordVerificationError) as exc_info:
            process_all_records([{"name": "ghost"}], QueryMeta(), user_entry.definition)

        err = exc_info.value
        assert err.code == "E_RECORD_VERIFICATION"
        assert err.context.model_identity == "user"
        assert "`id`" in err.details

    def test_null_primary_key(self, user_entry):
        with pytest.raises(RecordVerificationError):
            process_all_records([{"id": None}], QueryMeta(), user_entry.definition)

    def test_wrong_type(self, user_entry):
        with pytest.raises(RecordVerificationError) as exc_info:
            process_all_records(
                [{"id": 1, "age": 1}, {"id": 2, "age": "old"}], QueryMeta(), user_entry.definition
            )

        assert "Record #1" in exc_info.value.details

    def test_absent_attributes_are_tolerated(self, user_entry):
        process_all_records([{"id": 1}], QueryMeta(), user_entry.definition)

    def test_unselected_attributes_are_not_checked(self, user_entry):
        process_all_records(
            [{"id": 1, "name": "ada", "age": "n/a"}],
            QueryMeta(),
            user_entry.definition,
            Criteria(select=("id", "name")),
        )

    def test_skip_record_verification(self, user_entry):
        process_all_records(
            [{"age": "old"}], QueryMeta(skip_record_verification=True), user_entry.definition
        )

    def test_singular_association_holds_a_key(self, registry):
        pet = registry.get("pet").definition

        process_all_records([{"id": 1, "name": "rex", "owner": 4}], QueryMeta(), pet)
        with pytest.raises(RecordVerificationError):
            process_all_records([{"id": 1, "name": "rex", "owner": [4]}], QueryMeta(), pet)
