"""Tests for create and create_each."""

import pytest

from spine_orm import AdapterContractError, Datastore, Orm, UniquenessError, UsageError
from tests._support import ScriptedAdapter
from tests._support.models import pet_definition, user_definition


class TestCreate:
    @pytest.mark.asyncio
    async def test_fetch_returns_a_list_with_the_new_record(self, users, adapter):
        records = await users.create(
            {"name": "dee", "email": "dee@example.com", "age": 41}, meta={"fetch": True}
        )

        assert records == [{"id": 1, "name": "dee", "email": "dee@example.com", "age": 41}]
        assert adapter.tables["users"][0]["email_address"] == "dee@example.com"

    @pytest.mark.asyncio
    async def test_without_fetch_returns_none(self, users, adapter):
        assert await users.create({"name": "dee"}) is None
        assert len(adapter.tables["users"]) == 1

    @pytest.mark.asyncio
    async def test_defaults_are_applied(self, pets, adapter):
        [record] = await pets.create({"name": "rex"}, meta={"fetch": True})

        assert record["species"] == "cat"
        assert adapter.calls_to("create")[0].values_to_set["species"] == "cat"

    @pytest.mark.asyncio
    async def test_missing_required_attribute(self, pets, adapter):
        with pytest.raises(UsageError) as exc_info:
            await pets.create({"species": "dog"})

        assert exc_info.value.code == "E_INVALID_VALUES_TO_SET"
        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_wrong_type_is_rejected(self, users):
        with pytest.raises(UsageError) as exc_info:
            await users.create({"name": 3})

        assert exc_info.value.code == "E_INVALID_VALUES_TO_SET"

    @pytest.mark.asyncio
    async def test_duplicate_is_uniqueness_error(self, users, seeded):
        with pytest.raises(UniquenessError) as exc_info:
            await users.create({"name": "imposter", "email": "ada@example.com"})

        assert exc_info.value.attr_names == ["email"]
        assert exc_info.value.__cause__ is not None

    @pytest.mark.asyncio
    async def test_fetch_requires_a_dictionary(self):
        adapter = ScriptedAdapter(results={"create": [{"id": 1}]})
        orm = Orm.initialize(
            models=[user_definition(), pet_definition()],
            datastores=[Datastore("default", adapter)],
        )

        with pytest.raises(AdapterContractError):
            await orm.model("user").create({"name": "x"}, meta={"fetch": True})

    @pytest.mark.asyncio
    async def test_returned_record_without_fetch_is_ignored(self):
        adapter = ScriptedAdapter(results={"create": {"id": 1, "name": "x"}})
        orm = Orm.initialize(
            models=[user_definition(), pet_definition()],
            datastores=[Datastore("default", adapter)],
        )

        assert await orm.model("user").create({"name": "x"}) is None


class TestCreateLifecycle:
    @pytest.mark.asyncio
    async def test_before_create_can_fill_values(self, adapter):
        async def before_create(values):
            values.setdefault("email", f"{values['name']}@example.com")

        orm = Orm.initialize(
            models=[user_definition(hooks={"before_create": before_create}), pet_definition()],
            datastores=[Datastore("default", adapter)],
        )

        [record] = await orm.model("user").create({"name": "eve"}, meta={"fetch": True})

        assert record["email"] == "eve@example.com"

    @pytest.mark.asyncio
    async def test_before_create_gets_a_copy(self, adapter):
        original = {"name": "eve"}

        def before_create(values):
            values["name"] = "mallory"

        orm = Orm.initialize(
            models=[user_definition(hooks={"before_create": before_create}), pet_definition()],
            datastores=[Datastore("default", adapter)],
        )

        await orm.model("user").create(original)

        assert original == {"name": "eve"}
        assert adapter.tables["users"][0]["name"] == "mallory"

    @pytest.mark.asyncio
    async def test_after_create_runs_only_with_fetch(self, adapter):
        created = []
        orm = Orm.initialize(
            models=[user_definition(hooks={"after_create": created.append}), pet_definition()],
            datastores=[Datastore("default", adapter)],
        )
        users = orm.model("user")

        await users.create({"name": "a"})
        await users.create({"name": "b"}, meta={"fetch": True})

        assert [r["name"] for r in created] == ["b"]


class TestCreateEach:
    @pytest.mark.asyncio
    async def test_fetch_returns_every_record(self, pets, adapter):
        records = await pets.create_each(
            [{"name": "rex", "species": "dog"}, {"name": "tom"}], meta={"fetch": True}
        )

        assert [(r["id"], r["name"], r["species"]) for r in records] == [
            (1, "rex", "dog"),
            (2, "tom", "cat"),
        ]
        assert len(adapter.calls_to("create_each")) == 1

    @pytest.mark.asyncio
    async def test_without_fetch_returns_none(self, pets, adapter):
        assert await pets.create_each([{"name": "rex"}]) is None
        assert len(adapter.tables["pets"]) == 1

    @pytest.mark.asyncio
    async def test_not_a_list(self, pets):
        with pytest.raises(UsageError) as exc_info:
            await pets.create_each({"name": "rex"})

        assert exc_info.value.code == "E_INVALID_NEW_RECORDS"

    @pytest.mark.asyncio
    async def test_invalid_record(self, pets, adapter):
        with pytest.raises(UsageError) as exc_info:
            await pets.create_each([{"name": "rex"}, {"species": "dog"}])

        assert exc_info.value.code == "E_INVALID_NEW_RECORDS"
        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_before_create_runs_per_record(self, adapter):
        seen = []

        def before_create(values):
            seen.append(values["name"])
            values["name"] = values["name"].title()

        orm = Orm.initialize(
            models=[user_definition(), pet_definition(hooks={"before_create": before_create})],
            datastores=[Datastore("default", adapter)],
        )

        records = await orm.model("pet").create_each(
            [{"name": "rex"}, {"name": "tom"}], meta={"fetch": True}
        )

        assert seen == ["rex", "tom"]
        assert [r["name"] for r in records] == ["Rex", "Tom"]
