"""
Tests for the cross-model lookup contract and populate requests.
"""

import asyncio

import pytest

from litedoc import ConnectionConfig, ModelLookup
from litedoc.errors import UnknownModelError


@pytest.fixture
async def owned(connected, pets):
    """Owners A1 and B2 alongside the seeded pets"""
    await connected.create_each(
        "default",
        "owner",
        [
            {"id": "A1", "name": "Ann", "email": "ann@example.com"},
            {"id": "B2", "name": "Bob", "email": "bob@example.com"},
        ],
    )
    return connected


@pytest.fixture
def lookup(owned):
    return ModelLookup(owned.connection("default"))


class TestModelLookup:
    """Test the two lookup calls."""

    async def test_primary_key_name(self, lookup):
        assert lookup.primary_key_name("owner") == "id"
        assert lookup.primary_key_name("pet") == "id"

    async def test_custom_primary_key(self, adapter, db_dir):
        connection = await adapter.register_connection(
            ConnectionConfig(identity="custom", db_path=db_dir),
            {"tag": {"code": {"type": "string", "primaryKey": True}}},
        )
        assert ModelLookup(connection).primary_key_name("tag") == "code"

    async def test_find_by_criteria(self, lookup):
        records = await lookup.find_by_criteria("pet", {"where": {"ownerId": "A1"}})

        assert [r["name"] for r in records] == ["Rex", "Fido"]
        for record in records:
            assert "_id" not in record
            assert isinstance(record["id"], str)

    async def test_unknown_model_fails_at_call(self, lookup):
        with pytest.raises(UnknownModelError):
            lookup.find_by_criteria("cat", {})
        with pytest.raises(UnknownModelError):
            lookup.primary_key_name("cat")

    async def test_concurrent_calls(self, lookup):
        """Independent calls may run concurrently without interfering."""
        a1, b2, owners = await asyncio.gather(
            lookup.find_by_criteria("pet", {"ownerId": "A1"}),
            lookup.find_by_criteria("pet", {"ownerId": "B2"}),
            lookup.find_by_criteria("owner", {"id": ["A1", "B2"]}),
        )
        assert [r["name"] for r in a1] == ["Rex", "Fido"]
        assert [r["name"] for r in b2] == ["Tom", "Kitty"]
        assert [r["id"] for r in owners] == ["A1", "B2"]


async def attach_pets(instructions, parent_collection, lookup):
    """Minimal orchestrator: owners with their pets under 'pets'"""
    parents = await lookup.find_by_criteria(parent_collection, instructions)
    key = lookup.primary_key_name(parent_collection)
    children = await lookup.find_by_criteria(
        "pet", {"ownerId": [parent[key] for parent in parents]}
    )
    for parent in parents:
        parent["pets"] = [c["name"] for c in children if c["ownerId"] == parent[key]]
    return parents


class TestJoin:
    """Test populate requests served through an orchestrator."""

    async def test_join(self, owned):
        owners = await owned.join("default", "owner", {"where": {"id": "A1"}}, attach_pets)
        assert owners == [
            {"id": "A1", "name": "Ann", "email": "ann@example.com", "pets": ["Rex", "Fido"]}
        ]

    async def test_select_stripped(self, owned):
        seen = {}

        async def recorder(instructions, parent_collection, lookup):
            seen["instructions"] = instructions
            seen["parent"] = parent_collection
            return []

        criteria = {"where": {"id": "A1"}, "select": ["name"]}
        assert await owned.join("default", "owner", criteria, recorder) == []
        assert seen == {"instructions": {"where": {"id": "A1"}}, "parent": "owner"}
        assert "select" in criteria

    async def test_unknown_parent(self, owned):
        with pytest.raises(UnknownModelError):
            await owned.join("default", "cat", {}, attach_pets)
