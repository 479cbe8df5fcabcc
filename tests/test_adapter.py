"""
Tests for the adapter entry points and connection registration.
"""

import os

import pytest

from litedoc import Adapter, ConnectionConfig, DocumentStore
from litedoc.errors import (
    ConfigurationError,
    ConnectionFailedError,
    DuplicateModelError,
    IdentityDuplicateError,
    IdentityMissingError,
    StoreError,
    UnknownModelError,
)

from conftest import MODELS


class TestRegistration:
    """Test connection registration and validation."""

    async def test_store_file_per_model(self, connected, db_dir):
        assert os.path.exists(os.path.join(db_dir, "pet.db"))
        assert os.path.exists(os.path.join(db_dir, "owner.db"))
        assert set(connected.connection("default").collections) == {"pet", "owner"}

    async def test_identity_missing(self, adapter, db_dir):
        with pytest.raises(IdentityMissingError):
            await adapter.register_connection(ConnectionConfig(db_path=db_dir), MODELS)

    async def test_identity_duplicate(self, connected, db_dir):
        with pytest.raises(IdentityDuplicateError):
            await connected.register_connection(
                ConnectionConfig(identity="default", db_path=db_dir), MODELS
            )

    async def test_db_path_missing(self, adapter, tmp_path):
        missing = str(tmp_path / "nowhere")
        with pytest.raises(ConfigurationError, match="does not exist"):
            await adapter.register_connection({"identity": "x", "db_path": missing}, MODELS)
        with pytest.raises(ConfigurationError, match="does not exist"):
            await adapter.register_connection({"identity": "x"}, MODELS)

    async def test_db_path_not_directory(self, adapter, tmp_path):
        path = tmp_path / "plain.txt"
        path.write_text("not a directory")
        with pytest.raises(ConfigurationError, match="directory"):
            await adapter.register_connection({"identity": "x", "db_path": str(path)}, MODELS)

    async def test_invalid_settings(self, adapter, db_dir):
        with pytest.raises(ConfigurationError, match="journal mode"):
            await adapter.register_connection(
                ConnectionConfig(identity="x", db_path=db_dir, journal_mode="BOGUS"), MODELS
            )
        assert "x" not in adapter.connections

    async def test_camel_case_dict_config(self, adapter, db_dir):
        await adapter.register_connection({"identity": "files", "dbPath": db_dir}, MODELS)
        assert os.path.exists(os.path.join(db_dir, "pet.db"))

    async def test_in_memory(self, adapter, tmp_path):
        await adapter.register_connection({"identity": "mem", "inMemoryOnly": True}, MODELS)

        created = await adapter.create("mem", "pet", {"name": "Rex"})
        assert await adapter.find("mem", "pet", {"id": created["id"]}) == [created]
        assert await adapter.count("mem", "owner") == 0
        assert os.listdir(tmp_path) == []

    async def test_duplicate_model(self, adapter, db_dir):
        connection = await adapter.register_connection(
            ConnectionConfig(identity="x", db_path=db_dir), MODELS
        )
        with pytest.raises(DuplicateModelError):
            connection.register_model("pet")

    async def test_multiple_primary_keys(self, adapter, db_dir):
        models = {
            "broken": {
                "a": {"type": "string", "primaryKey": True},
                "b": {"type": "string", "primaryKey": True},
            }
        }
        with pytest.raises(ConfigurationError, match="more than one primary key"):
            await adapter.register_connection(ConnectionConfig(identity="x", db_path=db_dir), models)
        assert "x" not in adapter.connections

    async def test_store_open_failure(self, adapter, tmp_path):
        """A store that cannot be opened fails the whole connection."""
        (tmp_path / "pet.db").mkdir()

        with pytest.raises(ConnectionFailedError) as exc_info:
            await adapter.register_connection(
                ConnectionConfig(identity="x", db_path=str(tmp_path)), MODELS
            )

        assert exc_info.value.original_error is not None
        assert "x" not in adapter.connections


class TestOperations:
    """Test ORM operations routed through the adapter."""

    async def test_pet_scenario(self, connected):
        created = await connected.create("default", "pet", {"name": "Rex", "age": 3, "ownerId": "A1"})

        records = await connected.find("default", "pet", {"where": {"age": {">": 2}}})
        assert records == [created]
        assert "_id" not in records[0]

        assert await connected.update("default", "pet", {"where": {"name": "Rex"}}, {"age": 4}) == 1
        [updated] = await connected.find("default", "pet", {"where": {"name": "Rex"}})
        assert updated["age"] == 4
        assert updated["id"] == created["id"]

        assert await connected.destroy("default", "pet", {"where": {"name": "Rex"}}) == 1
        assert await connected.count("default", "pet", {}) == 0

    async def test_create_each(self, connected):
        created = await connected.create_each("default", "pet", [{"name": "A"}, {"name": "B"}])
        assert len(created) == 2
        assert await connected.count("default", "pet") == 2

    async def test_describe(self, connected):
        assert connected.describe("default", "owner") == {
            "id": {"type": "string", "primaryKey": True},
            "email": {"type": "string", "unique": True},
            "name": {"type": "string"},
        }

    async def test_native(self, connected):
        store = connected.native("default", "pet")
        assert isinstance(store, DocumentStore)
        assert store.is_loaded

    async def test_unknown_model(self, connected):
        with pytest.raises(UnknownModelError):
            await connected.find("default", "cat", {})
        with pytest.raises(UnknownModelError):
            connected.collection("elsewhere", "pet")


class TestLifecycle:
    """Test define, alter, drop and teardown."""

    async def test_drop_then_define(self, connected, db_dir):
        await connected.create("default", "pet", {"name": "Rex"})

        await connected.drop("default", "pet")
        assert not os.path.exists(os.path.join(db_dir, "pet.db"))

        assert await connected.define("default", "pet") == ["ownerId"]
        assert os.path.exists(os.path.join(db_dir, "pet.db"))
        assert await connected.count("default", "pet") == 0

    async def test_alter_rebuilds_indexes(self, connected):
        assert await connected.alter("default", "owner") == ["email"]
        assert await connected.native("default", "owner").list_indexes() == ["uidx_email"]

    async def test_data_persists_across_connections(self, adapter, db_dir):
        config = ConnectionConfig(identity="x", db_path=db_dir)
        await adapter.register_connection(config, MODELS)
        await adapter.create("x", "pet", {"id": "p1", "name": "Rex"})
        await adapter.teardown("x")

        other = Adapter()
        await other.register_connection(config, MODELS)
        try:
            assert await other.find("x", "pet") == [{"id": "p1", "name": "Rex"}]
        finally:
            await other.teardown()

    async def test_teardown(self, connected, db_dir):
        store = connected.native("default", "pet")
        await connected.teardown("default")

        assert not store.is_loaded
        with pytest.raises(UnknownModelError):
            connected.connection("default")

        # The identity is free again
        await connected.register_connection(
            ConnectionConfig(identity="default", db_path=db_dir), MODELS
        )

    async def test_teardown_unknown_identity(self, adapter):
        await adapter.teardown("nobody")
        assert adapter.connections == {}

    async def test_close_failure_still_closes_other_stores(self, connected, monkeypatch):
        pet_store = connected.native("default", "pet")
        owner_store = connected.native("default", "owner")

        async def failing_close():
            raise StoreError("disk went away")

        monkeypatch.setattr(pet_store, "close", failing_close)
        with pytest.raises(StoreError, match="disk went away"):
            await connected.connection("default").close()
        assert not owner_store.is_loaded

        monkeypatch.undo()
        await pet_store.close()
        assert not pet_store.is_loaded
