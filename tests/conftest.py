"""
Shared test fixtures for the litedoc test suite.
"""

import logging

import pytest

from litedoc import Adapter, ConnectionConfig, DocumentStore

# Configure test logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


PET_DEFINITION = {
    "name": {"type": "string"},
    "age": {"type": "number"},
    "ownerId": {"type": "string", "index": True},
}

OWNER_DEFINITION = {
    "id": {"type": "string", "primaryKey": True, "autoIncrement": True},
    "email": {"type": "string", "unique": True},
    "name": {"type": "string"},
}

MODELS = {
    "pet": {"definition": PET_DEFINITION},
    "owner": {"definition": OWNER_DEFINITION},
}


@pytest.fixture
def db_dir(tmp_path):
    """Directory holding the model store files"""
    return str(tmp_path)


@pytest.fixture
async def store(tmp_path):
    """A loaded DocumentStore backed by a temporary file"""
    document_store = DocumentStore(str(tmp_path / "documents.db"))
    await document_store.load()
    yield document_store
    await document_store.close()


@pytest.fixture
async def adapter():
    """Adapter torn down after the test"""
    instance = Adapter()
    yield instance
    await instance.teardown()


@pytest.fixture
async def connected(adapter, db_dir):
    """Adapter with a 'default' connection holding the pet and owner models"""
    await adapter.register_connection(
        ConnectionConfig(identity="default", db_path=db_dir), MODELS
    )
    return adapter


@pytest.fixture
async def pets(connected):
    """Pet collection seeded with a small, known data set"""
    collection = connected.collection("default", "pet")
    await collection.insert(
        [
            {"name": "Rex", "age": 3, "ownerId": "A1"},
            {"name": "Fido", "age": 5, "ownerId": "A1"},
            {"name": "Tom", "age": 1, "ownerId": "B2"},
            {"name": "Kitty", "age": 7, "ownerId": "B2"},
            {"name": "Polly", "age": 2},
        ]
    )
    return collection
