"""
Adapter - ORM-facing entry points for litedoc.

The adapter keeps an explicit registry of named connections. Every ORM call
names a connection and a model; the adapter resolves them to a Collection and
delegates. Populate requests are handed to an external join orchestrator
together with a ModelLookup for the connection.
"""

import logging
from typing import Dict, List, Any, Optional, Union

import aiofiles.os

from .collection import Collection
from .config import ConnectionConfig
from .connection import Connection
from .criteria import strip_select
from .errors import (
    ConfigurationError,
    IdentityDuplicateError,
    IdentityMissingError,
    UnknownModelError,
)
from .lookup import JoinOrchestrator, ModelLookup
from .native import DocumentStore

logger = logging.getLogger(__name__)


class Adapter:
    """Registry of connections plus the operations the ORM calls"""

    identity = "litedoc"
    # Store ids are strings
    pk_format = "string"
    syncable = True

    def __init__(self):
        self.connections: Dict[str, Connection] = {}

    async def register_connection(
        self, config: Union[ConnectionConfig, Dict[str, Any]], models: Dict[str, Any]
    ) -> Connection:
        """Validate ``config`` and open one store per model"""
        if isinstance(config, dict):
            config = ConnectionConfig.from_dict(config)

        if not config.identity:
            raise IdentityMissingError()
        if config.identity in self.connections:
            raise IdentityDuplicateError(config.identity)
        if not config.in_memory:
            await self._check_db_path(config.db_path)

        errors = config.validate()
        if errors:
            raise ConfigurationError("; ".join(errors))

        connection = Connection(config)
        await connection.open(models)
        self.connections[config.identity] = connection
        logger.info(f"Registered connection '{config.identity}'")
        return connection

    @staticmethod
    async def _check_db_path(db_path: Optional[str]):
        if not db_path or not await aiofiles.os.path.exists(db_path):
            raise ConfigurationError(f"`db_path` \"{db_path}\" does not exist!")
        if not await aiofiles.os.path.isdir(db_path):
            raise ConfigurationError(f"`db_path` \"{db_path}\" should be an empty directory!")

    async def teardown(self, identity: Optional[str] = None):
        """Close and forget one connection, or all of them"""
        if identity is None:
            names = list(self.connections)
        elif identity in self.connections:
            names = [identity]
        else:
            return

        for name in names:
            connection = self.connections.pop(name)
            await connection.close()
            logger.info(f"Tore down connection '{name}'")

    def connection(self, identity: str) -> Connection:
        try:
            return self.connections[identity]
        except KeyError:
            raise UnknownModelError(identity, kind="Connection") from None

    def collection(self, identity: str, model_name: str) -> Collection:
        return self.connection(identity).get(model_name)

    def describe(self, identity: str, model_name: str) -> Dict[str, Dict[str, Any]]:
        return self.collection(identity, model_name).describe()

    async def define(self, identity: str, model_name: str, definition: Any = None) -> List[str]:
        """(Re)create the model store and its indexes"""
        collection = self.collection(identity, model_name)
        await collection.open()
        return await collection.build_index()

    async def alter(self, identity: str, model_name: str, changes: Any = None) -> List[str]:
        collection = self.collection(identity, model_name)
        return await collection.build_index()

    async def drop(self, identity: str, model_name: str, relations: Any = None):
        await self.collection(identity, model_name).drop()

    def native(self, identity: str, model_name: str) -> DocumentStore:
        return self.collection(identity, model_name).native

    async def create(self, identity: str, model_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.collection(identity, model_name).create(data)

    async def create_each(
        self, identity: str, model_name: str, data: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        return await self.collection(identity, model_name).create_each(data)

    async def find(self, identity: str, model_name: str, criteria: Any = None) -> List[Dict[str, Any]]:
        return await self.collection(identity, model_name).find(criteria)

    async def update(self, identity: str, model_name: str, criteria: Any, values: Dict[str, Any]) -> int:
        return await self.collection(identity, model_name).update(criteria, values)

    async def destroy(self, identity: str, model_name: str, criteria: Any = None) -> int:
        return await self.collection(identity, model_name).destroy(criteria)

    async def count(self, identity: str, model_name: str, criteria: Any = None) -> int:
        return await self.collection(identity, model_name).count(criteria)

    async def join(
        self,
        identity: str,
        model_name: str,
        criteria: Any,
        orchestrator: JoinOrchestrator,
    ) -> List[Dict[str, Any]]:
        """Serve a populate request through ``orchestrator``"""
        connection = self.connection(identity)
        connection.get(model_name)
        return await orchestrator(
            instructions=strip_select(criteria),
            parent_collection=model_name,
            lookup=ModelLookup(connection),
        )
