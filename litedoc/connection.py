"""
A named connection: one directory, one store file per registered model.
"""

import asyncio
import logging
from typing import Dict, Any, Optional

from .collection import Collection
from .config import ConnectionConfig
from .errors import ConnectionFailedError, DuplicateModelError, LitedocError, UnknownModelError
from .native import DocumentStore
from .schema import check_primary_keys, normalize_schema

logger = logging.getLogger(__name__)


def _definition(model: Any) -> Optional[Dict[str, Any]]:
    """Models may be passed as {"definition": {...}} or as the bare attribute map"""
    if isinstance(model, dict) and isinstance(model.get("definition"), dict):
        return model["definition"]
    return model


class Connection:
    """Registration table for the models of one connection"""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self.collections: Dict[str, Collection] = {}

    @property
    def identity(self) -> str:
        return self.config.identity

    def register_model(self, model_name: str, definition: Optional[Dict[str, Any]] = None) -> Collection:
        if model_name in self.collections:
            raise DuplicateModelError(model_name)
        check_primary_keys(model_name, normalize_schema(definition))

        store = DocumentStore(
            self.config.filename_for(model_name),
            timeout=self.config.timeout,
            journal_mode=self.config.journal_mode,
        )
        collection = Collection(model_name, store, definition)
        self.collections[model_name] = collection
        return collection

    def get(self, model_name: str) -> Collection:
        try:
            return self.collections[model_name]
        except KeyError:
            raise UnknownModelError(model_name) from None

    async def open(self, models: Dict[str, Any]):
        """Register and load every model concurrently"""
        for model_name, model in models.items():
            self.register_model(model_name, _definition(model))

        results = await asyncio.gather(
            *(c.open() for c in self.collections.values()), return_exceptions=True
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            # Every open has settled, so nothing is left half-loaded
            await self.close()
            error = failures[0]
            if isinstance(error, LitedocError):
                raise ConnectionFailedError(self.identity, error) from error
            raise error

        logger.info(
            f"Connection '{self.identity}' opened {len(self.collections)} model store(s)"
        )

    async def close(self):
        """Close every store; the first failure is raised once all have closed"""
        results = await asyncio.gather(
            *(c.close() for c in self.collections.values()), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Failed to close a store of connection '{self.identity}': {result}")
                raise result
