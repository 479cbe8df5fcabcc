"""
Per-model collection: the façade every ORM operation goes through.

A Collection owns exactly one DocumentStore. It translates criteria, maps
identifiers on the way in and out, and keeps the store's indexes in line with
the model schema.
"""

import logging
from typing import Dict, List, Any, Optional, Union

import aiofiles.os

from .criteria import strip_select
from .identifiers import MODEL_ID_FIELD, STORE_ID_FIELD, from_store, to_store
from .indexes import build_indexes
from .native import DocumentStore
from .schema import Schema, describe_schema, normalize_schema, primary_key_name
from .translator import CriteriaTranslator, NativeQuery

logger = logging.getLogger(__name__)

UNSET_KEY = "$unset"


class Collection:
    """One model backed by one document store"""

    def __init__(self, name: str, store: DocumentStore, definition: Optional[Dict[str, Any]] = None):
        self.name = name
        self.store = store
        self.schema: Schema = normalize_schema(definition)
        self.translator = CriteriaTranslator(self.schema)

    @property
    def primary_key(self) -> str:
        return primary_key_name(self.schema)

    @property
    def native(self) -> DocumentStore:
        return self.store

    async def open(self):
        """Load the store; a brand-new store gets its indexes right away"""
        if self.store.is_loaded:
            return
        is_new = self.store.in_memory or not await aiofiles.os.path.exists(self.store.filename)
        await self.store.load()
        if is_new:
            await self.build_index()

    async def close(self):
        await self.store.close()

    async def build_index(self) -> List[str]:
        return await build_indexes(self.store, self.schema)

    def describe(self) -> Dict[str, Dict[str, Any]]:
        return describe_schema(self.schema)

    def _translate(self, criteria: Any) -> NativeQuery:
        return self.translator.translate(strip_select(criteria))

    async def insert(self, data: Union[Dict[str, Any], List[Dict[str, Any]]]):
        """Insert one record (returns it) or a list of records (returns the list)"""
        records = data if isinstance(data, list) else [data]
        inserted = await self.store.insert([to_store(record) for record in records])
        results = [from_store(document) for document in inserted]
        if isinstance(data, list):
            return results
        return results[0]

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.insert(data)

    async def create_each(self, data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return await self.insert(list(data))

    async def find(self, criteria: Any = None) -> List[Dict[str, Any]]:
        query = self._translate(criteria)
        cursor = self.store.find(query.filter.clause, query.filter.params)
        for modifier in query.modifiers:
            cursor = modifier.apply(cursor)
        documents = await cursor.exec()
        return [from_store(document) for document in documents]

    async def update(self, criteria: Any, values: Dict[str, Any]) -> int:
        """Apply ``values`` to every matching document; returns the match count"""
        query = self._translate(criteria)

        # Identifiers are immutable
        values = {k: v for k, v in values.items() if k not in (MODEL_ID_FIELD, STORE_ID_FIELD)}
        unset = values.pop(UNSET_KEY, None) or ()
        if isinstance(unset, dict):
            unset = list(unset.keys())
        elif isinstance(unset, str):
            unset = [unset]

        count = await self.store.update(
            query.filter.clause, query.filter.params, values, unset, multi=True
        )
        logger.debug(f"Updated {count} document(s) in '{self.name}'")
        return count

    async def destroy(self, criteria: Any = None) -> int:
        query = self._translate(criteria)
        count = await self.store.remove(query.filter.clause, query.filter.params, multi=True)
        logger.debug(f"Removed {count} document(s) from '{self.name}'")
        return count

    async def count(self, criteria: Any = None) -> int:
        # Cursor modifiers do not affect a count
        query = self._translate(criteria)
        return await self.store.count(query.filter.clause, query.filter.params)

    async def drop(self):
        """Close and delete the backing store"""
        await self.store.close()
        await self.store.remove_files()
        logger.info(f"Dropped collection '{self.name}' ({self.store.filename})")
