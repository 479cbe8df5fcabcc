"""
Index lifecycle for model stores.

Unique attributes get a unique, sparse index (documents without the
attribute do not collide); ``index: true`` attributes get a plain secondary
index. Index creation is idempotent, so rebuilding after a partial failure is
safe.
"""

import asyncio
import logging
from typing import List

from .identifiers import MODEL_ID_FIELD
from .native import DocumentStore
from .schema import Schema

logger = logging.getLogger(__name__)


async def build_indexes(store: DocumentStore, schema: Schema) -> List[str]:
    """Ensure every index the schema asks for exists; returns the attributes touched"""
    requests = []
    fields = []
    for name, descriptor in schema.items():
        if name == MODEL_ID_FIELD:
            continue
        if descriptor.unique:
            requests.append(store.ensure_index(name, unique=True, sparse=True))
        elif descriptor.indexed:
            requests.append(store.ensure_index(name))
        else:
            continue
        fields.append(name)

    if not requests:
        return []

    logger.debug(f"Ensuring indexes on {store.filename}: {', '.join(fields)}")
    results = await asyncio.gather(*requests, return_exceptions=True)
    for name, result in zip(fields, results):
        if isinstance(result, BaseException):
            logger.error(f"Index build for '{name}' failed on {store.filename}: {result}")
            raise result
    return fields
