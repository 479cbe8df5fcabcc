"""
litedoc: an ORM adapter over file-backed embedded document stores.
Each model lives in its own SQLite file; ORM criteria are translated into
native filters and cursor modifiers, and populate requests are served through
a two-call lookup contract.
"""

__version__ = "1.0.0"

from .adapter import Adapter
from .collection import Collection
from .config import ConnectionConfig
from .connection import Connection
from .criteria import And, Comparison, Criteria, Not, Or, SortKey, parse_criteria
from .errors import (
    ConfigurationError,
    ConnectionFailedError,
    DuplicateModelError,
    IdentityDuplicateError,
    IdentityMissingError,
    LitedocError,
    StoreError,
    TranslationError,
    UniqueConstraintError,
    UnknownModelError,
)
from .identifiers import from_store, to_store
from .lookup import JoinOrchestrator, ModelLookup
from .native import DocumentStore
from .schema import FieldDescriptor, normalize_schema, primary_key_name
from .translator import CriteriaTranslator, NativeFilter, NativeQuery, translate
from .main import setup_logging


__all__ = [
    "Adapter",
    "Collection",
    "Connection",
    "ConnectionConfig",
    "DocumentStore",
    "ModelLookup",
    "JoinOrchestrator",
    "Criteria",
    "Comparison",
    "And",
    "Or",
    "Not",
    "SortKey",
    "parse_criteria",
    "CriteriaTranslator",
    "NativeFilter",
    "NativeQuery",
    "translate",
    "FieldDescriptor",
    "normalize_schema",
    "primary_key_name",
    "to_store",
    "from_store",
    "LitedocError",
    "ConfigurationError",
    "IdentityMissingError",
    "IdentityDuplicateError",
    "DuplicateModelError",
    "TranslationError",
    "StoreError",
    "UniqueConstraintError",
    "ConnectionFailedError",
    "UnknownModelError",
    "setup_logging",
]
