"""
Schema normalization for model definitions.

The embedded store has no sequence mechanism, so auto-increment markers are
dropped here; a model that really needs auto-increment ids must generate them
itself before insert.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_KEY = "id"

# Descriptor keys that map onto FieldDescriptor attributes
_UNIQUE_KEYS = ("unique",)
_INDEX_KEYS = ("index", "indexed")
_PRIMARY_KEYS = ("primaryKey", "primary_key")
_AUTO_INCREMENT_KEYS = ("autoIncrement", "auto_increment")


@dataclass(frozen=True)
class FieldDescriptor:
    """Normalized description of one model attribute"""

    type: Optional[str] = None
    unique: bool = False
    indexed: bool = False
    primary_key: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        if self.type is not None:
            data["type"] = self.type
        if self.unique:
            data["unique"] = True
        if self.indexed:
            data["index"] = True
        if self.primary_key:
            data["primaryKey"] = True
        return data


Schema = Dict[str, FieldDescriptor]


def normalize_field(name: str, raw: Union[str, Dict[str, Any], FieldDescriptor]) -> FieldDescriptor:
    """Normalize a single attribute definition"""
    if isinstance(raw, FieldDescriptor):
        return raw
    if isinstance(raw, str):
        return FieldDescriptor(type=raw)
    if raw is None:
        return FieldDescriptor()

    unique = indexed = primary_key = False
    extra = {}
    for key, value in raw.items():
        if key == "type":
            continue
        if key in _UNIQUE_KEYS:
            unique = bool(value)
        elif key in _INDEX_KEYS:
            indexed = bool(value)
        elif key in _PRIMARY_KEYS:
            primary_key = bool(value)
        elif key in _AUTO_INCREMENT_KEYS:
            logger.debug(f"Dropping auto-increment flag from attribute '{name}'")
        else:
            extra[key] = value

    return FieldDescriptor(
        type=raw.get("type"),
        unique=unique,
        indexed=indexed,
        primary_key=primary_key,
        extra=extra,
    )


def normalize_schema(raw: Optional[Dict[str, Any]]) -> Schema:
    """Return a normalized copy of ``raw``; the input is left untouched"""
    if not raw:
        return {}
    return {name: normalize_field(name, definition) for name, definition in raw.items()}


def primary_key_name(schema: Schema) -> str:
    for name, descriptor in schema.items():
        if descriptor.primary_key:
            return name
    return DEFAULT_PRIMARY_KEY


def check_primary_keys(model_name: str, schema: Schema):
    """Reject schemas flagging more than one primary key"""
    flagged = [name for name, descriptor in schema.items() if descriptor.primary_key]
    if len(flagged) > 1:
        raise ConfigurationError(
            f"Model '{model_name}' declares more than one primary key: {', '.join(flagged)}"
        )


def describe_schema(schema: Schema) -> Dict[str, Dict[str, Any]]:
    """Plain-dict rendition of a normalized schema"""
    return {name: descriptor.to_dict() for name, descriptor in schema.items()}
