"""
Identifier mapping between the model-facing ``id`` and the store's ``_id``.

Both functions return new dicts; callers may keep reusing the records they
passed in.
"""

from typing import Dict, Any

MODEL_ID_FIELD = "id"
STORE_ID_FIELD = "_id"


def to_store(record: Dict[str, Any]) -> Dict[str, Any]:
    """Prepare a record for insert/update"""
    document = {k: v for k, v in record.items() if k not in (STORE_ID_FIELD, MODEL_ID_FIELD)}
    model_id = record.get(MODEL_ID_FIELD)
    if model_id is not None:
        document[STORE_ID_FIELD] = model_id if isinstance(model_id, str) else str(model_id)
    return document


def from_store(document: Dict[str, Any]) -> Dict[str, Any]:
    """Prepare a stored document for the caller"""
    if STORE_ID_FIELD not in document:
        return dict(document)
    record = {k: v for k, v in document.items() if k != STORE_ID_FIELD}
    record[MODEL_ID_FIELD] = document[STORE_ID_FIELD]
    return record


def stringify_id(value: Any) -> Any:
    """Identifier values as the store keeps them"""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return [stringify_id(item) for item in value]
    return str(value)
