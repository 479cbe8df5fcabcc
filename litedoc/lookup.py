"""
Lookup contract served to an external join orchestrator.

To satisfy a populate request the orchestrator needs exactly two things per
related model: a way to fetch records by criteria and the name of the primary
key it should join on. ``ModelLookup`` provides both and nothing more. Calls
are independent and reentrant; every ``find_by_criteria`` builds its own
cursor.
"""

from typing import Dict, List, Any, Awaitable, Protocol

from .connection import Connection


class ModelLookup:
    """Resolves model names against one connection's registrations"""

    def __init__(self, connection: Connection):
        self._connection = connection

    def find_by_criteria(self, model_name: str, criteria: Any) -> Awaitable[List[Dict[str, Any]]]:
        """Records of ``model_name`` matching ``criteria``, identifiers normalized"""
        # Resolve eagerly so an unknown model fails at call time
        collection = self._connection.get(model_name)
        return collection.find(criteria)

    def primary_key_name(self, model_name: str) -> str:
        return self._connection.get(model_name).primary_key


class JoinOrchestrator(Protocol):
    """Generic cross-store join algorithm driving a ModelLookup"""

    def __call__(
        self, instructions: Dict[str, Any], parent_collection: str, lookup: ModelLookup
    ) -> Awaitable[List[Dict[str, Any]]]:
        ...
