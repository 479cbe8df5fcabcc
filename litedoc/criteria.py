"""
Criteria model and parser.

ORM criteria arrive as loosely shaped dicts::

    {"where": {"age": {">": 2}, "or": [{"name": "Rex"}, {"name": "Fido"}]},
     "sort": {"age": -1}, "skip": 10, "limit": 5, "select": ["name"]}

``parse_criteria`` turns them into a ``Criteria`` whose where-clause is a tree
of ``Comparison``, ``And``, ``Or`` and ``Not`` nodes. Anything that does not
fit that shape raises ``TranslationError``. ``select`` is always dropped:
field projection is not pushed down to the store.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Union

from .errors import TranslationError

SELECT_KEY = "select"
DIRECTIVE_KEYS = ("where", "sort", "skip", "limit")

# ORM operator spellings -> canonical operator
OPERATOR_ALIASES = {
    "=": "eq",
    "==": "eq",
    "eq": "eq",
    "equals": "eq",
    "!": "ne",
    "!=": "ne",
    "ne": "ne",
    "not": "ne",
    "<": "lt",
    "lt": "lt",
    "lessThan": "lt",
    "<=": "lte",
    "lte": "lte",
    "lessThanOrEqual": "lte",
    ">": "gt",
    "gt": "gt",
    "greaterThan": "gt",
    ">=": "gte",
    "gte": "gte",
    "greaterThanOrEqual": "gte",
    "in": "in",
    "nin": "nin",
    "notIn": "nin",
    "like": "like",
    "contains": "contains",
    "startsWith": "startsWith",
    "endsWith": "endsWith",
    "regex": "regex",
    "exists": "exists",
}

OPERATORS = frozenset(OPERATOR_ALIASES.values())

LOGICAL_KEYS = ("and", "or", "nor")
NOT_KEY = "not"


@dataclass(frozen=True)
class Comparison:
    field: str
    op: str
    value: Any = None


@dataclass(frozen=True)
class And:
    nodes: tuple = ()


@dataclass(frozen=True)
class Or:
    nodes: tuple = ()


@dataclass(frozen=True)
class Not:
    node: Any = None


WhereNode = Union[Comparison, And, Or, Not]
WHERE_NODE_TYPES = (Comparison, And, Or, Not)


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


@dataclass
class Criteria:
    """A parsed query description"""

    where: Optional[WhereNode] = None
    sort: List[SortKey] = field(default_factory=list)
    skip: Optional[int] = None
    limit: Optional[int] = None


def strip_select(criteria: Any) -> Any:
    """Copy of ``criteria`` without a ``select`` directive"""
    if isinstance(criteria, dict) and SELECT_KEY in criteria:
        return {k: v for k, v in criteria.items() if k != SELECT_KEY}
    return criteria


def parse_criteria(raw: Any) -> Criteria:
    if isinstance(raw, Criteria):
        return raw
    if raw is None:
        return Criteria()
    if isinstance(raw, WHERE_NODE_TYPES):
        return Criteria(where=raw)
    if not isinstance(raw, dict):
        raise TranslationError(f"Criteria must be a mapping, got {type(raw).__name__}")

    raw = strip_select(raw)
    directives = [key for key in raw if key in DIRECTIVE_KEYS]
    if not directives:
        # A bare where-clause
        return Criteria(where=parse_where(raw) if raw else None)

    stray = [key for key in raw if key not in DIRECTIVE_KEYS]
    if stray:
        raise TranslationError(
            f"Criteria mixes query directives with attribute filters: {', '.join(map(str, stray))}"
        )

    where = raw.get("where")
    if where is not None and not isinstance(where, WHERE_NODE_TYPES):
        if not isinstance(where, dict):
            raise TranslationError(
                f"'where' must be a mapping, got {type(where).__name__}"
            )
        where = parse_where(where) if where else None

    return Criteria(
        where=where,
        sort=parse_sort(raw.get("sort")),
        skip=_parse_count("skip", raw.get("skip")),
        limit=_parse_count("limit", raw.get("limit")),
    )


def parse_where(clause: Dict[str, Any]) -> WhereNode:
    if not isinstance(clause, dict):
        raise TranslationError(
            f"Where-clause must be a mapping, got {type(clause).__name__}"
        )

    nodes = []
    for key, value in clause.items():
        if not isinstance(key, str):
            raise TranslationError(f"Attribute names must be strings, got {key!r}")
        if key in LOGICAL_KEYS:
            nodes.append(_parse_logical(key, value))
        elif key == NOT_KEY:
            nodes.append(Not(_parse_operand(key, value)))
        else:
            nodes.append(_parse_attribute(key, value))

    if len(nodes) == 1:
        return nodes[0]
    return And(tuple(nodes))


def _parse_operand(key: str, value: Any) -> WhereNode:
    if isinstance(value, WHERE_NODE_TYPES):
        return value
    if not isinstance(value, dict):
        raise TranslationError(
            f"Operand of '{key}' must be a mapping, got {type(value).__name__}"
        )
    return parse_where(value)


def _parse_logical(key: str, value: Any) -> WhereNode:
    if not isinstance(value, (list, tuple)) or not value:
        raise TranslationError(f"'{key}' expects a non-empty list of where-clauses")

    nodes = tuple(_parse_operand(key, item) for item in value)
    if key == "and":
        return And(nodes)
    if key == "or":
        return Or(nodes)
    return Not(Or(nodes))


def _parse_attribute(name: str, value: Any) -> WhereNode:
    if isinstance(value, dict):
        if not value:
            raise TranslationError(f"Empty operator mapping for attribute '{name}'")
        comparisons = []
        for op, operand in value.items():
            canonical = OPERATOR_ALIASES.get(op)
            if canonical is None:
                raise TranslationError(f"Unknown operator '{op}' on attribute '{name}'")
            comparisons.append(Comparison(name, canonical, operand))
        if len(comparisons) == 1:
            return comparisons[0]
        return And(tuple(comparisons))

    if isinstance(value, (list, tuple)):
        return Comparison(name, "in", list(value))
    if isinstance(value, re.Pattern):
        return Comparison(name, "regex", value)
    return Comparison(name, "eq", value)


def parse_sort(raw: Any) -> List[SortKey]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [_parse_sort_token(token) for token in raw.split(",") if token.strip()]
    if isinstance(raw, dict):
        return [SortKey(name, _parse_direction(name, direction)) for name, direction in raw.items()]
    if isinstance(raw, (list, tuple)):
        keys = []
        for item in raw:
            if isinstance(item, SortKey):
                keys.append(item)
            elif isinstance(item, str):
                keys.append(_parse_sort_token(item))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                keys.append(SortKey(item[0], _parse_direction(item[0], item[1])))
            else:
                raise TranslationError(f"Cannot parse sort entry {item!r}")
        return keys
    raise TranslationError(f"Cannot parse sort directive of type {type(raw).__name__}")


def _parse_sort_token(token: str) -> SortKey:
    parts = token.split()
    if len(parts) == 1:
        return SortKey(parts[0])
    if len(parts) == 2:
        return SortKey(parts[0], _parse_direction(parts[0], parts[1]))
    raise TranslationError(f"Cannot parse sort entry {token!r}")


def _parse_direction(name: str, direction: Any) -> bool:
    """True for descending"""
    if isinstance(direction, str):
        lowered = direction.lower()
        if lowered == "asc":
            return False
        if lowered == "desc":
            return True
    elif not isinstance(direction, bool) and direction in (1, -1):
        return direction == -1
    raise TranslationError(f"Invalid sort direction {direction!r} for attribute '{name}'")


def _parse_count(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TranslationError(f"'{name}' must be a non-negative integer, got {value!r}")
    return value
