"""
Criteria translation.

Turns parsed criteria into a ``NativeQuery``: a parameterised SQL filter over
the document table plus the cursor modifiers (sort, then skip, then limit)
that shape the result set. Filtering and cursor shaping stay separate because
the store applies them at different stages, and ``count`` only needs the
filter.

Range comparisons are guarded by the JSON type of the stored value, so
``{"age": {">": 2}}`` never matches a document whose ``age`` is a string.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Any, Optional, Tuple

from .criteria import (
    And,
    Comparison,
    Criteria,
    Not,
    OPERATOR_ALIASES,
    Or,
    parse_criteria,
)
from .errors import TranslationError
from .identifiers import MODEL_ID_FIELD, STORE_ID_FIELD, stringify_id
from .native import encode, field_expression, type_expression
from .schema import Schema

logger = logging.getLogger(__name__)

MATCH_ALL = "1"
MATCH_NONE = "0"

NUMBER_KINDS = "('integer', 'real')"
NUMERIC_TYPES = {"integer": int, "float": float, "number": float}
LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class NativeFilter:
    clause: str = MATCH_ALL
    params: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class Sort:
    ordering: Tuple[Tuple[str, bool], ...]

    def apply(self, cursor):
        return cursor.sort(self.ordering)


@dataclass(frozen=True)
class Skip:
    count: int

    def apply(self, cursor):
        return cursor.skip(self.count)


@dataclass(frozen=True)
class Limit:
    count: int

    def apply(self, cursor):
        return cursor.limit(self.count)


@dataclass(frozen=True)
class NativeQuery:
    filter: NativeFilter
    modifiers: Tuple[Any, ...] = ()


def _escape_like(text: str) -> str:
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _bindable(value: Any) -> Any:
    if isinstance(value, datetime) or isinstance(value, date):
        return value.isoformat()
    return value


def _json_kind(value: Any) -> str:
    """JSON types (as reported by json_type) a scalar operand can match"""
    if isinstance(value, bool):
        raise TranslationError("Range operators do not accept booleans")
    if isinstance(value, (int, float)):
        return NUMBER_KINDS
    if isinstance(value, (str, datetime, date)):
        return "('text')"
    raise TranslationError(
        f"Range operators need a number, string or date, got {type(value).__name__}"
    )


class CriteriaTranslator:
    """Translates criteria for one model schema"""

    RANGE_OPERATORS = {"lt": "<", "lte": "<=", "gt": ">", "gte": ">="}

    def __init__(self, schema: Optional[Schema] = None):
        self.schema = schema or {}

    def translate(self, criteria: Any) -> NativeQuery:
        parsed = parse_criteria(criteria)
        native_filter = self.translate_where(parsed.where)
        modifiers = self.cursor_modifiers(parsed)
        logger.debug(f"Translated criteria to {native_filter.clause} {native_filter.params}")
        return NativeQuery(filter=native_filter, modifiers=modifiers)

    def translate_where(self, node: Any) -> NativeFilter:
        if node is None:
            return NativeFilter()
        clause, params = self._node(node)
        return NativeFilter(clause=clause, params=tuple(params))

    def cursor_modifiers(self, criteria: Criteria) -> Tuple[Any, ...]:
        modifiers = []
        if criteria.sort:
            modifiers.append(
                Sort(tuple((field_expression(key.field), key.descending) for key in criteria.sort))
            )
        if criteria.skip:
            modifiers.append(Skip(criteria.skip))
        # A zero limit means no limit
        if criteria.limit:
            modifiers.append(Limit(criteria.limit))
        return tuple(modifiers)

    def _node(self, node: Any) -> Tuple[str, List[Any]]:
        if isinstance(node, Comparison):
            return self._comparison(node)
        if isinstance(node, And):
            return self._group(node.nodes, " AND ", MATCH_ALL)
        if isinstance(node, Or):
            return self._group(node.nodes, " OR ", MATCH_NONE)
        if isinstance(node, Not):
            if node.node is None:
                raise TranslationError("'not' needs an operand")
            clause, params = self._node(node.node)
            # NULL (missing attribute) counts as "did not match"
            return f"NOT coalesce(({clause}), 0)", params
        raise TranslationError(f"Unsupported where-node {node!r}")

    def _group(self, nodes, joiner: str, empty: str) -> Tuple[str, List[Any]]:
        if not nodes:
            return empty, []
        clauses = []
        params: List[Any] = []
        for child in nodes:
            clause, child_params = self._node(child)
            clauses.append(f"({clause})")
            params.extend(child_params)
        if len(clauses) == 1:
            return clauses[0], params
        return joiner.join(clauses), params

    def _coerce(self, name: str, value: Any) -> Any:
        """Align an operand with how the attribute is stored"""
        if name in (MODEL_ID_FIELD, STORE_ID_FIELD):
            return stringify_id(value)
        descriptor = self.schema.get(name)
        cast = NUMERIC_TYPES.get(descriptor.type) if descriptor else None
        if cast is not None and isinstance(value, str):
            try:
                return cast(value)
            except ValueError:
                return value
        if isinstance(value, (list, tuple)):
            return [self._coerce(name, item) for item in value]
        return value

    def _comparison(self, node: Comparison) -> Tuple[str, List[Any]]:
        op = OPERATOR_ALIASES.get(node.op)
        if op is None:
            raise TranslationError(f"Unknown operator '{node.op}' on attribute '{node.field}'")
        expr = field_expression(node.field)

        if op == "exists":
            if not isinstance(node.value, bool):
                raise TranslationError(f"'exists' on '{node.field}' needs a boolean")
            return f"{type_expression(node.field)} IS {'NOT ' if node.value else ''}NULL", []

        if op in ("like", "contains", "startsWith", "endsWith"):
            return self._pattern(node, op, expr)

        if op == "regex":
            value = node.value
            if isinstance(value, re.Pattern):
                return f"regexp_match(?, ?, {expr})", [value.pattern, int(value.flags)]
            if not isinstance(value, str):
                raise TranslationError(f"'regex' on '{node.field}' needs a pattern string")
            try:
                re.compile(value)
            except re.error as e:
                raise TranslationError(f"Invalid regex for '{node.field}': {e}") from e
            return f"regexp_match(?, 0, {expr})", [value]

        value = self._coerce(node.field, node.value)

        if op in ("in", "nin"):
            if not isinstance(value, list):
                raise TranslationError(f"'{op}' on '{node.field}' needs a list")
            return self._membership(node.field, expr, value, negate=(op == "nin"))

        if op == "eq":
            return self._equality(node.field, expr, value)

        if op == "ne":
            if isinstance(value, list):
                return self._membership(node.field, expr, value, negate=True)
            if value is None:
                return f"{expr} IS NOT NULL", []
            clause, params = self._equality(node.field, expr, value)
            return f"NOT coalesce(({clause}), 0)", params

        if value is None or isinstance(value, (dict, list)):
            raise TranslationError(
                f"'{op}' on '{node.field}' needs a scalar operand, got {value!r}"
            )
        sql_op = self.RANGE_OPERATORS[op]
        guard = f"{type_expression(node.field)} IN {_json_kind(value)}"
        return f"{guard} AND {expr} {sql_op} ?", [_bindable(value)]

    def _equality(self, name: str, expr: str, value: Any) -> Tuple[str, List[Any]]:
        if value is None:
            return f"{expr} IS NULL", []
        # json_extract reads true/false back as 1/0; compare booleans by JSON type
        if isinstance(value, bool):
            return f"{type_expression(name)} = '{'true' if value else 'false'}'", []
        if isinstance(value, (int, float)):
            return f"{type_expression(name)} IN {NUMBER_KINDS} AND {expr} = ?", [value]
        if isinstance(value, (dict, list)):
            return f"{expr} = json(?)", [encode(value)]
        return f"{expr} = ?", [_bindable(value)]

    def _membership(self, name: str, expr: str, values: List[Any], negate: bool) -> Tuple[str, List[Any]]:
        for item in values:
            if isinstance(item, (dict, list)):
                raise TranslationError(f"Membership lists for '{name}' must hold scalars")
        booleans = [item for item in values if isinstance(item, bool)]
        numbers = [
            item for item in values
            if isinstance(item, (int, float)) and not isinstance(item, bool)
        ]
        others = [
            _bindable(item) for item in values
            if item is not None and not isinstance(item, (bool, int, float))
        ]

        parts = []
        if others:
            parts.append(f"{expr} IN ({', '.join('?' for _ in others)})")
        if numbers:
            parts.append(
                f"({type_expression(name)} IN {NUMBER_KINDS} "
                f"AND {expr} IN ({', '.join('?' for _ in numbers)}))"
            )
        if booleans:
            kinds = ", ".join(f"'{'true' if b else 'false'}'" for b in dict.fromkeys(booleans))
            parts.append(f"{type_expression(name)} IN ({kinds})")
        if any(item is None for item in values):
            parts.append(f"{expr} IS NULL")

        if not parts:
            return (MATCH_ALL if negate else MATCH_NONE), []
        clause = " OR ".join(parts)
        if negate:
            clause = f"NOT coalesce(({clause}), 0)"
        return clause, others + numbers

    def _pattern(self, node: Comparison, op: str, expr: str) -> Tuple[str, List[Any]]:
        if not isinstance(node.value, str):
            raise TranslationError(f"'{op}' on '{node.field}' needs a string")
        if op == "like":
            return f"{expr} LIKE ?", [node.value]

        text = _escape_like(node.value)
        pattern = {
            "contains": f"%{text}%",
            "startsWith": f"{text}%",
            "endsWith": f"%{text}",
        }[op]
        return f"{expr} LIKE ? ESCAPE '{LIKE_ESCAPE}'", [pattern]


def translate(criteria: Any, schema: Optional[Schema] = None) -> NativeQuery:
    return CriteriaTranslator(schema).translate(criteria)
