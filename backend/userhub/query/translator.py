"""
Query translator for the ad-hoc users query DSL.

A request of the form

    {"where": {"age": {"gt": 20, "lt": 35}, "name": {"contains": "anh"}},
     "select": ["id", "name"],
     "sort": {"field": "name", "direction": "desc"},
     "limit": 10, "offset": 0}

is parsed into a `QueryPlan` checked against a backend's `FieldRegistry`.
The plan is then executed either in-process (`execute_in_memory`) or by the
SQL gateway, which compiles the same plan into a parameterized statement.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from userhub.core.errors import ValidationError
from userhub.query.collation import ASC, DESC, sort_rows
from userhub.query.fields import DATETIME, INT, MAX_INT, MIN_INT, TEXT, FieldRegistry, FieldSpec

MAX_LIMIT = 1000
DEFAULT_QUERY_LIMIT = 10

EQUALS = "equals"
CONTAINS = "contains"
GT = "gt"
LT = "lt"
OPERATORS = (EQUALS, CONTAINS, GT, LT)

_QUERY_KEYS = ("where", "select", "sort", "limit", "offset")


@dataclass(frozen=True)
class Condition:
    field: FieldSpec
    op: str
    value: Any

    def matches(self, row: Mapping[str, Any]) -> bool:
        actual = row.get(self.field.name)
        if actual is None:
            return False
        if self.op == EQUALS:
            return actual == self.value
        if self.op == CONTAINS:
            return self.value.lower() in str(actual).lower()
        if self.op == GT:
            return actual > self.value
        return actual < self.value


@dataclass(frozen=True)
class QueryPlan:
    conditions: Tuple[Condition, ...] = ()
    select: Tuple[str, ...] = ()
    sort_field: str = "id"
    direction: str = ASC
    limit: int = DEFAULT_QUERY_LIMIT
    offset: int = 0


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def coerce_limit(value: Any, default: int, errors: List[str], name: str = "limit") -> int:
    """Validate a page size; absent means `default`, oversize is capped."""
    if value is None:
        return default
    if not is_int(value) or value < 1:
        errors.append(f"'{name}' must be a positive integer")
        return default
    return min(value, MAX_LIMIT)


def coerce_non_negative(value: Any, name: str, errors: List[str]) -> int:
    if value is None:
        return 0
    if not is_int(value) or value < 0:
        errors.append(f"'{name}' must be a non-negative integer")
        return 0
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _wide_int(value: int) -> float:
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def _operand(field: FieldSpec, op: str, value: Any, errors: List[str]) -> Any:
    label = f"where.{field.name}.{op}"
    if op == CONTAINS:
        if field.kind != TEXT:
            errors.append(f"'{label}': 'contains' is only supported on text fields")
        elif not isinstance(value, str):
            errors.append(f"'{label}' must be a string")
        return value
    if op in (GT, LT) and field.kind == TEXT:
        errors.append(f"'{label}': '{op}' is only supported on numeric and timestamp fields")
        return value

    if field.kind == INT:
        numeric = is_int(value) or (op != EQUALS and isinstance(value, float))
        if not numeric:
            errors.append(f"'{label}' must be a number")
        elif is_int(value) and not MIN_INT <= value <= MAX_INT:
            # drivers refuse ints wider than BIGINT; a float compares the same way
            return _wide_int(value)
        return value
    if field.kind == DATETIME:
        parsed = parse_timestamp(value)
        if parsed is None:
            errors.append(f"'{label}' must be an ISO-8601 timestamp")
        return parsed
    if not isinstance(value, str):
        errors.append(f"'{label}' must be a string")
    return value


def _parse_where(where: Any, registry: FieldRegistry, errors: List[str]) -> Tuple[Condition, ...]:
    if where is None:
        return ()
    if not isinstance(where, Mapping):
        errors.append("'where' must be an object")
        return ()

    conditions: List[Condition] = []
    for name, operators in where.items():
        field = registry.resolve(name, "where")
        if not isinstance(operators, Mapping) or not operators:
            errors.append(f"'where.{name}' must be an object with at least one operator")
            continue
        for op, value in operators.items():
            if op not in OPERATORS:
                errors.append(f"'where.{name}': unknown operator '{op}'")
                continue
            conditions.append(Condition(field, op, _operand(field, op, value, errors)))
    return tuple(conditions)


def _parse_select(select: Any, registry: FieldRegistry, errors: List[str]) -> Tuple[str, ...]:
    if select is None:
        return ()
    if not isinstance(select, (list, tuple)):
        errors.append("'select' must be a list of field names")
        return ()
    chosen: List[str] = []
    for name in select:
        spec = registry.resolve(name, "select")
        if spec.name not in chosen:
            chosen.append(spec.name)
    return tuple(chosen)


def _parse_sort(sort: Any, registry: FieldRegistry, errors: List[str]) -> Tuple[str, str]:
    if sort is None:
        return "id", ASC
    if not isinstance(sort, Mapping):
        errors.append("'sort' must be an object with 'field' and 'direction'")
        return "id", ASC
    name = sort.get("field")
    field = registry.resolve(name, "sort") if name is not None else registry.resolve("id")
    direction = DESC if str(sort.get("direction", ASC)).lower() == DESC else ASC
    return field.name, direction


def parse_query(
    request: Optional[Mapping[str, Any]],
    registry: FieldRegistry,
    default_limit: int = DEFAULT_QUERY_LIMIT,
) -> QueryPlan:
    """Validate a query DSL request and build a plan.

    Raises:
        InvalidField: a field name is not in the registry
        ValidationError: malformed operators, operands, limit or offset
    """
    request = request or {}
    errors: List[str] = []
    for key in request:
        if key not in _QUERY_KEYS:
            errors.append(f"Unknown query parameter '{key}'")

    conditions = _parse_where(request.get("where"), registry, errors)
    select = _parse_select(request.get("select"), registry, errors)
    sort_field, direction = _parse_sort(request.get("sort"), registry, errors)
    limit = coerce_limit(request.get("limit"), default_limit, errors)
    # past MAX_INT every backend returns nothing anyway
    offset = min(coerce_non_negative(request.get("offset"), "offset", errors), MAX_INT)

    if errors:
        raise ValidationError(errors, "Invalid query")
    return QueryPlan(conditions, select, sort_field, direction, limit, offset)


def project(row: Mapping[str, Any], select: Sequence[str], registry: FieldRegistry) -> Dict[str, Any]:
    names = select or registry.names
    return {name: row.get(name) for name in names}


def filter_rows(rows: Iterable[Mapping[str, Any]], conditions: Sequence[Condition]) -> List[Dict[str, Any]]:
    return [dict(row) for row in rows if all(c.matches(row) for c in conditions)]


def execute_in_memory(
    plan: QueryPlan,
    rows: Iterable[Mapping[str, Any]],
    registry: FieldRegistry,
) -> List[Dict[str, Any]]:
    """Filter, stable-sort, slice and project `rows` (given in id order)."""
    matched = filter_rows(rows, plan.conditions)
    ordered = sort_rows(matched, plan.sort_field, plan.direction)
    window = ordered[plan.offset:plan.offset + plan.limit]
    return [project(row, plan.select, registry) for row in window]
