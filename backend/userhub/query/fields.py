"""Explicit registry of the user fields a backend exposes.

Every field name coming from a client (where/select/sort, search criteria,
update payloads) is resolved here; unknown names raise `InvalidField` so the
real storage schema is never probed directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Tuple

from userhub.core.errors import InvalidField

INT = "int"
TEXT = "text"
DATETIME = "datetime"

# Widest integer any backend stores (BIGINT); ids and cursors beyond it match nothing.
MIN_INT = -(2 ** 63)
MAX_INT = 2 ** 63 - 1


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    writable: bool = False

    @property
    def orderable(self) -> bool:
        return self.kind in (INT, DATETIME)


ID = FieldSpec("id", INT)
NAME = FieldSpec("name", TEXT, writable=True)
EMAIL = FieldSpec("email", TEXT, writable=True)
AGE = FieldSpec("age", INT, writable=True)
CREATED_AT = FieldSpec("created_at", DATETIME)
UPDATED_AT = FieldSpec("updated_at", DATETIME)


class FieldRegistry:
    def __init__(self, fields: Iterable[FieldSpec]):
        self._fields: Dict[str, FieldSpec] = {f.name: f for f in fields}

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._fields.values())

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    @property
    def writable(self) -> List[str]:
        return [f.name for f in self._fields.values() if f.writable]

    def resolve(self, name: object, context: str = "query") -> FieldSpec:
        if not isinstance(name, str) or name not in self._fields:
            raise InvalidField(str(name), context)
        return self._fields[name]


# The in-memory backend carries `age`; the SQL schema does not.
MEMORY_FIELDS = FieldRegistry([ID, NAME, EMAIL, AGE, CREATED_AT, UPDATED_AT])
SQL_FIELDS = FieldRegistry([ID, NAME, EMAIL, CREATED_AT, UPDATED_AT])
