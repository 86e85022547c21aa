"""In-process users table, used for demos and tests."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from userhub.core.errors import DuplicateEmail
from userhub.query.fields import MEMORY_FIELDS
from userhub.query.translator import QueryPlan, execute_in_memory
from userhub.storage.base import Row, SearchCriteria, UserGateway, UserStore


class MemoryUserGateway(UserGateway):
    def __init__(self, store: "MemoryUserStore"):
        self._store = store
        self._undo: List[Callable[[], None]] = []

    @property
    def _rows(self) -> Dict[int, Row]:
        return self._store._rows

    def get(self, user_id: int) -> Optional[Row]:
        row = self._rows.get(user_id)
        return dict(row) if row else None

    def page(self, after_id: int, limit: int, criteria: Optional[SearchCriteria] = None) -> List[Row]:
        out: List[Row] = []
        # dict order is insertion order, which is ascending id
        for user_id, row in self._rows.items():
            if user_id <= after_id:
                continue
            if criteria is not None and not criteria.matches(row):
                continue
            out.append(dict(row))
            if len(out) == limit:
                break
        return out

    def query(self, plan: QueryPlan) -> List[Row]:
        return execute_in_memory(plan, self._rows.values(), self._store.fields)

    def insert(self, values: Mapping[str, Any]) -> Row:
        if self.email_taken(values["email"]):
            raise DuplicateEmail()
        user_id = self._store._allocate_id()
        row = {name: values.get(name) for name in self._store.fields.names}
        row["id"] = user_id
        self._rows[user_id] = row
        self._undo.append(lambda: self._rows.pop(user_id, None))
        return dict(row)

    def update(self, user_id: int, changes: Mapping[str, Any]) -> Optional[Row]:
        row = self._rows.get(user_id)
        if row is None:
            return None
        if "email" in changes and self.email_taken(changes["email"], exclude_id=user_id):
            raise DuplicateEmail()
        before = dict(row)
        row.update({k: v for k, v in changes.items() if k in self._store.fields and k != "id"})
        self._undo.append(lambda: self._rows.__setitem__(user_id, before))
        return dict(row)

    def delete(self, user_id: int) -> Optional[Row]:
        row = self._rows.pop(user_id, None)
        if row is None:
            return None

        def restore() -> None:
            self._rows[user_id] = row
            # keep ascending-id iteration order after a rollback
            ordered = dict(sorted(self._rows.items()))
            self._rows.clear()
            self._rows.update(ordered)

        self._undo.append(restore)
        return dict(row)

    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        wanted = email.casefold()
        return any(
            str(row.get("email", "")).casefold() == wanted and user_id != exclude_id
            for user_id, row in self._rows.items()
        )

    def ping(self) -> bool:
        return True

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()


class MemoryUserStore(UserStore):
    """Users kept in an id-ordered dict; ids come from a counter and are never reused."""

    name = "memory"
    fields = MEMORY_FIELDS

    def __init__(self):
        self._rows: Dict[int, Row] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def _allocate_id(self) -> int:
        user_id = self._next_id
        self._next_id += 1
        return user_id

    @contextmanager
    def transaction(self) -> Iterator[MemoryUserGateway]:
        with self._lock:
            gateway = MemoryUserGateway(self)
            try:
                yield gateway
            except BaseException:
                gateway.rollback()
                raise
