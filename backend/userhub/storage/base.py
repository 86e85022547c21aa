"""
Storage abstraction for users.

A `UserStore` hands out one `UserGateway` per unit of work through
`transaction()`; the gateway is only valid inside that block. Rows cross this
boundary as plain dicts keyed by field name, with timestamps as aware UTC
datetimes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional

from userhub.query.fields import FieldRegistry
from userhub.query.translator import QueryPlan

Row = Dict[str, Any]


@dataclass(frozen=True)
class SearchCriteria:
    """Search filter: exact email (case-insensitive), name substring, exact age."""

    email: Optional[str] = None
    name: Optional[str] = None
    age: Optional[int] = None

    def is_empty(self) -> bool:
        return self.email is None and self.name is None and self.age is None

    def matches(self, row: Mapping[str, Any]) -> bool:
        if self.email is not None and str(row.get("email", "")).casefold() != self.email.casefold():
            return False
        if self.name is not None and self.name.lower() not in str(row.get("name", "")).lower():
            return False
        if self.age is not None and row.get("age") != self.age:
            return False
        return True


class UserGateway(ABC):
    @abstractmethod
    def get(self, user_id: int) -> Optional[Row]:
        ...

    @abstractmethod
    def page(self, after_id: int, limit: int, criteria: Optional[SearchCriteria] = None) -> List[Row]:
        """Rows with id > after_id in ascending id order, at most `limit`."""

    @abstractmethod
    def query(self, plan: QueryPlan) -> List[Row]:
        """Execute a translated query plan; rows come back projected."""

    @abstractmethod
    def insert(self, values: Mapping[str, Any]) -> Row:
        ...

    @abstractmethod
    def update(self, user_id: int, changes: Mapping[str, Any]) -> Optional[Row]:
        ...

    @abstractmethod
    def delete(self, user_id: int) -> Optional[Row]:
        ...

    @abstractmethod
    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        ...

    @abstractmethod
    def ping(self) -> bool:
        ...


class UserStore(ABC):
    name: str = "base"
    fields: FieldRegistry

    def startup(self) -> None:
        """Prepare the backend (create tables, open pools)."""

    def shutdown(self) -> None:
        """Release backend resources."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[UserGateway]:
        """Yield a gateway; commit on normal exit, roll back on error, always release."""
