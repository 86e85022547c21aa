"""User operations shared by the REST routes and the GraphQL resolvers."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo

from userhub.core.errors import DuplicateEmail, InvalidField, NotFound, ValidationError
from userhub.core.logging import get_logger
from userhub.query.fields import MAX_INT, MIN_INT, FieldRegistry
from userhub.query.pagination import DEFAULT_PAGE_LIMIT, CursorPage, build_page, parse_page_args
from userhub.query.translator import DEFAULT_QUERY_LIMIT, is_int, parse_query
from userhub.storage.base import SearchCriteria, UserStore

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_NAME_LENGTH = 2
MIN_AGE, MAX_AGE = 1, 150

_SEARCH_CRITERIA = ("email", "name", "age")
_SEARCH_PAGING = ("cursor", "limit")


def _storable(user_id: int) -> bool:
    return MIN_INT <= user_id <= MAX_INT


def _parse_age(value: Any) -> Optional[int]:
    if is_int(value):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def validate_user_data(data: Mapping[str, Any], fields: FieldRegistry, partial: bool = False) -> Dict[str, Any]:
    """Check a create/update payload and return the cleaned values.

    Every violated rule is collected before raising, so the caller gets the
    full list in one `ValidationError`.
    """
    errors: List[str] = []
    cleaned: Dict[str, Any] = {}

    for key in data:
        if key not in fields:
            errors.append(f"'{key}' is not supported by this storage backend")
        elif key not in fields.writable:
            errors.append(f"'{key}' is assigned by the server and cannot be set")

    if not partial:
        for key in fields.writable:
            value = data.get(key)
            if value is None or (isinstance(value, str) and value.strip() == ""):
                errors.append(f"'{key}' is required")

    if "name" in data and "name" in fields:
        name = data["name"]
        if name is None:
            if partial:
                errors.append("'name' cannot be null")
        elif not isinstance(name, str):
            errors.append("'name' must be a string")
        elif name.strip() and len(name.strip()) < MIN_NAME_LENGTH:
            errors.append(f"'name' must be at least {MIN_NAME_LENGTH} characters")
        elif partial and not name.strip():
            errors.append("'name' cannot be empty")
        else:
            cleaned["name"] = name.strip()

    if "email" in data and "email" in fields:
        email = data["email"]
        if email is None:
            if partial:
                errors.append("'email' cannot be null")
        elif not isinstance(email, str):
            errors.append("'email' must be a string")
        elif email.strip() and not EMAIL_RE.match(email.strip()):
            errors.append("'email' is not a valid email address")
        elif partial and not email.strip():
            errors.append("'email' cannot be empty")
        else:
            cleaned["email"] = email.strip()

    if "age" in data and "age" in fields:
        raw_age = data["age"]
        if raw_age is None:
            if partial:
                errors.append("'age' cannot be null")
        elif not (isinstance(raw_age, str) and raw_age.strip() == ""):
            age = _parse_age(raw_age)
            if age is None or not MIN_AGE <= age <= MAX_AGE:
                errors.append(f"'age' must be an integer from {MIN_AGE} to {MAX_AGE}")
            else:
                cleaned["age"] = age

    if errors:
        raise ValidationError(errors)
    return cleaned


class UserService:
    def __init__(self, store: UserStore, display_timezone: str = "Asia/Ho_Chi_Minh"):
        self.store = store
        self.tz = ZoneInfo(display_timezone)

    @property
    def fields(self) -> FieldRegistry:
        return self.store.fields

    def present(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Render a stored row for clients; timestamps move to the display zone."""
        out: Dict[str, Any] = {}
        for key, value in row.items():
            if isinstance(value, datetime):
                value = value.astimezone(self.tz).isoformat()
            out[key] = value
        return out

    def _present_page(self, page: CursorPage) -> CursorPage:
        page.items = [self.present(r) for r in page.items]
        return page

    # ── Reads ────────────────────────────────────────────────────────────────

    def list_users(self, cursor: Any = None, limit: Any = None) -> CursorPage:
        cursor, limit = parse_page_args(cursor, limit, DEFAULT_PAGE_LIMIT)
        if cursor > MAX_INT:
            return CursorPage(limit=limit)
        with self.store.transaction() as gw:
            rows = gw.page(cursor, limit)
        return self._present_page(build_page(rows, limit))

    def find_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        if not _storable(user_id):
            return None
        with self.store.transaction() as gw:
            row = gw.get(user_id)
        return self.present(row) if row else None

    def get_user(self, user_id: int) -> Dict[str, Any]:
        user = self.find_user(user_id)
        if user is None:
            raise NotFound()
        return user

    def search_users(self, payload: Mapping[str, Any]) -> CursorPage:
        errors: List[str] = []
        for key in payload:
            if key not in _SEARCH_CRITERIA + _SEARCH_PAGING or (key in _SEARCH_CRITERIA and key not in self.fields):
                raise InvalidField(key, "search")

        values: Dict[str, Any] = {}
        for key in ("email", "name"):
            value = payload.get(key)
            if value is None or (isinstance(value, str) and value.strip() == ""):
                continue
            if not isinstance(value, str):
                errors.append(f"'{key}' must be a string")
                continue
            values[key] = value.strip()
        if payload.get("age") is not None:
            if is_int(payload["age"]):
                values["age"] = payload["age"]
            else:
                errors.append("'age' must be an integer")
        if errors:
            raise ValidationError(errors)

        criteria = SearchCriteria(**values)
        if criteria.is_empty():
            raise ValidationError(
                ["Provide at least one of: " + ", ".join(k for k in _SEARCH_CRITERIA if k in self.fields)],
                "Search criteria cannot be empty. Please provide at least one field (e.g., email, name).",
            )

        cursor, limit = parse_page_args(payload.get("cursor"), payload.get("limit"), DEFAULT_PAGE_LIMIT)
        if cursor > MAX_INT:
            return CursorPage(limit=limit)
        with self.store.transaction() as gw:
            rows = gw.page(cursor, limit, criteria)
        return self._present_page(build_page(rows, limit))

    def query_users(self, payload: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        plan = parse_query(payload, self.fields, default_limit=DEFAULT_QUERY_LIMIT)
        with self.store.transaction() as gw:
            rows = gw.query(plan)
        return [self.present(r) for r in rows]

    # ── Writes ───────────────────────────────────────────────────────────────

    def create_user(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        values = validate_user_data(payload, self.fields, partial=False)
        now = datetime.now(timezone.utc)
        values.update(created_at=now, updated_at=now)
        with self.store.transaction() as gw:
            if gw.email_taken(values["email"]):
                raise DuplicateEmail()
            row = gw.insert(values)
        logger.info("Created user %s", row["id"])
        return self.present(row)

    def update_user(self, user_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        changes = validate_user_data(payload, self.fields, partial=True)
        if not _storable(user_id):
            raise NotFound()
        with self.store.transaction() as gw:
            if gw.get(user_id) is None:
                raise NotFound()
            if "email" in changes and gw.email_taken(changes["email"], exclude_id=user_id):
                raise DuplicateEmail()
            changes["updated_at"] = datetime.now(timezone.utc)
            row = gw.update(user_id, changes)
        if row is None:
            raise NotFound()
        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(changes)))
        return self.present(row)

    def delete_user(self, user_id: int) -> Dict[str, Any]:
        if not _storable(user_id):
            raise NotFound()
        with self.store.transaction() as gw:
            if gw.get(user_id) is None:
                raise NotFound()
            row = gw.delete(user_id)
        logger.info("Deleted user %s", user_id)
        return self.present(row)

    def ping(self) -> bool:
        with self.store.transaction() as gw:
            return gw.ping()
