"""
SQL persistence layer for users (PostgreSQL in production, SQLite in tests).

Statements are built with SQLAlchemy Core so every client value travels as a
bound parameter. Each transaction checks one connection out of the engine's
pool and returns it on every exit path.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from userhub.core.errors import DuplicateEmail, InternalError
from userhub.core.logging import get_logger
from userhub.query.collation import DESC, sort_rows
from userhub.query.fields import SQL_FIELDS
from userhub.query.translator import CONTAINS, EQUALS, GT, QueryPlan, project
from userhub.storage.base import Row, SearchCriteria, UserGateway, UserStore

logger = get_logger(__name__)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("email", Text, nullable=False),
    # casefolded in Python so uniqueness does not depend on the database locale
    Column("email_key", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    # SQLite would otherwise hand out max(id)+1 again after deleting the newest row
    sqlite_autoincrement=True,
)

Index("ux_users_email_key", users.c.email_key, unique=True)


def email_key(email: str) -> str:
    return email.casefold()


def _to_row(mapping: Mapping[str, Any]) -> Row:
    row = dict(mapping)
    row.pop("email_key", None)
    for key, value in row.items():
        # SQLite hands timestamps back without tzinfo; they were written as UTC
        if isinstance(value, datetime) and value.tzinfo is None:
            row[key] = value.replace(tzinfo=timezone.utc)
    return row


def _utc(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc)
    return value


def _payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    payload = {k: _utc(v) for k, v in values.items() if k in SQL_FIELDS and k != "id"}
    if isinstance(payload.get("email"), str):
        payload["email_key"] = email_key(payload["email"])
    return payload


def _is_unique_violation(exc: IntegrityError) -> bool:
    # psycopg exposes the SQLSTATE; sqlite3 only has the message
    if getattr(exc.orig, "sqlstate", None) == "23505":
        return True
    return "unique constraint" in str(exc.orig).lower()


class SqlUserGateway(UserGateway):
    def __init__(self, conn: Connection):
        self.conn = conn

    def get(self, user_id: int) -> Optional[Row]:
        found = self.conn.execute(select(users).where(users.c.id == user_id)).mappings().first()
        return _to_row(found) if found else None

    def page(self, after_id: int, limit: int, criteria: Optional[SearchCriteria] = None) -> List[Row]:
        stmt = select(users).where(users.c.id > after_id)
        if criteria is not None:
            if criteria.email is not None:
                stmt = stmt.where(users.c.email_key == email_key(criteria.email))
            if criteria.name is not None:
                stmt = stmt.where(users.c.name.icontains(criteria.name, autoescape=True))
        stmt = stmt.order_by(users.c.id.asc()).limit(limit)
        return [_to_row(m) for m in self.conn.execute(stmt).mappings()]

    def _where(self, stmt, plan: QueryPlan):
        for cond in plan.conditions:
            col = users.c[cond.field.name]
            value = _utc(cond.value)
            if cond.op == EQUALS:
                stmt = stmt.where(col == value)
            elif cond.op == CONTAINS:
                stmt = stmt.where(col.icontains(value, autoescape=True))
            elif cond.op == GT:
                stmt = stmt.where(col > value)
            else:
                stmt = stmt.where(col < value)
        return stmt

    def query(self, plan: QueryPlan) -> List[Row]:
        sort_spec = SQL_FIELDS.resolve(plan.sort_field, "sort")

        if sort_spec.orderable:
            columns = [users.c[name] for name in (plan.select or SQL_FIELDS.names)]
            sort_col = users.c[sort_spec.name]
            order = sort_col.desc() if plan.direction == DESC else sort_col.asc()
            stmt = self._where(select(*columns), plan)
            stmt = stmt.order_by(order, users.c.id.asc()).offset(plan.offset).limit(plan.limit)
            rows = [_to_row(m) for m in self.conn.execute(stmt).mappings()]
            return [project(row, plan.select, SQL_FIELDS) for row in rows]

        # Text ordering goes through the shared collation so that both
        # backends agree on accent- and case-insensitive order. Every
        # filtered (id, key) pair is read and sorted in process, so cost grows
        # with the match count; full rows are fetched only for the window.
        keys_stmt = self._where(select(users.c.id, users.c[sort_spec.name]), plan).order_by(users.c.id.asc())
        keys = [dict(m) for m in self.conn.execute(keys_stmt).mappings()]
        ordered = sort_rows(keys, plan.sort_field, plan.direction)
        window_ids = [k["id"] for k in ordered[plan.offset:plan.offset + plan.limit]]
        if not window_ids:
            return []
        found = self.conn.execute(select(users).where(users.c.id.in_(window_ids))).mappings()
        by_id = {row["id"]: row for row in (_to_row(m) for m in found)}
        return [project(by_id[user_id], plan.select, SQL_FIELDS) for user_id in window_ids]

    def insert(self, values: Mapping[str, Any]) -> Row:
        try:
            result = self.conn.execute(insert(users).values(**_payload(values)))
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateEmail() from exc
            raise
        return self.get(result.inserted_primary_key[0])

    def update(self, user_id: int, changes: Mapping[str, Any]) -> Optional[Row]:
        payload = _payload(changes)
        if payload:
            try:
                result = self.conn.execute(update(users).where(users.c.id == user_id).values(**payload))
            except IntegrityError as exc:
                if _is_unique_violation(exc):
                    raise DuplicateEmail() from exc
                raise
            if result.rowcount == 0:
                return None
        return self.get(user_id)

    def delete(self, user_id: int) -> Optional[Row]:
        existing = self.get(user_id)
        if existing is None:
            return None
        self.conn.execute(delete(users).where(users.c.id == user_id))
        return existing

    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(users.c.id).where(users.c.email_key == email_key(email))
        if exclude_id is not None:
            stmt = stmt.where(users.c.id != exclude_id)
        return self.conn.execute(stmt.limit(1)).first() is not None

    def ping(self) -> bool:
        return self.conn.execute(text("SELECT 1")).scalar() == 1


class SqlUserStore(UserStore):
    name = "sql"
    fields = SQL_FIELDS

    def __init__(self, engine: Engine, schema: Optional[str] = None):
        if schema:
            engine = engine.execution_options(schema_translate_map={None: schema})
        self.engine = engine
        self.schema = schema

    @classmethod
    def from_url(
        cls,
        url: str,
        schema: Optional[str] = None,
        pool_size: int = 5,
        max_overflow: int = 10,
    ) -> "SqlUserStore":
        kwargs: Dict[str, Any] = {"pool_pre_ping": True}
        if not url.startswith("sqlite"):
            kwargs.update(pool_size=pool_size, max_overflow=max_overflow)
        return cls(create_engine(url, **kwargs), schema=schema)

    def startup(self) -> None:
        metadata.create_all(self.engine)
        logger.info("SQL storage ready (%s, schema=%s)", self.engine.url.render_as_string(), self.schema or "default")

    def shutdown(self) -> None:
        self.engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[SqlUserGateway]:
        try:
            with self.engine.begin() as conn:
                yield SqlUserGateway(conn)
        except SQLAlchemyError as exc:
            logger.error("Database error: %s", exc)
            raise InternalError("Database error") from exc
