"""
GraphQL surface: the same user operations as REST, minus the query DSL.

Field names stay snake_case (`created_at`, `updated_at`) to match the REST
payloads; operation names are camelCase as clients already call them.
"""

from typing import Any, Dict, List, Optional

import strawberry
from strawberry.fastapi import GraphQLRouter
from strawberry.schema.config import StrawberryConfig
from strawberry.types import Info

from userhub.api.dependencies import get_graphql_context, run_blocking
from userhub.core.errors import ValidationError
from userhub.core.logging import get_logger
from userhub.services.user_service import UserService

logger = get_logger(__name__)


@strawberry.type
class User:
    id: strawberry.ID
    name: str
    email: str
    age: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        return cls(
            id=strawberry.ID(str(row["id"])),
            name=row["name"],
            email=row["email"],
            age=row.get("age"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


def _service(info: Info) -> UserService:
    return info.context["service"]


def _parse_id(value: Any, name: str = "id") -> int:
    try:
        parsed = int(str(value))
    except (TypeError, ValueError):
        raise ValidationError([f"'{name}' must be an integer"]) from None
    if parsed < 0:
        raise ValidationError([f"'{name}' must not be negative"])
    return parsed


def _provided(**values: Any) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


@strawberry.type
class Query:
    @strawberry.field
    def hello(self) -> str:
        logger.debug("hello resolver called")
        return "Hello World!"

    @strawberry.field
    async def user(self, info: Info, id: strawberry.ID) -> Optional[User]:
        row = await run_blocking(_service(info).find_user, _parse_id(id))
        return User.from_row(row) if row else None

    @strawberry.field
    async def users(
        self,
        info: Info,
        cursor: Optional[strawberry.ID] = None,
        limit: Optional[int] = None,
    ) -> List[User]:
        parsed_cursor = _parse_id(cursor, "cursor") if cursor else 0
        page = await run_blocking(_service(info).list_users, parsed_cursor, limit)
        return [User.from_row(r) for r in page.items]

    @strawberry.field(name="searchUsers")
    async def search_users(
        self,
        info: Info,
        email: Optional[str] = None,
        name: Optional[str] = None,
        cursor: Optional[strawberry.ID] = None,
        limit: Optional[int] = None,
    ) -> List[User]:
        """Matches after `cursor` (an id), `limit` at a time; pass the last id to continue."""
        payload = _provided(email=email or None, name=name or None, limit=limit)
        if cursor:
            payload["cursor"] = _parse_id(cursor, "cursor")
        page = await run_blocking(_service(info).search_users, payload)
        return [User.from_row(r) for r in page.items]


@strawberry.type
class Mutation:
    @strawberry.mutation(name="createUser")
    async def create_user(self, info: Info, name: str, email: str, age: Optional[int] = None) -> User:
        row = await run_blocking(_service(info).create_user, _provided(name=name, email=email, age=age))
        return User.from_row(row)

    @strawberry.mutation(name="updateUser")
    async def update_user(
        self,
        info: Info,
        id: strawberry.ID,
        name: Optional[str] = None,
        email: Optional[str] = None,
        age: Optional[int] = None,
    ) -> User:
        changes = _provided(name=name, email=email, age=age)
        row = await run_blocking(_service(info).update_user, _parse_id(id), changes)
        return User.from_row(row)

    @strawberry.mutation(name="deleteUser")
    async def delete_user(self, info: Info, id: strawberry.ID) -> User:
        row = await run_blocking(_service(info).delete_user, _parse_id(id))
        return User.from_row(row)


schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
    config=StrawberryConfig(auto_camel_case=False),
)


def build_graphql_router() -> GraphQLRouter:
    return GraphQLRouter(schema, context_getter=get_graphql_context)
