"""Users REST routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from userhub.api.dependencies import get_user_service, run_blocking
from userhub.api.responses import envelope, pagination_block
from userhub.models.user_model import QueryRequest, SearchRequest, UserCreate, UserUpdate
from userhub.services.user_service import UserService

router = APIRouter()


@router.get("")
async def list_users(
    request: Request,
    cursor: Optional[int] = Query(None, description="Last id of the previous page; 0 starts from the beginning"),
    limit: Optional[int] = Query(None, description="Page size (default 20, max 1000)"),
    service: UserService = Depends(get_user_service),
):
    page = await run_blocking(service.list_users, cursor, limit)
    return envelope(
        "Get all users successfully",
        page.items,
        pagination=pagination_block(page, request),
    )


@router.get("/uid/{user_id}")
async def get_user(user_id: int, service: UserService = Depends(get_user_service)):
    user = await run_blocking(service.get_user, user_id)
    return envelope("Get user successfully", user)


@router.post("", status_code=201)
async def create_user(body: UserCreate, service: UserService = Depends(get_user_service)):
    user = await run_blocking(service.create_user, body.model_dump(exclude_unset=True))
    return envelope("User created successfully", user)


@router.put("/uid/{user_id}")
async def update_user(user_id: int, body: UserUpdate, service: UserService = Depends(get_user_service)):
    user = await run_blocking(service.update_user, user_id, body.model_dump(exclude_unset=True))
    return envelope("User updated successfully", user)


@router.delete("/uid/{user_id}")
async def delete_user(user_id: int, service: UserService = Depends(get_user_service)):
    user = await run_blocking(service.delete_user, user_id)
    return envelope("User deleted successfully", user)


@router.post("/search")
async def search_users(body: SearchRequest, service: UserService = Depends(get_user_service)):
    """
    Search by any of `email` (exact, case-insensitive), `name` (substring,
    case-insensitive) and `age` (exact). Results are cursor-paginated with
    `cursor`/`limit` in the body (default limit 20). `total` counts the users
    in this page, not every match; follow `pagination.nextCursor` for more.
    """
    page = await run_blocking(service.search_users, body.model_dump(exclude_unset=True))
    return envelope(
        f"Found {len(page.items)} user(s) matching the criteria.",
        page.items,
        total=len(page.items),
        pagination=pagination_block(page),
    )


@router.post("/query")
async def query_users(body: QueryRequest, service: UserService = Depends(get_user_service)):
    """
    Ad-hoc query with `where` (equals / contains / gt / lt), `select`,
    `sort` ({field, direction}), `limit` (default 10, max 1000) and `offset`.
    """
    users = await run_blocking(service.query_users, body.model_dump(exclude_unset=True))
    return envelope(
        f"Query executed successfully. Found {len(users)} user(s).",
        users,
        total=len(users),
    )
