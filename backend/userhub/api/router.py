"""API router composition.

REST endpoints live under the configured users prefix (`/api/users`); the
GraphQL router is mounted separately in `main.py`.
"""

from fastapi import APIRouter

from userhub.api.routes.users import router as users_router


def build_api_router(api_prefix: str) -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(users_router, prefix=api_prefix, tags=["users"])
    return api_router
