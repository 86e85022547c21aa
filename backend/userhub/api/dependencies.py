"""
Shared API dependencies.

The store and the service are built once per application in `create_app`
and kept on `app.state`; routes and resolvers reach them through here.
Service calls block on storage, so handlers hand them to the loop's
executor with `run_blocking` instead of calling them on the event loop.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, TypeVar

from fastapi import Request

from userhub.services.user_service import UserService

T = TypeVar("T")


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


async def get_graphql_context(request: Request) -> dict:
    return {"service": request.app.state.user_service}


async def run_blocking(func: Callable[..., T], *args: Any) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))
