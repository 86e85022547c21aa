"""Exception handlers rendering every failure in the response envelope."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from userhub.api.responses import envelope
from userhub.core.errors import UserHubError
from userhub.core.logging import get_logger

logger = get_logger(__name__)


def available_endpoints(api_prefix: str, graphql_path: str) -> dict:
    return {
        "users": {
            f"GET {api_prefix}": "Get all users (cursor pagination)",
            f"GET {api_prefix}/uid/:id": "Get user by ID",
            f"POST {api_prefix}/search": "Search users",
            f"POST {api_prefix}/query": "Query users",
            f"POST {api_prefix}": "Create new user",
            f"PUT {api_prefix}/uid/:id": "Update user",
            f"DELETE {api_prefix}/uid/:id": "Delete user",
        },
        "graphql": {f"POST {graphql_path}": "GraphQL endpoint (GraphiQL on GET)"},
        "health": {"GET /health": "Health check"},
    }


def _format_location(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "request"


async def userhub_error_handler(request: Request, exc: UserHubError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(exc.message, success=False, errors=exc.errors),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [f"'{_format_location(e['loc'])}': {e['msg']}" for e in exc.errors()]
    return JSONResponse(status_code=400, content=envelope("Validation failed", success=False, errors=errors))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        settings = request.app.state.settings
        return JSONResponse(
            status_code=404,
            content=envelope(
                f"Cannot find the endpoint: {request.method} {request.url.path}",
                success=False,
                availableEndpoints=available_endpoints(settings.api_prefix, settings.graphql_path),
            ),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(str(exc.detail), success=False),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=envelope("Internal server error", success=False))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UserHubError, userhub_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
