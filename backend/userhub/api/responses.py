"""Response envelope: {success, message, data?, errors?, total?, pagination?}."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Request

from userhub.query.pagination import CursorPage

_UNSET = object()


def envelope(
    message: str,
    data: Any = _UNSET,
    *,
    success: bool = True,
    errors: Optional[List[str]] = None,
    total: Optional[int] = None,
    pagination: Optional[Dict[str, Any]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success, "message": message}
    if data is not _UNSET:
        body["data"] = data
    if errors:
        body["errors"] = errors
    if total is not None:
        body["total"] = total
    if pagination is not None:
        body["pagination"] = pagination
    body.update(extra)
    return body


def pagination_block(page: CursorPage, request: Optional[Request] = None) -> Dict[str, Any]:
    """`nextUrl` repeats the current GET with `cursor`/`limit` moved forward."""
    next_url = None
    if request is not None and page.next_cursor is not None:
        url = request.url.include_query_params(cursor=page.next_cursor, limit=page.limit)
        next_url = f"{url.path}?{url.query}"
    return {"nextCursor": page.next_cursor, "nextUrl": next_url, "limit": page.limit}
