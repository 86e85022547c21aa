"""Forward-only cursor pagination keyed on the immutable user id."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from userhub.core.errors import ValidationError
from userhub.query.translator import coerce_limit, coerce_non_negative

DEFAULT_PAGE_LIMIT = 20


@dataclass
class CursorPage:
    items: List[Dict[str, Any]] = field(default_factory=list)
    limit: int = DEFAULT_PAGE_LIMIT
    next_cursor: Optional[int] = None


def parse_page_args(cursor: Any, limit: Any, default_limit: int = DEFAULT_PAGE_LIMIT):
    """Validate cursor/limit and return them as `(cursor, limit)`."""
    errors: List[str] = []
    parsed_cursor = coerce_non_negative(cursor, "cursor", errors)
    parsed_limit = coerce_limit(limit, default_limit, errors)
    if errors:
        raise ValidationError(errors, "Invalid pagination parameters")
    return parsed_cursor, parsed_limit


def build_page(rows: List[Dict[str, Any]], limit: int) -> CursorPage:
    """Wrap rows fetched with `id > cursor ORDER BY id LIMIT limit`.

    A full page means more rows may follow, so the last id becomes the next
    cursor; a short (or empty) page ends the walk.
    """
    next_cursor = rows[-1]["id"] if rows and len(rows) == limit else None
    return CursorPage(items=rows, limit=limit, next_cursor=next_cursor)
