"""Cursor pagination over both backends."""

import pytest

from tests.helpers import seed
from userhub.core.errors import ValidationError
from userhub.query.pagination import build_page, parse_page_args


def _people(n):
    return [(f"Person Number{i}", f"person{i}@example.com", 30) for i in range(1, n + 1)]


def walk(service, cursor=0, limit=7, search=None):
    """Follow nextCursor until it runs out; returns (ids, page sizes)."""
    seen, sizes = [], []
    while True:
        if search is None:
            page = service.list_users(cursor, limit)
        else:
            page = service.search_users({**search, "cursor": cursor, "limit": limit})
        seen.extend(u["id"] for u in page.items)
        sizes.append(len(page.items))
        if page.next_cursor is None:
            return seen, sizes
        assert page.next_cursor == page.items[-1]["id"]
        cursor = page.next_cursor


def test_pages_concatenate_to_every_id_once(service):
    seed(service, _people(25))
    seen, sizes = walk(service, limit=7)
    assert seen == list(range(1, 26))
    assert sizes == [7, 7, 7, 4]


def test_exact_multiple_ends_with_empty_page(service):
    seed(service, _people(14))
    seen, sizes = walk(service, limit=7)
    assert seen == list(range(1, 15))
    assert sizes == [7, 7, 0]


def test_walk_from_a_cursor_skips_deleted_ids(service):
    seed(service, _people(12))
    for user_id in (4, 9, 10):
        service.delete_user(user_id)
    seen, _ = walk(service, cursor=3, limit=3)
    assert seen == [5, 6, 7, 8, 11, 12]


def test_default_limit_is_twenty(service):
    seed(service, _people(21))
    page = service.list_users()
    assert len(page.items) == 20
    assert page.limit == 20
    assert page.next_cursor == 20


def test_empty_store_has_no_next_cursor(service):
    page = service.list_users(0, 5)
    assert page.items == [] and page.next_cursor is None


def test_search_pages_use_the_same_contract(service):
    seed(service, _people(9))
    seen, sizes = walk(service, limit=2, search={"name": "number"})
    assert seen == list(range(1, 10))
    assert sizes == [2, 2, 2, 2, 1]


def test_page_args_validation():
    assert parse_page_args(None, None) == (0, 20)
    assert parse_page_args(5, 5000) == (5, 1000)
    for cursor, limit in ((-1, 10), ("abc", 10), (0, 0), (0, "5")):
        with pytest.raises(ValidationError):
            parse_page_args(cursor, limit)


def test_build_page_short_page():
    page = build_page([{"id": 3}, {"id": 8}], limit=5)
    assert page.next_cursor is None
    assert build_page([{"id": 3}, {"id": 8}], limit=2).next_cursor == 8
