"""The query DSL must behave the same on the in-memory and SQL backends."""

from datetime import datetime, timedelta, timezone

import pytest

from tests.helpers import seed
from userhub.core.errors import InvalidField, ValidationError

PEOPLE = [
    ("Tran Van Anh", "van.anh@gmail.com", 25),
    ("Tran Linh Anh", "linh.anh@yahoo.com", 30),
    ("Tran Thi An", "thi.an@gmail.com", 28),
    ("Nguyen Minh Anh", "minh.anh@hotmail.com", 22),
    ("Tran Linh Binh", "linh.binh@gmail.com", 35),
    ("Ta Ngoc Linh An", "ngoc.linh@gmail.com", 7),
]


@pytest.fixture
def seeded(service):
    seed(service, PEOPLE)
    return service


def ids(rows):
    return [r["id"] for r in rows]


def test_default_query_returns_all_fields_in_id_order(seeded):
    rows = seeded.query_users({})
    assert ids(rows) == [1, 2, 3, 4, 5, 6]
    assert set(rows[0]) == set(seeded.fields.names)


def test_default_limit_is_ten(seeded):
    seed(seeded, [(f"Extra Person{i}", f"extra{i}@example.com", 40) for i in range(10)])
    assert len(seeded.query_users({})) == 10


def test_where_id_range_is_exclusive(seeded):
    rows = seeded.query_users({"where": {"id": {"gt": 2, "lt": 5}}})
    assert ids(rows) == [3, 4]


def test_where_contains_and_equals_combine(seeded):
    rows = seeded.query_users({"where": {"email": {"contains": "GMAIL"}, "name": {"contains": "linh"}}})
    assert ids(rows) == [5, 6]
    rows = seeded.query_users({"where": {"email": {"equals": "thi.an@gmail.com"}}})
    assert ids(rows) == [3]


def test_where_on_timestamps(seeded):
    future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    assert seeded.query_users({"where": {"created_at": {"gt": future}}}) == []
    assert len(seeded.query_users({"where": {"created_at": {"gt": past}}})) == 6


def test_select_projects_only_requested_fields(seeded):
    rows = seeded.query_users({"select": ["name"]})
    assert rows and all(set(r) == {"name"} for r in rows)


def test_sort_by_name(seeded):
    asc = seeded.query_users({"sort": {"field": "name", "direction": "asc"}, "select": ["id"]})
    assert ids(asc) == [6, 3, 4, 2, 1, 5]
    desc = seeded.query_users({"sort": {"field": "name", "direction": "desc"}, "select": ["id"]})
    assert ids(desc) == [5, 1, 2, 4, 3, 6]


def test_sort_by_email_is_case_insensitive(service):
    seed(service, [("Bob Bee", "b@x.io", 20), ("Al Ace", "A@x.io", 20), ("Cy Sea", "c@x.io", 20)])
    rows = service.query_users({"sort": {"field": "email"}, "select": ["email"]})
    assert [r["email"] for r in rows] == ["A@x.io", "b@x.io", "c@x.io"]


def test_sort_by_id_desc_with_offset_and_limit(seeded):
    rows = seeded.query_users({"sort": {"field": "id", "direction": "desc"}, "offset": 1, "limit": 2})
    assert ids(rows) == [5, 4]


def test_sort_by_name_with_offset_and_limit(seeded):
    rows = seeded.query_users({"sort": {"field": "name"}, "offset": 2, "limit": 3, "select": ["id", "name"]})
    assert ids(rows) == [4, 2, 1]


def test_empty_result_is_not_an_error(seeded):
    assert seeded.query_users({"where": {"name": {"contains": "zzz"}}}) == []


def test_unknown_field_is_invalid_field(seeded):
    with pytest.raises(InvalidField):
        seeded.query_users({"where": {"password": {"equals": "x"}}})
    with pytest.raises(InvalidField):
        seeded.query_users({"sort": {"field": "password"}})


def test_bad_limit_is_rejected(seeded):
    with pytest.raises(ValidationError):
        seeded.query_users({"limit": "ten"})


def test_age_range_on_memory_backend(memory_service):
    seed(memory_service, PEOPLE)
    rows = memory_service.query_users({"where": {"age": {"gt": 20, "lt": 35}}, "select": ["age"]})
    assert sorted(r["age"] for r in rows) == [22, 25, 28, 30]
    assert memory_service.query_users({"where": {"age": {"gt": 100}}}) == []


def test_sort_by_age_desc_on_memory_backend(memory_service):
    seed(memory_service, PEOPLE)
    rows = memory_service.query_users({"sort": {"field": "age", "direction": "desc"}, "select": ["id"]})
    assert ids(rows) == [5, 2, 3, 1, 4, 6]


def test_text_sort_window_with_filter(seeded):
    query = {
        "where": {"email": {"contains": "gmail"}},
        "sort": {"field": "name", "direction": "desc"},
        "offset": 1,
        "limit": 2,
        "select": ["name"],
    }
    assert seeded.query_users(query) == [{"name": "Tran Van Anh"}, {"name": "Tran Thi An"}]
    assert seeded.query_users({**query, "offset": 4}) == []
