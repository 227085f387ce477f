from propdash.schemas.list_view import SortDirection
from propdash.services import list_ops


def _names(items):
    return [item["name"] for item in items]


def test_sort_numbers_numerically():
    items = [
        {"name": "a", "properties_count": "10"},
        {"name": "b", "properties_count": 9},
        {"name": "c", "properties_count": 100.5},
    ]

    assert _names(list_ops.sort_items(items, "properties_count")) == ["b", "a", "c"]
    assert _names(list_ops.sort_items(items, "properties_count", "desc")) == ["c", "a", "b"]


def test_sort_dates_chronologically():
    items = [
        {"name": "march", "created_at": "2024-03-01T10:00:00Z"},
        {"name": "january", "created_at": "2024-01-15"},
        {"name": "february", "created_at": "2024-02-01T00:00:00+04:00"},
    ]

    result = list_ops.sort_items(items, "created_at", SortDirection.asc)

    assert _names(result) == ["january", "february", "march"]


def test_sort_text_case_insensitively():
    items = [{"name": "beta"}, {"name": "Alpha"}, {"name": "gamma"}]

    assert _names(list_ops.sort_items(items, "name")) == ["Alpha", "beta", "gamma"]


def test_missing_values_go_last_in_both_directions():
    items = [{"name": "x", "status": None}, {"name": "y", "status": "active"}, {"name": "z"}]

    assert _names(list_ops.sort_items(items, "status", "asc")) == ["y", "x", "z"]
    assert _names(list_ops.sort_items(items, "status", "desc")) == ["y", "x", "z"]


def test_filter_items_matches_any_search_field():
    items = [
        {"property_name": "Marina Heights", "property_id": "P-001"},
        {"property_name": "Palm Villa", "property_id": "P-002"},
        {"property_name": None, "property_id": "MARINA-9"},
    ]

    result = list_ops.filter_items(items, "  marina ", ["property_name", "property_id"])

    assert [item["property_id"] for item in result] == ["P-001", "MARINA-9"]


def test_filter_items_with_empty_search_returns_everything():
    items = [{"name": "a"}, {"name": "b"}]

    assert list_ops.filter_items(items, "", ["name"]) == items


def test_paginate_items_clamps_page():
    items = [{"id": index} for index in range(1, 8)]

    second = list_ops.paginate_items(items, page=2, page_size=3)
    beyond = list_ops.paginate_items(items, page=9, page_size=3)
    empty = list_ops.paginate_items([], page=3, page_size=3)

    assert [item["id"] for item in second.items] == [4, 5, 6]
    assert second.total_pages == 3
    assert second.total_items == 7
    assert beyond.current_page == 3
    assert [item["id"] for item in beyond.items] == [7]
    assert empty.total_pages == 1
    assert empty.current_page == 1
