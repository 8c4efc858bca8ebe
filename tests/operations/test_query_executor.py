import asyncio

import pytest

from core.errors import ValidationError
from executors.query import QueryExecutor, normalize_sort


def _run(seeded_store, resolver, make_intent, params):
    executor = QueryExecutor(seeded_store, resolver)
    return asyncio.run(executor.execute(make_intent("query", params)))


def _ids(result):
    return [t["id"] for t in result["transactions"]]


def test_expenses_this_month(seeded_store, resolver, make_intent):
    result = _run(seeded_store, resolver, make_intent, {"filters": {"type": "expense"}, "named_period": "current_month"})
    assert result["count"] == 3
    assert result["total"] == 3
    assert result["has_more"] is False


def test_default_sort_is_newest_first(seeded_store, resolver, make_intent):
    result = _run(seeded_store, resolver, make_intent, {"filters": {"type": "expense", "period": "current_month"}})
    assert _ids(result) == ["t3", "t2", "t1"]


def test_pagination_metadata(seeded_store, resolver, make_intent):
    result = _run(seeded_store, resolver, make_intent, {"limit": 2, "skip": 2})
    assert result["count"] == 2
    assert result["total"] == 6
    assert result["has_more"] is True
    assert result["page_info"] == {"limit": 2, "skip": 2, "current_page": 2, "total_pages": 3}


def test_results_are_scoped_to_caller(seeded_store, resolver, make_intent):
    result = _run(seeded_store, resolver, make_intent, {"filters": {"user_id": "user-2", "categories": ["Food"]}})
    assert sorted(_ids(result)) == ["t1", "t3", "t6"]


def test_or_logic_never_widens_beyond_owner(seeded_store, resolver, make_intent):
    result = _run(
        seeded_store, resolver, make_intent,
        {"filters": {"categories": ["Food"], "type": "income"}, "logic": "OR"},
    )
    assert sorted(_ids(result)) == ["t1", "t3", "t4", "t5", "t6"]


def test_exclude_removes_matches(seeded_store, resolver, make_intent):
    result = _run(seeded_store, resolver, make_intent, {"exclude": {"categories": ["food"]}})
    assert sorted(_ids(result)) == ["t2", "t4", "t5"]


def test_tag_filter_is_case_insensitive(seeded_store, resolver, make_intent):
    result = _run(seeded_store, resolver, make_intent, {"filters": {"tags": ["WORK"]}})
    assert sorted(_ids(result)) == ["t1", "t3"]


def test_explicit_date_range_and_amount(seeded_store, resolver, make_intent):
    result = _run(seeded_store, resolver, make_intent, {
        "filters": {
            "period": {"start": "2024-06-01T00:00:00Z", "end": "2024-06-30T23:59:59Z"},
            "amount_range": {"min": 40, "max": 500},
        },
        "sort": {"amount": "asc"},
    })
    assert _ids(result) == ["t1", "t2", "t5"]


@pytest.mark.parametrize(
    "params",
    [
        {"limit": 0},
        {"limit": 1001},
        {"skip": -1},
        {"logic": "XOR", "filters": {"type": "expense", "merchant": "x"}},
        {"sort": {"password": "asc"}},
        {"sort": {"date": "sideways"}},
        {"named_period": "next_decade"},
        {"filters": {"period": {"start": "2024-06-30", "end": "2024-06-01"}}},
    ],
)
def test_invalid_params_rejected(seeded_store, resolver, make_intent, params):
    with pytest.raises(ValidationError):
        _run(seeded_store, resolver, make_intent, params)


def test_normalize_sort_accepts_numeric_directions():
    assert normalize_sort({"amount": 1, "date": -1}) == [{"amount": "asc"}, {"date": "desc"}]
    assert normalize_sort(None) == [{"date": "desc"}]
