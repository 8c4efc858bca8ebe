import asyncio
from unittest.mock import AsyncMock

import pytest

from core.errors import NotFoundError, ValidationError
from executors.update import UpdateExecutor


def _update(store, resolver, make_intent, params, user_id="user-1"):
    return asyncio.run(UpdateExecutor(store, resolver).execute(make_intent("update", params, user_id=user_id)))


def test_update_by_id(seeded_store, resolver, make_intent):
    result = _update(seeded_store, resolver, make_intent, {"id": "t1", "updates": {"amount": 55, "tags": ["Team"]}})
    assert result["message"] == "Transaction updated successfully"
    assert result["transaction"]["amount"] == 55
    assert result["transaction"]["tags"] == ["team"]


def test_update_of_foreign_record_is_not_found(seeded_store, resolver, make_intent):
    with pytest.raises(NotFoundError):
        _update(seeded_store, resolver, make_intent, {"id": "x1", "updates": {"amount": 1}})
    assert asyncio.run(seeded_store.find({"id": "x1"}))[0]["amount"] == 999


@pytest.mark.parametrize(
    "updates",
    [{"user_id": "user-2"}, {"created_at": "2024-01-01"}, {"id": "other"}, {"_id": "other"}],
)
def test_protected_fields_rejected_before_store(resolver, make_intent, updates):
    store = AsyncMock()
    with pytest.raises(ValidationError):
        _update(store, resolver, make_intent, {"id": "t1", "updates": updates})
    store.find.assert_not_called()
    store.update_one.assert_not_called()


@pytest.mark.parametrize(
    "params",
    [
        {"id": "t1"},
        {"id": "t1", "updates": {}},
        {"id": "t1", "updates": {"colour": "red"}},
        {"id": "t1", "updates": {"type": "transfer"}},
        {"id": "t1", "updates": {"amount": 1.234}},
        {"updates": {"amount": 1}},
        {"filters": {"type": "expense"}, "updates": {"status": "cancelled"}},
    ],
)
def test_invalid_updates_rejected_before_store(resolver, make_intent, params):
    store = AsyncMock()
    with pytest.raises(ValidationError):
        _update(store, resolver, make_intent, params)
    store.update_one.assert_not_called()
    store.update_many.assert_not_called()


def test_bulk_update_with_confirmation(seeded_store, resolver, make_intent):
    result = _update(seeded_store, resolver, make_intent, {
        "filters": {"categories": ["Food"]},
        "updates": {"status": "cancelled"},
        "confirm": True,
    })
    assert result["matched_count"] == 3
    assert result["modified_count"] == 3
    assert result["message"] == "3 transaction(s) updated"
    # Other owners untouched
    assert asyncio.run(seeded_store.find({"id": "x1"}))[0]["status"] == "confirmed"


@pytest.mark.parametrize("filters", [{"category": None}, {"tags": []}])
def test_bulk_update_refuses_filters_without_conditions(seeded_store, resolver, make_intent, filters):
    with pytest.raises(ValidationError):
        _update(seeded_store, resolver, make_intent, {
            "filters": filters,
            "updates": {"status": "cancelled"},
            "confirm": True,
        })
    assert all(r["status"] != "cancelled" for r in asyncio.run(seeded_store.find({})))
