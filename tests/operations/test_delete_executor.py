import asyncio
from unittest.mock import AsyncMock

import pytest

from core.errors import NotFoundError, ValidationError
from executors.delete import DeleteExecutor


def _delete(store, resolver, make_intent, params):
    return asyncio.run(DeleteExecutor(store, resolver).execute(make_intent("delete", params)))


@pytest.mark.parametrize("confirm", [None, False, "true", 1])
def test_delete_without_confirm_never_touches_store(resolver, make_intent, confirm):
    store = AsyncMock()
    params = {"id": "t1"}
    if confirm is not None:
        params["confirm"] = confirm
    with pytest.raises(ValidationError):
        _delete(store, resolver, make_intent, params)
    assert store.mock_calls == []


def test_delete_by_id(seeded_store, resolver, make_intent):
    result = _delete(seeded_store, resolver, make_intent, {"id": "t2", "confirm": True})
    assert result["deleted"]["id"] == "t2"
    assert result["message"] == "Transaction deleted successfully"
    assert asyncio.run(seeded_store.find({"id": "t2"})) == []


def test_delete_foreign_record_is_not_found(seeded_store, resolver, make_intent):
    with pytest.raises(NotFoundError):
        _delete(seeded_store, resolver, make_intent, {"id": "x1", "confirm": True})
    assert len(asyncio.run(seeded_store.find({"id": "x1"}))) == 1


def test_delete_by_filters_is_owner_scoped(seeded_store, resolver, make_intent):
    result = _delete(seeded_store, resolver, make_intent, {"filters": {"categories": ["Food"]}, "confirm": True})
    assert result["deleted_count"] == 3
    assert result["message"] == "3 transaction(s) deleted"
    assert len(asyncio.run(seeded_store.find({"id": "x1"}))) == 1


def test_delete_needs_id_or_filters(resolver, make_intent):
    store = AsyncMock()
    with pytest.raises(ValidationError):
        _delete(store, resolver, make_intent, {"confirm": True})
    store.delete_many.assert_not_called()


@pytest.mark.parametrize("filters", [{"category": None}, {"categories": []}, {"user_id": "user-1"}])
def test_bulk_delete_refuses_filters_without_conditions(resolver, make_intent, filters):
    store = AsyncMock()
    with pytest.raises(ValidationError):
        _delete(store, resolver, make_intent, {"filters": filters, "confirm": True})
    store.delete_many.assert_not_called()
