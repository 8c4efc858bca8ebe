from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from API_LAYER.app import app
from services.intent_dispatcher import IntentDispatcher
from services.memory_store import InMemoryTransactionStore

client = TestClient(app)


def test_root_banner():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Finance Bridge API is running."}


def test_health_with_dispatcher():
    with patch("API_LAYER.app.dispatcher", new=IntentDispatcher(InMemoryTransactionStore())):
        body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["store_connected"] is True
    assert "query" in body["operations"]


def test_health_without_store():
    with patch("API_LAYER.app.dispatcher", new=None), \
         patch("API_LAYER.app.STORE_ERROR", new="DATABASE_URL not set"):
        body = client.get("/health").json()

    assert body["status"] == "degraded"
    assert body["store_connected"] is False
    assert body["store_error"] == "DATABASE_URL not set"


def test_health_reports_failed_ping():
    store = MagicMock()
    store.ping = AsyncMock(return_value=False)
    with patch("API_LAYER.app.dispatcher", new=IntentDispatcher(store)):
        body = client.get("/health").json()

    assert body["status"] == "degraded"


def test_operations_listing():
    with patch("API_LAYER.app.dispatcher", new=IntentDispatcher(InMemoryTransactionStore())):
        body = client.get("/operations").json()

    names = [op["name"] for op in body["operations"]]
    assert names == ["query", "insert", "update", "delete", "aggregate", "compare"]


def test_periods_listing():
    periods = client.get("/periods").json()["periods"]
    assert "last_month" in periods
    assert "since_last_payday" in periods
    assert "last_30_days" in periods


def test_memory_backend_startup():
    with patch("API_LAYER.app.RECORD_STORE", new="memory"), \
         patch("API_LAYER.app.dispatcher", new=None):
        with TestClient(app) as started:
            body = started.get("/health").json()

    assert body["status"] == "ok"
