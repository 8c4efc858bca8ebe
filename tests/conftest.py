# tests/conftest.py
import sys
from datetime import datetime, timezone
from pathlib import Path

# ---------------------------------------------------------
# Ensure project root is on PYTHONPATH BEFORE app imports
# ---------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# ---------------------------------------------------------
# Now safe to import app + dependencies
# ---------------------------------------------------------
import pytest

from core.intent import IntentEnvelope
from services.intent_dispatcher import IntentDispatcher
from services.memory_store import InMemoryTransactionStore
from services.period_resolver import PeriodResolver, make_store_payday_lookup

# Saturday, mid-month, mid-quarter
FROZEN_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
def frozen_clock():
    return lambda: FROZEN_NOW


@pytest.fixture
def store():
    return InMemoryTransactionStore()


@pytest.fixture
def resolver(store, frozen_clock):
    return PeriodResolver(payday_lookup=make_store_payday_lookup(store), clock=frozen_clock)


@pytest.fixture
def dispatcher(store, resolver):
    return IntentDispatcher(store, resolver=resolver, timeout=5)


@pytest.fixture
def make_intent():
    def factory(operation, params=None, user_id=USER_ID, timezone_name="UTC"):
        return IntentEnvelope.model_validate({
            "operation": operation,
            "params": params or {},
            "context": {"user_id": user_id, "user_timezone": timezone_name},
        })

    return factory


@pytest.fixture
def seeded_store(store):
    """Three expenses and two incomes in June 2024, plus another user's record."""
    records = [
        {"id": "t1", "user_id": USER_ID, "amount": 50, "date": "2024-06-02T10:00:00+00:00",
         "category": "Food", "type": "expense", "tags": ["Lunch", "work"], "merchant": "Burger Barn",
         "payment_method": "card"},
        {"id": "t2", "user_id": USER_ID, "amount": 120.5, "date": "2024-06-05T18:30:00+00:00",
         "category": "Transport", "type": "expense", "tags": ["commute"], "payment_method": "cash"},
        {"id": "t3", "user_id": USER_ID, "amount": 30, "date": "2024-06-10T09:00:00+00:00",
         "category": "food", "type": "expense", "tags": ["coffee", "work"], "status": "pending"},
        {"id": "t4", "user_id": USER_ID, "amount": 3000, "date": "2024-06-01T08:00:00+00:00",
         "category": "Salary", "type": "income", "description": "June salary"},
        {"id": "t5", "user_id": USER_ID, "amount": 200, "date": "2024-06-12T08:00:00+00:00",
         "category": "Freelance", "type": "income"},
        {"id": "t6", "user_id": USER_ID, "amount": 80, "date": "2024-05-20T12:00:00+00:00",
         "category": "Food", "type": "expense", "tags": ["dinner"]},
        {"id": "x1", "user_id": OTHER_USER_ID, "amount": 999, "date": "2024-06-03T12:00:00+00:00",
         "category": "Food", "type": "expense"},
    ]
    store.seed(records)
    return store
