import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from core.errors import ValidationError
from services.memory_store import InMemoryTransactionStore
from services.period_resolver import (
    PeriodResolver,
    available_periods,
    make_store_payday_lookup,
)

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _resolve(resolver, name, tz="UTC", user_id="user-1"):
    return asyncio.run(resolver.resolve(name, tz, user_id))


def _days(period):
    return (period.start.date().isoformat(), period.end.date().isoformat())


@pytest.mark.parametrize(
    "name, expected",
    [
        ("today", ("2024-06-15", "2024-06-15")),
        ("yesterday", ("2024-06-14", "2024-06-14")),
        ("this_week", ("2024-06-09", "2024-06-15")),
        ("last_week", ("2024-06-02", "2024-06-08")),
        ("current_month", ("2024-06-01", "2024-06-15")),
        ("last_month", ("2024-05-01", "2024-05-31")),
        ("current_quarter", ("2024-04-01", "2024-06-15")),
        ("last_quarter", ("2024-03-01", "2024-05-31")),
        ("current_year", ("2024-01-01", "2024-06-15")),
        ("last_year", ("2023-01-01", "2023-12-31")),
        ("fiscal_year", ("2024-01-01", "2024-12-31")),
        ("last_7_days", ("2024-06-08", "2024-06-15")),
        ("last_30_days", ("2024-05-16", "2024-06-15")),
    ],
)
def test_named_periods(frozen_clock, name, expected):
    period = _resolve(PeriodResolver(clock=frozen_clock), name)
    assert _days(period) == expected


def test_bounds_are_full_days(frozen_clock):
    period = _resolve(PeriodResolver(clock=frozen_clock), "today")
    assert period.start == datetime(2024, 6, 15, tzinfo=timezone.utc)
    assert period.end.hour == 23 and period.end.minute == 59 and period.end.microsecond == 999999


def test_every_supported_period_is_ordered(frozen_clock):
    resolver = PeriodResolver(clock=frozen_clock)
    for name in available_periods():
        period = _resolve(resolver, name)
        assert period.start.tzinfo is not None
        assert period.start <= period.end, name


@pytest.mark.parametrize("days", [1, 15, 90, 365])
def test_last_n_days_spans_n_calendar_days(frozen_clock, days):
    period = _resolve(PeriodResolver(clock=frozen_clock), f"last_{days}_days")
    span = (period.end.date() - period.start.date()).days
    assert abs(span - days) <= 1


def test_singular_day_suffix_accepted(frozen_clock):
    period = _resolve(PeriodResolver(clock=frozen_clock), "last_1_day")
    assert _days(period) == ("2024-06-14", "2024-06-15")


@pytest.mark.parametrize("name", ["last_0_days", "last_366_days", "next_month", "LAST_MONTH"])
def test_unknown_periods_list_supported_names(frozen_clock, name):
    with pytest.raises(ValidationError) as exc:
        _resolve(PeriodResolver(clock=frozen_clock), name)
    assert "last_month" in exc.value.details["supported_periods"]


def test_caller_timezone_moves_the_calendar_day(frozen_clock):
    # 12:00 UTC is already the next day at UTC+14
    period = _resolve(PeriodResolver(clock=frozen_clock), "today", tz="Pacific/Kiritimati")
    assert period.start.date().isoformat() == "2024-06-16"
    assert period.start.utcoffset() == timedelta(hours=14)


def test_caller_timezone_offset_applied(frozen_clock):
    period = _resolve(PeriodResolver(clock=frozen_clock), "today", tz="America/Sao_Paulo")
    assert period.start.astimezone(timezone.utc) == datetime(2024, 6, 15, 3, 0, tzinfo=timezone.utc)


def test_unknown_timezone_rejected(frozen_clock):
    with pytest.raises(ValidationError):
        _resolve(PeriodResolver(clock=frozen_clock), "today", tz="Mars/Olympus_Mons")


def test_since_last_payday_uses_lookup(frozen_clock):
    async def lookup(user_id):
        assert user_id == "user-1"
        return datetime(2024, 6, 7, 15, 30, tzinfo=timezone.utc)

    period = _resolve(PeriodResolver(payday_lookup=lookup, clock=frozen_clock), "since_last_payday")
    assert _days(period) == ("2024-06-07", "2024-06-15")
    assert period.start.hour == 0


def test_since_last_payday_falls_back_to_month_start(frozen_clock):
    async def lookup(user_id):
        return None

    period = _resolve(PeriodResolver(payday_lookup=lookup, clock=frozen_clock), "since_last_payday")
    assert _days(period) == ("2024-06-01", "2024-06-15")


def test_since_last_payday_requires_user(frozen_clock):
    with pytest.raises(ValidationError):
        _resolve(PeriodResolver(clock=frozen_clock), "since_last_payday", user_id=None)


def test_store_payday_lookup_finds_newest_salary(frozen_clock):
    store = InMemoryTransactionStore([
        {"user_id": "user-1", "amount": 5000, "date": "2024-04-28T09:00:00Z", "category": "Salário", "type": "income"},
        {"user_id": "user-1", "amount": 5000, "date": "2024-05-28T09:00:00Z", "category": "Income",
         "description": "Monthly SALARY", "type": "income"},
        {"user_id": "user-1", "amount": 40, "date": "2024-06-02T09:00:00Z", "category": "Salary", "type": "expense"},
        {"user_id": "user-2", "amount": 5000, "date": "2024-06-10T09:00:00Z", "category": "Salary", "type": "income"},
    ])
    resolver = PeriodResolver(payday_lookup=make_store_payday_lookup(store), clock=frozen_clock)
    period = _resolve(resolver, "since_last_payday")
    assert _days(period) == ("2024-05-28", "2024-06-15")
