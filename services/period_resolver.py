# FILE: services/period_resolver.py
"""
Period Resolver

- Maps a symbolic period name ("last_month", "last_30_days", ...) to a
  concrete inclusive [start, end] in the caller's timezone
- Grounds every relative reference in a real clock reading
- Identity-dependent periods go through an injected lookup
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Awaitable, Callable, Dict, List, Optional

from dateutil import tz
from dateutil.relativedelta import relativedelta

from configurations.config import DEFAULT_TIMEZONE
from core.errors import ValidationError
from core.log import get_logger
from services.utils import parse_instant

logger = get_logger("period_resolver")

PaydayLookup = Callable[[str], Awaitable[Optional[datetime]]]
Clock = Callable[[], datetime]

_LAST_N_DAYS_RE = re.compile(r"^last_(\d+)_days?$")
MAX_LAST_N_DAYS = 365

FIXED_PERIODS = [
    "today",
    "yesterday",
    "this_week",
    "last_week",
    "current_month",
    "last_month",
    "current_quarter",
    "last_quarter",
    "current_year",
    "last_year",
    "fiscal_year",
]
LAST_N_DAYS_PRESETS = ["last_7_days", "last_15_days", "last_30_days", "last_60_days", "last_90_days"]
IDENTITY_PERIODS = ["since_last_payday"]

SALARY_KEYWORDS = ("salário", "salary")


@dataclass(frozen=True)
class ResolvedPeriod:
    start: datetime
    end: datetime

    def to_filter(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def available_periods() -> List[str]:
    return FIXED_PERIODS + LAST_N_DAYS_PRESETS + IDENTITY_PERIODS


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """IANA name -> tzinfo. Unknown names are a caller error, never a silent UTC."""
    zone = tz.gettz(name or DEFAULT_TIMEZONE)
    if zone is None:
        raise ValidationError(
            f"Unknown timezone '{name}'",
            [{"field": "context.user_timezone", "message": "Unknown IANA timezone", "received": name}],
        )
    return zone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------
# Day boundaries
# -----------------------------
def start_of_day(d: date, zone: tzinfo) -> datetime:
    return datetime.combine(d, time.min, tzinfo=zone)


def end_of_day(d: date, zone: tzinfo) -> datetime:
    return datetime.combine(d, time.max, tzinfo=zone)


def start_of_week(d: date) -> date:
    # Weeks start on Sunday
    return d - timedelta(days=(d.weekday() + 1) % 7)


class PeriodResolver:
    """
    Resolves period names against "now" in the caller's timezone.
    `clock` returns an aware instant; `payday_lookup` finds the most recent
    salary date for a user (None when there is none).
    """

    def __init__(self, payday_lookup: Optional[PaydayLookup] = None, clock: Optional[Clock] = None):
        self.payday_lookup = payday_lookup
        self.clock = clock or _utcnow

    def now(self, zone: tzinfo) -> datetime:
        return self.clock().astimezone(zone)

    def is_supported(self, name: str) -> bool:
        return name in FIXED_PERIODS or name in IDENTITY_PERIODS or self._last_n_days(name) is not None

    async def resolve(self, name: str, timezone_name: Optional[str] = None, user_id: Optional[str] = None) -> ResolvedPeriod:
        zone = resolve_timezone(timezone_name)
        today = self.now(zone).date()

        if not isinstance(name, str):
            self._unknown(name)

        days = self._last_n_days(name)
        if days is not None:
            return ResolvedPeriod(start_of_day(today - timedelta(days=days), zone), end_of_day(today, zone))

        if name == "since_last_payday":
            return await self._since_last_payday(today, zone, user_id)

        builder = self._fixed.get(name)
        if builder is None:
            self._unknown(name)

        start, end = builder(today)
        period = ResolvedPeriod(start_of_day(start, zone), end_of_day(end, zone))
        logger.debug(f"[PERIOD] {name} -> {period.start.isoformat()} .. {period.end.isoformat()}")
        return period

    # -----------------------------
    # Fixed periods: today -> (first day, last day)
    # -----------------------------
    @staticmethod
    def _today(today: date):
        return today, today

    @staticmethod
    def _yesterday(today: date):
        d = today - timedelta(days=1)
        return d, d

    @staticmethod
    def _this_week(today: date):
        return start_of_week(today), today

    @staticmethod
    def _last_week(today: date):
        start = start_of_week(today - timedelta(days=7))
        return start, start + timedelta(days=6)

    @staticmethod
    def _current_month(today: date):
        return today.replace(day=1), today

    @staticmethod
    def _last_month(today: date):
        first_this_month = today.replace(day=1)
        return first_this_month - relativedelta(months=1), first_this_month - timedelta(days=1)

    @staticmethod
    def _current_quarter(today: date):
        first_month = 3 * ((today.month - 1) // 3) + 1
        return date(today.year, first_month, 1), today

    @staticmethod
    def _last_quarter(today: date):
        # The three full months before the current one
        first_this_month = today.replace(day=1)
        return first_this_month - relativedelta(months=3), first_this_month - timedelta(days=1)

    @staticmethod
    def _current_year(today: date):
        return date(today.year, 1, 1), today

    @staticmethod
    def _last_year(today: date):
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)

    @staticmethod
    def _fiscal_year(today: date):
        return date(today.year, 1, 1), date(today.year, 12, 31)

    @property
    def _fixed(self) -> Dict[str, Callable[[date], tuple]]:
        return {
            "today": self._today,
            "yesterday": self._yesterday,
            "this_week": self._this_week,
            "last_week": self._last_week,
            "current_month": self._current_month,
            "last_month": self._last_month,
            "current_quarter": self._current_quarter,
            "last_quarter": self._last_quarter,
            "current_year": self._current_year,
            "last_year": self._last_year,
            "fiscal_year": self._fiscal_year,
        }

    # -----------------------------
    # Special periods
    # -----------------------------
    @staticmethod
    def _last_n_days(name: str) -> Optional[int]:
        if not isinstance(name, str):
            return None
        match = _LAST_N_DAYS_RE.match(name)
        if not match:
            return None
        days = int(match.group(1))
        if days < 1 or days > MAX_LAST_N_DAYS:
            return None
        return days

    async def _since_last_payday(self, today: date, zone: tzinfo, user_id: Optional[str]) -> ResolvedPeriod:
        if not user_id:
            raise ValidationError(
                'user_id is required for "since_last_payday"',
                [{"field": "user_id", "message": "required for since_last_payday"}],
            )

        payday = await self.payday_lookup(user_id) if self.payday_lookup else None
        if payday is None:
            logger.info(f"[PERIOD] no salary found for user_id={user_id}; using start of month")
            start_day = today.replace(day=1)
        else:
            start_day = min(payday.astimezone(zone).date(), today)

        return ResolvedPeriod(start_of_day(start_day, zone), end_of_day(today, zone))

    @staticmethod
    def _unknown(name) -> None:
        raise ValidationError(
            f"Unknown period: {name}",
            {"provided": name, "supported_periods": available_periods() + ["last_N_days (1-365)"]},
        )


def make_store_payday_lookup(store) -> PaydayLookup:
    """Payday lookup backed by a record store: newest salary-like income."""

    async def lookup(user_id: str) -> Optional[datetime]:
        salary_conditions = [
            {field: {"contains": keyword, "mode": "insensitive"}}
            for field in ("category", "description")
            for keyword in SALARY_KEYWORDS
        ]
        where = {
            "AND": [
                {"user_id": user_id},
                {"type": "income"},
                {"OR": salary_conditions},
            ]
        }
        rows = await store.find(where, sort=[{"date": "desc"}], limit=1)
        if not rows:
            return None
        return parse_instant(rows[0]["date"])

    return lookup
