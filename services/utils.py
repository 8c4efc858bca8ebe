from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from dateutil import parser as date_parser
from dateutil import tz


def deep_serialize(obj: Any) -> Any:
    """
    Recursively convert store records and models to JSON-safe primitives.
    Datetimes and dates become ISO strings, Decimals become floats.
    """
    if obj is None:
        return None
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (str, int, float)):
        return obj
    if isinstance(obj, dict):
        return {str(k): deep_serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [deep_serialize(v) for v in obj]
    if hasattr(obj, "model_dump"):
        return deep_serialize(obj.model_dump())
    if hasattr(obj, "__dict__"):
        return deep_serialize({k: v for k, v in vars(obj).items() if not k.startswith("_")})
    return str(obj)


def parse_instant(value: Any) -> datetime:
    """
    Parse an ISO-8601 string or datetime into an aware datetime.
    Naive values are taken as UTC. Raises ValueError when unparseable.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        dt = date_parser.isoparse(value.strip())
    else:
        raise ValueError(f"Not a date: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz.UTC)
    return dt
