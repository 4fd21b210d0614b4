"""Value coercion shared by the record-backed models."""

import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any


def new_id() -> str:
    """Opaque unique identifier for a new record."""
    return uuid.uuid4().hex


def parse_datetime(value: Any) -> datetime | None:
    """Coerce a store value (datetime, date or ISO string) into a datetime.

    Timestamps carrying an offset are converted to naive local time, the
    form every clock and stored column uses.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_local(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return to_naive_local(datetime.fromisoformat(value.replace("Z", "+00:00")))
    raise TypeError(f"Cannot interpret {value!r} as a datetime")


def to_naive_local(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)



def parse_decimal(value: Any) -> Decimal:
    """Coerce a store value into a Decimal without float rounding."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Cannot interpret {value!r} as a number") from e
