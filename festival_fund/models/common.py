"""Shared helpers for timestamps and money."""

from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import BeforeValidator


ZERO = Decimal("0")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | date) -> datetime:
    """
    Normalize a date or datetime to an aware UTC datetime.

    Naive datetimes are taken to already be in UTC. Plain dates map to
    midnight UTC.
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _coerce_datetime(value: Any) -> Any:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if isinstance(value, (datetime, date)):
        return as_utc(value)
    return value


def _coerce_decimal(value: Any) -> Any:
    # floats go through str() so 0.1 stays 0.1
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Not a decimal amount: {value!r}")
    return value


UtcDateTime = Annotated[datetime, BeforeValidator(_coerce_datetime)]
Money = Annotated[Decimal, BeforeValidator(_coerce_decimal)]
