"""
Conversion between wire timestamps and datetime values.

Both directions are pure functions so the INVALID_ARGUMENT path for
malformed reminders can be exercised without a database. Datetimes handed
back are timezone-aware UTC; naive datetimes coming from the store are read
as UTC. Nanoseconds below microsecond resolution are truncated.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from .schemas import Timestamp

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# 0001-01-01T00:00:00Z and 10000-01-01T00:00:00Z
MIN_VALID_SECONDS = -62135596800
MAX_VALID_SECONDS = 253402300800

NANOS_PER_SECOND = 1_000_000_000


class InvalidTimestampError(ValueError):
    """Timestamp or datetime cannot be represented on the other side."""


def validate_timestamp(ts: Optional[Timestamp]) -> Timestamp:
    if ts is None:
        raise InvalidTimestampError("timestamp: nil Timestamp")
    if ts.seconds < MIN_VALID_SECONDS:
        raise InvalidTimestampError(f"timestamp: seconds:{ts.seconds} nanos:{ts.nanos} before 0001-01-01")
    if ts.seconds >= MAX_VALID_SECONDS:
        raise InvalidTimestampError(f"timestamp: seconds:{ts.seconds} nanos:{ts.nanos} after 10000-01-01")
    if ts.nanos < 0 or ts.nanos >= NANOS_PER_SECOND:
        raise InvalidTimestampError(
            f"timestamp: seconds:{ts.seconds} nanos:{ts.nanos}: nanos not in range [0, 1e9)"
        )
    return ts


# PUBLIC_INTERFACE
def timestamp_to_datetime(ts: Optional[Timestamp]) -> datetime:
    """
    Convert a wire Timestamp to an aware UTC datetime.

    Raises:
        InvalidTimestampError: if ts is missing, out of the 0001..9999 year
        range, or its nanos are outside [0, 1e9).
    """
    ts = validate_timestamp(ts)
    return EPOCH + timedelta(seconds=ts.seconds, microseconds=ts.nanos // 1000)


# PUBLIC_INTERFACE
def datetime_to_timestamp(value: Any) -> Timestamp:
    """
    Convert a datetime read from the store to a wire Timestamp.

    Raises:
        InvalidTimestampError: if value is not a datetime.
    """
    if not isinstance(value, datetime):
        raise InvalidTimestampError(f"timestamp: cannot convert {value!r} of type {type(value).__name__}")

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - EPOCH
    ts = Timestamp(seconds=delta.days * 86400 + delta.seconds, nanos=delta.microseconds * 1000)
    validate_timestamp(ts)
    return ts


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to the naive UTC form stored in the reminder column."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
