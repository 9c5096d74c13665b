"""Registration window evaluation and UTC helpers."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: Any) -> datetime | None:
    """Normalize a datetime to aware UTC.

    Naive datetimes are taken to be UTC, which is how the database stores them.
    Anything that is not a datetime yields None.
    """
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_storage(value: datetime) -> datetime:
    """Convert a datetime to the naive UTC form stored in the database."""
    normalized = as_utc(value)
    if normalized is None:
        raise TypeError(f"Expected datetime, got {type(value).__name__}")
    return normalized.replace(tzinfo=None)


def is_registration_open(semester: Any, now: datetime) -> bool:
    """Check whether registration and drop actions are permitted.

    Args:
        semester: Object with ``is_registration_open``, ``registration_start``
            and ``registration_end`` attributes (normally a Semester row).
        now: The instant to evaluate at.

    Returns:
        True iff the open flag is set and ``now`` lies inside the window,
        both ends inclusive. Missing or malformed values give False.
    """
    if semester is None:
        return False
    flag = getattr(semester, "is_registration_open", False)
    if not isinstance(flag, bool) or not flag:
        return False

    start = as_utc(getattr(semester, "registration_start", None))
    end = as_utc(getattr(semester, "registration_end", None))
    current = as_utc(now)
    if start is None or end is None or current is None:
        return False

    return start <= current <= end
