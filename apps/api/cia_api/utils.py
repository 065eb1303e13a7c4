"""Shared utility functions."""

from datetime import date, datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Return the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_iso(value: Any) -> Optional[str]:
    """Render a stored temporal value as an ISO-8601 string.

    Accepts datetimes (naive ones are taken as UTC), dates, ISO strings
    already in canonical form, and ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
