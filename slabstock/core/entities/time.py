"""
Domain time utilities (pure).

Centralized timestamp validation helper.

Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the contract requirement that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def parse_iso_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 / RFC 3339 string into a UTC datetime.

    Accepts a trailing 'Z'. Any explicit offset is converted to UTC;
    naive input is rejected.
    """

    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError("timestamp must include a UTC offset")
    return dt.astimezone(UTC)
