"""Column conversion helpers shared by the SQLite stores.

Timestamps are stored as UTC ISO-8601 strings with fixed microsecond
precision so that lexicographic comparison in SQL matches time order.
"""

from datetime import UTC, date, datetime

from slabstock.core.entities.time import require_utc_timestamp


def to_db_timestamp(value: datetime) -> str:
    """Serialize a UTC datetime for storage."""
    require_utc_timestamp("timestamp", value)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        # Rows written by hand in tests or fixtures may lack an offset
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def from_db_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value[:10])
