"""Datetime utility functions."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from cpq.config import settings

# Local business timezone (from config)
LOCAL_TIMEZONE = ZoneInfo(settings.timezone)


def ensure_aware(dt: datetime) -> datetime:
    """Assume UTC for naive datetimes (SQLite drops the offset)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def to_local(dt: datetime | None) -> datetime | None:
    """Convert a datetime to the local business timezone."""
    if dt is None:
        return None
    return ensure_aware(dt).astimezone(LOCAL_TIMEZONE)


def parse_datetime(value: object) -> datetime | None:
    """Accept a datetime or an ISO 8601 string, as stored records may hold either."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, str) and value:
        try:
            return ensure_aware(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None
