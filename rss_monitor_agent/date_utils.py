"""Timestamp parsing and freshness checks."""

import email.utils
from datetime import datetime, timezone
from typing import Optional, Union

Timestamp = Union[datetime, str, None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Timestamp) -> Optional[datetime]:
    """
    Parse a publish timestamp into an aware UTC datetime.

    Accepts datetimes, ISO 8601 strings and RFC 822 strings (as used by RSS
    pubDate). Returns None for anything missing or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass
    try:
        return _as_utc(email.utils.parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        return None


def is_fresh(published_at: Timestamp, window_minutes: int, now: Optional[datetime] = None) -> bool:
    """
    Check if an item was published within the last ``window_minutes``.

    Future-dated items (negative age) are not fresh.
    """
    published = parse_timestamp(published_at)
    if published is None:
        return False

    now = _as_utc(now) if now is not None else utc_now()
    age = (now - published).total_seconds()
    return 0 <= age <= window_minutes * 60


def age_in_minutes(published_at: Timestamp, now: Optional[datetime] = None) -> Optional[int]:
    """Whole minutes since publication, or None when the timestamp is invalid."""
    published = parse_timestamp(published_at)
    if published is None:
        return None
    now = _as_utc(now) if now is not None else utc_now()
    return int((now - published).total_seconds() // 60)
