"""Time helpers. All stored timestamps are UTC."""

from datetime import datetime, timedelta
from typing import Optional

import pytz


def utcnow() -> datetime:
    return datetime.now(pytz.utc)


def current_year() -> int:
    return utcnow().year


def days_ago(days: int) -> datetime:
    return utcnow() - timedelta(days=days)


def parse_datetime(value: str, end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO date or datetime string into an aware UTC datetime.

    Naive values are taken as UTC. A bare date used as an upper bound
    covers the whole day when ``end_of_day`` is set.

    Returns:
        The parsed datetime, or None if the value cannot be parsed.
    """
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if end_of_day and len(text) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999999)
    if parsed.tzinfo is None:
        return pytz.utc.localize(parsed)
    return parsed.astimezone(pytz.utc)
