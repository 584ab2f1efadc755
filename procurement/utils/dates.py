"""
Timezone helpers.

All timestamps are stored and compared in UTC. Some backends (SQLite) hand
back naive datetimes, so values read from the store go through ``as_utc``
before they are compared with ``utcnow()``.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
