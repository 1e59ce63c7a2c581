"""Clock helpers shared by the store and the analytics services."""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def local_midnight(moment: datetime) -> datetime:
    """Start of the calendar day containing *moment*, in the server's local zone."""
    local = moment.astimezone()
    return local.replace(hour=0, minute=0, second=0, microsecond=0)
