"""System clock in the player's timezone."""

import time
from datetime import datetime, tzinfo
from typing import Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from daily_alchemy.application.interfaces import IClock
from daily_alchemy.domain.errors import InvalidArgument


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """IANA zone for a name; None (host local zone) for an empty name."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidArgument(f"Unknown timezone: {name!r}") from e


class SystemClock(IClock):
    """Wall clock in a configured zone (or the host's) plus the process monotonic clock."""

    def __init__(self, timezone_name: Optional[str] = None):
        self.zone = resolve_timezone(timezone_name)

    def now(self) -> datetime:
        if self.zone is None:
            return datetime.now().astimezone()
        return datetime.now(self.zone)

    def monotonic(self) -> float:
        return time.monotonic()
