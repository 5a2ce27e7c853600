import calendar
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

_DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands datetimes back naive; everything here is UTC."""
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def month_key(now: datetime) -> str:
    return now.strftime("%Y-%m")


def add_months(value: datetime, months: int) -> datetime:
    # clamp to the last day of the target month (Jan 31 + 1 month -> Feb 28/29)
    total = value.month - 1 + months
    year = value.year + total // 12
    month = total % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def days_until(end: Optional[datetime], now: datetime) -> int:
    """Whole days left until ``end``, rounded up and never negative."""
    if end is None:
        return 0
    remaining = (ensure_aware(end) - now) / _DAY
    return max(0, math.ceil(remaining))


__all__ = ["Clock", "utcnow", "ensure_aware", "month_key", "add_months", "days_until"]
