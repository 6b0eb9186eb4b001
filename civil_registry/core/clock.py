"""Time helpers. Timestamps are naive UTC throughout (SQLite drops tzinfo)."""

import calendar
from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def months_ago(moment: datetime, months: int) -> datetime:
    """Same wall-clock time `months` calendar months earlier, day clamped to month length."""
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def days_ago(moment: datetime, days: int) -> datetime:
    return moment - timedelta(days=days)
