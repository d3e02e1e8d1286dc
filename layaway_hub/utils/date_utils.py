"""Date manipulation utilities"""

import calendar
import math
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every timestamp column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def months_between(start: datetime, end: datetime) -> int:
    """Calendar months from start to end, ignoring the day of month (never negative)"""
    diff = (end.year - start.year) * 12 + (end.month - start.month)
    return max(0, diff)


def days_remaining(since: datetime, limit_days: int, now: datetime) -> int:
    """Whole days left in a cooldown of limit_days that started at since"""
    elapsed_days = math.ceil((now - since).total_seconds() / 86400)
    return max(0, limit_days - elapsed_days)


def add_months(from_date: date, months: int) -> date:
    """Same day N months later, clamped to the last day of a shorter month"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
