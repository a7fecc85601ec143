"""Calendar helpers. Every boundary is a UTC instant.

Windows are half-open ``[start, end)``: ``end`` is the first instant of the
following period, so the last instant of a period is always inside it.
"""
import math
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

Window = Tuple[datetime, datetime]

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands datetimes back without tzinfo; they were written as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def start_of_day(moment: datetime) -> datetime:
    moment = as_utc(moment)
    return datetime(moment.year, moment.month, moment.day, tzinfo=timezone.utc)

def day_window(moment: datetime) -> Window:
    start = start_of_day(moment)
    return start, start + timedelta(days=1)

def month_window(year: int, month: int) -> Window:
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end

def iso_week_window(year: int, week: int) -> Window:
    monday = date.fromisocalendar(year, week, 1)
    start = datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)
    return start, start + timedelta(weeks=1)

def quarter_window(year: int, quarter: int) -> Window:
    first_month = 3 * (quarter - 1) + 1
    start, _ = month_window(year, first_month)
    _, end = month_window(year, first_month + 2)
    return start, end

def year_window(year: int) -> Window:
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )

def quarter_of(month: int) -> int:
    return (month - 1) // 3 + 1

def ceil_days(delta: timedelta) -> int:
    return math.ceil(delta.total_seconds() / 86400)
