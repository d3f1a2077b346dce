from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List


def _date_range(start_date: date, end_date: date) -> Iterable[date]:
    current = start_date
    while current < end_date:
        yield current
        current += timedelta(days=1)


def period_dates(*, start_date: date, days: int) -> List[date]:
    """
    Return the consecutive dates [start_date, start_date + days).
    """
    if days < 0:
        raise ValueError("days must be >= 0")
    return list(_date_range(start_date, start_date + timedelta(days=days)))


def at_minute(day: date, minute: int) -> datetime:
    """UTC datetime `minute` minutes after midnight of `day` (may be negative)."""
    return datetime.combine(day, time(0, 0), tzinfo=timezone.utc) + timedelta(minutes=minute)


def slot_times(day: date, *, first_minute: int, last_minute: int, step: int) -> List[datetime]:
    """
    Return every `step`-minute slot from first_minute to last_minute inclusive.
    """
    if step <= 0:
        raise ValueError("step must be > 0")
    return [at_minute(day, m) for m in range(first_minute, last_minute + 1, step)]


def to_epoch_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
