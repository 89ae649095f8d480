from __future__ import annotations

import datetime
from typing import List, Tuple


OPERATIONAL_DAY_START_HOUR = 8

SHIFT_DEFINITIONS: List[Tuple[str, str]] = [
    ("Morning", "07:00 - 16:00"),
    ("Afternoon", "14:00 - 23:00"),
    ("Night", "23:00 - 07:00"),
]


def operational_date(now: datetime.datetime | None = None) -> str:
    """Return the business day (YYYY-MM-DD) for ``now``.

    The resort day starts at 08:00 local time, so anything earlier belongs to
    the previous calendar day. Never cache the result.
    """
    current = now or datetime.datetime.now()
    day = current.date()
    if current.hour < OPERATIONAL_DAY_START_HOUR:
        day -= datetime.timedelta(days=1)
    return day.isoformat()


def shift_label(name: str, time_range: str) -> str:
    return f"{name} Shift ({time_range})"


def available_shift_types() -> List[str]:
    return [shift_label(name, time_range) for name, time_range in SHIFT_DEFINITIONS]


def default_shift_type(now: datetime.datetime | None = None) -> str:
    """Pick the shift a user logging in at ``now`` is most likely working."""
    hour = (now or datetime.datetime.now()).hour
    if hour >= 23 or hour < OPERATIONAL_DAY_START_HOUR:
        name, time_range = SHIFT_DEFINITIONS[2]
    elif 14 <= hour < 23:
        name, time_range = SHIFT_DEFINITIONS[1]
    else:
        name, time_range = SHIFT_DEFINITIONS[0]
    return shift_label(name, time_range)


def coerce_date(value: datetime.date | str) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value).strip())


def week_start(value: datetime.date | str) -> datetime.date:
    """Return the Monday for the provided date."""
    day = coerce_date(value)
    return day - datetime.timedelta(days=day.weekday())


def date_window(start: datetime.date | str, days: int = 7) -> List[str]:
    first = coerce_date(start)
    return [(first + datetime.timedelta(days=offset)).isoformat() for offset in range(days)]


def week_dates(anchor: datetime.date | str) -> List[str]:
    return date_window(week_start(anchor), 7)
