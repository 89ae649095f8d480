from __future__ import annotations

import datetime
import math
from typing import Dict, Iterable, List, Sequence

from clock import date_window
from models import DailyOccupancy, GuestRequest, Task


def round_half_up(value: float) -> int:
    """Round like a dashboard does: 12.5 -> 13 rather than banker's 12."""
    return int(math.floor(value + 0.5))


def completion_percent(tasks: Sequence[Task]) -> int:
    total = len(tasks)
    if total == 0:
        return 0
    completed = sum(1 for task in tasks if task.is_completed)
    return round_half_up(100 * completed / total)


def weekly_forecast(
    occupancy_records: Iterable[DailyOccupancy],
    start_date: datetime.date | str,
    days: int = 7,
) -> List[Dict[str, object]]:
    """Return one entry per day from ``start_date``; days without data read as 0%."""
    by_date = {record.date: record for record in occupancy_records}
    forecast: List[Dict[str, object]] = []
    for date_label in date_window(start_date, days):
        record = by_date.get(date_label)
        forecast.append(
            {
                "date": date_label,
                "percentage": record.percentage if record else 0,
                "notes": record.notes if record else "",
            }
        )
    return forecast


def average_occupancy(forecast: Sequence[Dict[str, object]]) -> int:
    if not forecast:
        return 0
    total = sum(int(entry.get("percentage") or 0) for entry in forecast)
    return round_half_up(total / len(forecast))


def guest_request_counts(requests: Iterable[GuestRequest]) -> Dict[str, int]:
    counts = {"total": 0, "pending": 0, "in_progress": 0, "completed": 0, "high_priority_open": 0}
    for request in requests:
        counts["total"] += 1
        if request.status == "Pending":
            counts["pending"] += 1
        elif request.status == "In Progress":
            counts["in_progress"] += 1
        elif request.status == "Completed":
            counts["completed"] += 1
        if request.priority == "High" and request.status != "Completed":
            counts["high_priority_open"] += 1
    return counts
