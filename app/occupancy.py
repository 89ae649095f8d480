from __future__ import annotations

import csv
import datetime
import io
import logging
import re
from typing import Dict, Iterable, List, Tuple

from clock import week_dates
from models import DailyOccupancy
from store import RecordStore, recover_read


logger = logging.getLogger(__name__)

OCCUPANCY_TABLE = "occupancy"
DEFAULT_SHIFT_OCCUPANCY = 75
DEFAULT_EDITOR_OCCUPANCY = 65
CSV_TEMPLATE = "Date,Percentage,Notes\n2024-01-01,85,New Year Arrivals\n2024-01-02,90,High Occupancy"
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LEADING_INT = re.compile(r"^[+-]?\d+")


def clamp_percentage(value) -> int:
    return min(100, max(0, int(value)))


def shift_occupancy(records: Iterable[DailyOccupancy], date_label: str) -> int:
    """Occupancy stamped on a new shift; 75% when no row exists for the day."""
    for record in records:
        if record.date == date_label:
            return record.percentage
    return DEFAULT_SHIFT_OCCUPANCY


def editor_week(records: Iterable[DailyOccupancy], anchor: datetime.date | str) -> List[DailyOccupancy]:
    by_date = {record.date: record for record in records}
    return [
        by_date.get(date_label) or DailyOccupancy(date=date_label, percentage=DEFAULT_EDITOR_OCCUPANCY)
        for date_label in week_dates(anchor)
    ]


def parse_occupancy_csv(text: str) -> Tuple[List[DailyOccupancy], int]:
    """Parse ``YYYY-MM-DD,Percentage,Notes`` lines.

    Returns the records (one per date, last line wins) and the number of lines
    processed. Header and malformed lines are skipped.
    """
    parsed: Dict[str, DailyOccupancy] = {}
    processed = 0
    for parts in csv.reader(io.StringIO(text or "")):
        if not parts:
            continue
        date_label = parts[0].strip()
        if not _DATE_PATTERN.match(date_label):
            continue
        raw_percentage = parts[1].strip() if len(parts) > 1 else ""
        match = _LEADING_INT.match(raw_percentage or "0")
        if not match:
            continue
        percentage = int(match.group(0))
        notes = ",".join(parts[2:]).strip().strip('"')
        parsed[date_label] = DailyOccupancy(date=date_label, percentage=clamp_percentage(percentage), notes=notes)
        processed += 1
    return list(parsed.values()), processed


def merge_occupancy(existing: Iterable[DailyOccupancy], incoming: Iterable[DailyOccupancy]) -> List[DailyOccupancy]:
    merged: Dict[str, DailyOccupancy] = {record.date: record for record in existing}
    for record in incoming:
        current = merged.get(record.date)
        if current is None:
            merged[record.date] = record
            continue
        merged[record.date] = DailyOccupancy(
            date=record.date,
            percentage=record.percentage,
            notes=record.notes or current.notes,
        )
    return list(merged.values())


def load_occupancy(store: RecordStore) -> List[DailyOccupancy]:
    rows = recover_read(lambda: store.select(OCCUPANCY_TABLE, order_by=["date"]), [], what="occupancy")
    return [DailyOccupancy.from_row(row) for row in rows]


def save_occupancy(store: RecordStore, records: Iterable[DailyOccupancy]) -> List[DailyOccupancy]:
    """Upsert by date (last write wins) and return the clamped records written."""
    cleaned = [
        DailyOccupancy(date=record.date, percentage=clamp_percentage(record.percentage), notes=record.notes or "")
        for record in records
    ]
    if cleaned:
        store.upsert(OCCUPANCY_TABLE, [record.to_row() for record in cleaned], conflict_key=["date"])
        logger.info("Saved occupancy for %d day(s)", len(cleaned))
    return cleaned


def import_occupancy_csv(store: RecordStore, text: str) -> Tuple[List[DailyOccupancy], int]:
    incoming, processed = parse_occupancy_csv(text)
    if not incoming:
        raise ValueError("No valid data found. Expected CSV rows of YYYY-MM-DD,Percentage,Notes.")
    merged = merge_occupancy(load_occupancy(store), incoming)
    touched = {record.date for record in incoming}
    save_occupancy(store, [record for record in merged if record.date in touched])
    return merged, processed
