from __future__ import annotations

import datetime
from typing import Any, Dict, List, Tuple

from clock import week_dates
from models import ShiftAssignment
from store import RecordStore, recover_read


ASSIGNMENTS_TABLE = "shift_assignments"


class ShiftRoster:
    """Who works which shift on which day, one week at a time."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def week(self, anchor: datetime.date | str) -> List[ShiftAssignment]:
        dates = week_dates(anchor)
        assignments: List[ShiftAssignment] = []
        for date_label in dates:
            rows = recover_read(
                lambda: self.store.select(ASSIGNMENTS_TABLE, {"date": date_label}, order_by=["id"]),
                [],
                what=f"roster for {date_label}",
            )
            assignments.extend(ShiftAssignment.from_row(row) for row in rows)
        return assignments

    def grid(self, anchor: datetime.date | str) -> Dict[Tuple[str, str], List[Any]]:
        cells: Dict[Tuple[str, str], List[Any]] = {}
        for assignment in self.week(anchor):
            cells.setdefault((assignment.date, assignment.shift_type), []).append(assignment.user_id)
        return cells

    def assign(self, date_label: str, shift_type: str, user_id: Any) -> ShiftAssignment:
        existing = self.store.select(
            ASSIGNMENTS_TABLE,
            {"date": date_label, "shift_type": shift_type, "user_id": user_id},
        )
        if existing:
            raise ValueError("That user is already assigned to this shift.")
        inserted = self.store.insert(
            ASSIGNMENTS_TABLE,
            [{"date": date_label, "shift_type": shift_type, "user_id": user_id}],
        )
        return ShiftAssignment.from_row(inserted[0])

    def unassign(self, assignment_id: Any) -> None:
        self.store.delete(ASSIGNMENTS_TABLE, {"id": assignment_id})
