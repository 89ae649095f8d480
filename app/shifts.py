"""Shift checklist lifecycle.

A shift is keyed by (operational date, shift type). ``load_or_init`` always
builds a fresh checklist from the templates and then folds in whatever was last
persisted for that key, so switching between shift types never loses progress.

Status is a two-state lock: ``draft`` is editable, ``submitted`` is not until a
manager reopens it. There is no version check on writes: two sessions editing
the same draft race, and the later save overwrites the earlier one.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Any

from clock import operational_date
from database import ensure_aware
from errors import ShiftStateError
from models import (
    SHIFT_DRAFT,
    SHIFT_SUBMITTED,
    DailyOccupancy,
    ShiftData,
    TaskTemplate,
    User,
    parse_tasks,
)
from occupancy import shift_occupancy
from roles import can_reopen_shift, can_work_shifts, require
from store import RecordStore, recover_read
from task_templates import expand_templates


logger = logging.getLogger(__name__)

COMPLETED_SHIFTS_TABLE = "completed_shifts"
SHIFT_KEY = ["date", "shift_type"]
REOPEN_DENIED = "Unauthorized. Manager access required."
WORK_DENIED = "Your role does not run shift checklists."


def toggle_task(shift: ShiftData, task_id: str) -> ShiftData:
    """Flip one task's completion. Submitted shifts and unknown ids are left as-is."""
    if shift.is_submitted:
        return shift
    if not any(task.id == task_id for task in shift.tasks):
        return shift
    tasks = [
        replace(task, is_completed=not task.is_completed) if task.id == task_id else task
        for task in shift.tasks
    ]
    return replace(shift, tasks=tasks)


def update_notes(shift: ShiftData, text: str) -> ShiftData:
    # Unlike toggle_task this does not look at status; callers gate on is_submitted.
    return replace(shift, notes=text or "")


def merge_record(candidate: ShiftData, record: Mapping[str, Any]) -> ShiftData:
    """Fold a persisted ``completed_shifts`` row into a freshly generated shift.

    Saved tasks win when there are any; an empty saved list keeps the generated
    checklist instead of showing an empty one.
    """
    saved_tasks = parse_tasks(record.get("tasks_json"))
    return replace(
        candidate,
        tasks=saved_tasks if saved_tasks else candidate.tasks,
        notes=record.get("notes") or "",
        agent_name=record.get("agent_name") or candidate.agent_name,
        status=SHIFT_SUBMITTED if record.get("status") == SHIFT_SUBMITTED else SHIFT_DRAFT,
        date=record.get("date") or candidate.date,
        submitted_at=ensure_aware(record.get("submitted_at")),
    )


class ShiftRecordManager:
    def __init__(self, store: RecordStore, *, clock: Callable[[], datetime.datetime] = datetime.datetime.now) -> None:
        self.store = store
        self.clock = clock

    def compose(
        self,
        shift_label: str,
        user: User,
        templates: Iterable[TaskTemplate],
        occupancy_records: Iterable[DailyOccupancy],
        now: Optional[datetime.datetime] = None,
    ) -> ShiftData:
        current = now or self.clock()
        date_label = operational_date(current)
        return ShiftData(
            id=f"s-{int(current.timestamp() * 1000)}",
            type=shift_label,
            date=date_label,
            tasks=expand_templates(shift_label, templates, current),
            status=SHIFT_DRAFT,
            agent_name=user.name,
            occupancy=shift_occupancy(occupancy_records, date_label),
            notes="",
        )

    def find_record(self, date_label: str, shift_type: str) -> Optional[Dict[str, Any]]:
        rows = recover_read(
            lambda: self.store.select(COMPLETED_SHIFTS_TABLE, {"date": date_label, "shift_type": shift_type}),
            [],
            what=f"saved shift {shift_type} on {date_label}",
        )
        return rows[0] if rows else None

    def load_or_init(
        self,
        shift_label: str,
        user: User,
        templates: Iterable[TaskTemplate],
        occupancy_records: Iterable[DailyOccupancy],
    ) -> ShiftData:
        candidate = self.compose(shift_label, user, templates, occupancy_records)
        record = self.find_record(candidate.date, shift_label)
        if record is None:
            return candidate
        return merge_record(candidate, record)

    def _persist(self, shift: ShiftData, *, status: str, actor: User, stamp: datetime.datetime) -> None:
        row = shift.to_record(status=status, agent_name=actor.name, submitted_at=stamp)
        self.store.upsert(COMPLETED_SHIFTS_TABLE, [row], conflict_key=SHIFT_KEY)

    def _ensure_unlocked(self, shift: ShiftData, actor: User, message: str) -> None:
        require(can_work_shifts, actor.role, WORK_DENIED)
        if shift.is_submitted:
            raise ShiftStateError(message)
        # The caller's copy may be stale; the persisted row holds the lock.
        record = self.find_record(shift.date, shift.type)
        if record is not None and record.get("status") == SHIFT_SUBMITTED:
            raise ShiftStateError(message)

    def save_draft(self, shift: ShiftData, actor: User) -> ShiftData:
        self._ensure_unlocked(shift, actor, "This shift has been submitted; ask a manager to reopen it.")
        self._persist(shift, status=SHIFT_DRAFT, actor=actor, stamp=self._utc_now())
        return replace(shift, status=SHIFT_DRAFT)

    def submit(self, shift: ShiftData, actor: User) -> ShiftData:
        self._ensure_unlocked(shift, actor, "This shift has already been submitted.")
        stamp = self._utc_now()
        self._persist(shift, status=SHIFT_SUBMITTED, actor=actor, stamp=stamp)
        logger.info("%s submitted %s for %s", actor.name, shift.type, shift.date)
        return replace(shift, status=SHIFT_SUBMITTED, submitted_at=stamp)

    def reopen(self, shift: ShiftData, actor: User) -> ShiftData:
        require(can_reopen_shift, actor.role, REOPEN_DENIED)
        if not shift.is_submitted:
            raise ShiftStateError("Only submitted shifts can be reopened.")
        self.reopen_record(shift.date, shift.type, actor)
        return replace(shift, status=SHIFT_DRAFT)

    def reopen_record(self, date_label: str, shift_type: str, actor: User) -> bool:
        """Unlock a persisted shift. Returns False when nothing submitted matched."""
        require(can_reopen_shift, actor.role, REOPEN_DENIED)
        changed = self.store.update(
            COMPLETED_SHIFTS_TABLE,
            {"status": SHIFT_DRAFT},
            {"date": date_label, "shift_type": shift_type, "status": SHIFT_SUBMITTED},
        )
        logger.info("%s reopened %s for %s (%d row(s))", actor.name, shift_type, date_label, changed)
        return changed > 0

    def submitted_shift_types(self, date_label: str) -> List[str]:
        rows = recover_read(
            lambda: self.store.select(COMPLETED_SHIFTS_TABLE, {"date": date_label, "status": SHIFT_SUBMITTED}),
            [],
            what=f"submitted shifts for {date_label}",
        )
        return [row["shift_type"] for row in rows]

    def history(self, search: str = "", shift_filter: str = "All") -> List[ShiftData]:
        rows = recover_read(
            lambda: self.store.select(COMPLETED_SHIFTS_TABLE, order_by=["-date", "-submitted_at"]),
            [],
            what="shift history",
        )
        needle = (search or "").lower()
        records: List[ShiftData] = []
        for row in rows:
            agent = (row.get("agent_name") or "").lower()
            date_label = row.get("date") or ""
            if needle and needle not in agent and needle not in date_label:
                continue
            if shift_filter and shift_filter != "All" and shift_filter not in (row.get("shift_type") or ""):
                continue
            records.append(ShiftData.from_record(row))
        return records

    def _utc_now(self) -> datetime.datetime:
        current = self.clock()
        if current.tzinfo is None:
            current = current.astimezone()
        return current.astimezone(datetime.timezone.utc)
