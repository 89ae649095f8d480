from __future__ import annotations

import datetime
from typing import Iterable, List

from models import Task, TaskTemplate


ALL_SHIFTS = "ALL"


def base_shift_code(shift_label: str) -> str:
    """Return the upper-cased first word of a shift label ("Morning Shift (...)" -> "MORNING")."""
    tokens = (shift_label or "").split()
    return tokens[0].upper() if tokens else ""


def template_matches(template_shift_type: str, shift_label: str) -> bool:
    """Return True if a template targeting ``template_shift_type`` applies to ``shift_label``.

    Accepts short codes ("Morning") as well as full display labels
    ("Morning Shift (07:00 - 16:00)") on either side. Containment is a plain
    substring test, so "Morning" also matches "Morning Extended".
    """
    target = (template_shift_type or "").upper()
    label = (shift_label or "").upper()
    return (
        target == ALL_SHIFTS
        or target == base_shift_code(shift_label)
        or target == label
        or target in label
    )


def select_templates(shift_label: str, templates: Iterable[TaskTemplate]) -> List[TaskTemplate]:
    return [template for template in templates if template_matches(template.shift_type, shift_label)]


def synthesize_task_id(now: datetime.datetime, template_id) -> str:
    millis = int(now.timestamp() * 1000)
    return f"t-{millis}-{template_id}"


def expand_templates(
    shift_label: str,
    templates: Iterable[TaskTemplate],
    now: datetime.datetime | None = None,
) -> List[Task]:
    """Build a fresh, all-open task list for a shift, keeping template order."""
    stamp = now or datetime.datetime.now()
    return [
        Task(
            id=synthesize_task_id(stamp, template.id),
            label=template.label,
            category=template.category,
            is_completed=False,
        )
        for template in select_templates(shift_label, templates)
    ]
