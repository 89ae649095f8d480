"""Domain entities and the adapters that translate store rows into them.

Rows coming out of :mod:`store` are snake_case dicts shaped like the tables.
Everything past this module works with the dataclasses below only.
"""

from __future__ import annotations

import datetime
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from database import SETTINGS_ROW_ID, ensure_aware


logger = logging.getLogger(__name__)

SHIFT_DRAFT = "draft"
SHIFT_SUBMITTED = "submitted"


@dataclass(frozen=True)
class TaskTemplate:
    id: Any
    label: str
    category: str
    shift_type: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TaskTemplate":
        return cls(
            id=row.get("id"),
            label=row.get("label") or "",
            category=row.get("category") or "",
            shift_type=row.get("shift_type") or "",
        )

    def to_row(self) -> Dict[str, Any]:
        return {"label": self.label, "category": self.category, "shift_type": self.shift_type}


def _wire_flag(value: Any) -> bool:
    # Other clients may write "false" as a string; it must not read as done.
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


@dataclass(frozen=True)
class Task:
    id: str
    label: str
    category: str
    is_completed: bool = False

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "category": self.category,
            "isCompleted": self.is_completed,
        }

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "Task":
        return cls(
            id=str(payload.get("id") or ""),
            label=str(payload.get("label") or ""),
            category=str(payload.get("category") or ""),
            is_completed=_wire_flag(payload.get("isCompleted", payload.get("is_completed", False))),
        )


def dump_tasks(tasks: List[Task]) -> str:
    """Serialize a task list into the ``tasks_json`` wire format."""
    return json.dumps([task.to_wire() for task in tasks])


def parse_tasks(raw: Optional[str]) -> List[Task]:
    """Parse ``tasks_json``; malformed payloads become an empty list."""
    try:
        value = json.loads(raw or "[]")
    except (TypeError, json.JSONDecodeError) as exc:
        logger.warning("Discarding malformed tasks_json: %s", exc)
        return []
    if not isinstance(value, list):
        logger.warning("Discarding tasks_json that is not a list (%s)", type(value).__name__)
        return []
    return [Task.from_wire(item) for item in value if isinstance(item, dict)]


def _parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    if isinstance(value, datetime.datetime):
        return ensure_aware(value)
    if not value:
        return None
    try:
        return ensure_aware(datetime.datetime.fromisoformat(str(value)))
    except ValueError:
        logger.warning("Ignoring unparseable timestamp %r", value)
        return None


@dataclass
class ShiftData:
    id: str
    type: str
    date: str
    tasks: List[Task] = field(default_factory=list)
    status: str = SHIFT_DRAFT
    agent_name: str = ""
    occupancy: int = 0
    notes: str = ""
    submitted_at: Optional[datetime.datetime] = None

    @property
    def is_submitted(self) -> bool:
        return self.status == SHIFT_SUBMITTED

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "ShiftData":
        """Rehydrate a ``completed_shifts`` row, e.g. for the history view."""
        return cls(
            id=f"s-{row.get('id')}",
            type=row.get("shift_type") or "",
            date=row.get("date") or "",
            tasks=parse_tasks(row.get("tasks_json")),
            status=SHIFT_SUBMITTED if row.get("status") == SHIFT_SUBMITTED else SHIFT_DRAFT,
            agent_name=row.get("agent_name") or "",
            notes=row.get("notes") or "",
            submitted_at=ensure_aware(row.get("submitted_at")),
        )

    def to_record(self, *, status: str, agent_name: str, submitted_at: datetime.datetime) -> Dict[str, Any]:
        return {
            "shift_type": self.type,
            "agent_name": agent_name,
            "date": self.date,
            "tasks_json": dump_tasks(self.tasks),
            "notes": self.notes,
            "submitted_at": submitted_at,
            "status": status,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "date": self.date,
            "tasks": [task.to_wire() for task in self.tasks],
            "status": self.status,
            "agentName": self.agent_name,
            "occupancy": self.occupancy,
            "notes": self.notes,
            "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ShiftData":
        return cls(
            id=str(payload.get("id") or ""),
            type=str(payload.get("type") or ""),
            date=str(payload.get("date") or ""),
            tasks=[Task.from_wire(item) for item in payload.get("tasks") or [] if isinstance(item, dict)],
            status=SHIFT_SUBMITTED if payload.get("status") == SHIFT_SUBMITTED else SHIFT_DRAFT,
            agent_name=str(payload.get("agentName") or ""),
            occupancy=int(payload.get("occupancy") or 0),
            notes=str(payload.get("notes") or ""),
            submitted_at=_parse_timestamp(payload.get("submittedAt")),
        )


@dataclass(frozen=True)
class DailyOccupancy:
    date: str
    percentage: int
    notes: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DailyOccupancy":
        return cls(date=row.get("date") or "", percentage=int(row.get("percentage") or 0), notes=row.get("notes") or "")

    def to_row(self) -> Dict[str, Any]:
        return {"date": self.date, "percentage": self.percentage, "notes": self.notes or ""}


@dataclass(frozen=True)
class GuestRequest:
    id: Any
    room_number: str
    guest_name: str
    category: str
    description: str
    status: str
    priority: str
    created_at: datetime.datetime
    updated_at: datetime.datetime
    logged_by: str
    remarks: Optional[str] = None
    updated_by: Optional[str] = None
    assigned_to: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "GuestRequest":
        now = datetime.datetime.now(datetime.timezone.utc)
        return cls(
            id=row.get("id"),
            room_number=row.get("room_number") or "",
            guest_name=row.get("guest_name") or "",
            category=row.get("category") or "Other",
            description=row.get("description") or "",
            status=row.get("status") or "Pending",
            priority=row.get("priority") or "Medium",
            created_at=ensure_aware(row.get("created_at")) or now,
            updated_at=ensure_aware(row.get("updated_at")) or now,
            logged_by=row.get("logged_by") or "Unknown",
            remarks=row.get("remarks"),
            updated_by=row.get("updated_by"),
            assigned_to=row.get("assigned_to"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "roomNumber": self.room_number,
            "guestName": self.guest_name,
            "category": self.category,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "loggedBy": self.logged_by,
            "remarks": self.remarks,
            "updatedBy": self.updated_by,
            "assignedTo": self.assigned_to,
        }


@dataclass(frozen=True)
class User:
    id: Any
    username: str
    name: str
    role: str
    initials: str = ""
    color: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "User":
        return cls(
            id=row.get("id"),
            username=row.get("username") or "",
            name=row.get("name") or "",
            role=row.get("role") or "",
            initials=row.get("initials") or "",
            color=row.get("color") or "",
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "name": self.name,
            "role": self.role,
            "initials": self.initials,
            "color": self.color,
        }


@dataclass(frozen=True)
class AppConfig:
    app_name: str = "The HUB | Nova Maldives"
    logo_url: str = ""
    support_message: str = "Contact IT for support."

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AppConfig":
        defaults = cls()
        return cls(
            app_name=row.get("app_name") or defaults.app_name,
            logo_url=row.get("logo_url") or "",
            support_message=row.get("support_message") or "",
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": SETTINGS_ROW_ID,
            "app_name": self.app_name,
            "logo_url": self.logo_url,
            "support_message": self.support_message,
        }


@dataclass(frozen=True)
class ShiftAssignment:
    id: Any
    date: str
    shift_type: str
    user_id: Any

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ShiftAssignment":
        return cls(
            id=row.get("id"),
            date=row.get("date") or "",
            shift_type=row.get("shift_type") or "",
            user_id=row.get("user_id"),
        )
