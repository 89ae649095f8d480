from __future__ import annotations

import datetime
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from models import GuestRequest
from store import RecordStore, recover_read


logger = logging.getLogger(__name__)

GUEST_REQUESTS_TABLE = "guest_requests"

PENDING = "Pending"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"
CANCELLED = "Cancelled"
REQUEST_STATUSES = [PENDING, IN_PROGRESS, COMPLETED, CANCELLED]
REQUEST_PRIORITIES = ["Low", "Medium", "High"]
REQUEST_CATEGORIES = ["Housekeeping", "Maintenance", "Amenities", "Food & Beverage", "Transportation", "Other"]

FORWARD_TRANSITIONS: Dict[str, frozenset] = {
    PENDING: frozenset({IN_PROGRESS, COMPLETED, CANCELLED}),
    IN_PROGRESS: frozenset({COMPLETED, CANCELLED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}


def next_statuses(status: str) -> List[str]:
    allowed = FORWARD_TRANSITIONS.get(status, frozenset())
    return [name for name in REQUEST_STATUSES if name in allowed]


def can_transition(current: str, target: str) -> bool:
    return target in FORWARD_TRANSITIONS.get(current, frozenset())


def filter_requests(
    requests: Iterable[GuestRequest],
    *,
    date: Optional[str] = None,
    status: str = "All",
    search: str = "",
) -> List[GuestRequest]:
    needle = (search or "").lower()
    matches: List[GuestRequest] = []
    for request in requests:
        if date and request.created_at.date().isoformat() != date:
            continue
        if status and status != "All" and request.status != status:
            continue
        if needle:
            haystack = (request.room_number, request.guest_name, request.description, request.logged_by or "")
            if not any(needle in value.lower() for value in haystack):
                continue
        matches.append(request)
    return matches


class GuestRequestLog:
    """Create and advance guest requests.

    ``transition`` writes whatever edge it is given. Keeping requests moving
    forward only (see ``can_transition``) is the caller's job, and there is no
    concurrency check: the last update wins.
    """

    def __init__(self, store: RecordStore, *, clock: Callable[[], datetime.datetime] | None = None) -> None:
        self.store = store
        self.clock = clock or (lambda: datetime.datetime.now(datetime.timezone.utc))

    def list_requests(self) -> List[GuestRequest]:
        rows = recover_read(
            lambda: self.store.select(GUEST_REQUESTS_TABLE, order_by=["-created_at"]),
            [],
            what="guest requests",
        )
        return [GuestRequest.from_row(row) for row in rows]

    def get(self, request_id: Any) -> Optional[GuestRequest]:
        rows = self.store.select(GUEST_REQUESTS_TABLE, {"id": request_id})
        return GuestRequest.from_row(rows[0]) if rows else None

    def create(self, fields: Mapping[str, Any], logged_by: str) -> GuestRequest:
        room = str(fields.get("room_number") or "").strip()
        guest = str(fields.get("guest_name") or "").strip()
        description = str(fields.get("description") or "").strip()
        if not room or not guest or not description:
            raise ValueError("Room number, guest name and description are required.")
        category = fields.get("category") or "Other"
        if category not in REQUEST_CATEGORIES:
            raise ValueError(f"Unsupported category '{category}'.")
        priority = fields.get("priority") or "Medium"
        if priority not in REQUEST_PRIORITIES:
            raise ValueError(f"Unsupported priority '{priority}'.")
        now = self.clock()
        row = {
            "room_number": room,
            "guest_name": guest,
            "category": category,
            "description": description,
            "status": PENDING,
            "priority": priority,
            "created_at": now,
            "updated_at": now,
            "logged_by": logged_by or "Unknown",
        }
        inserted = self.store.insert(GUEST_REQUESTS_TABLE, [row])
        request = GuestRequest.from_row(inserted[0])
        logger.info("Guest request %s logged for room %s by %s", request.id, room, row["logged_by"])
        return request

    def transition(
        self,
        request: GuestRequest,
        new_status: str,
        remarks: Optional[str] = None,
        updated_by: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> GuestRequest:
        if new_status not in REQUEST_STATUSES:
            raise ValueError(f"Unsupported status '{new_status}'.")
        now = self.clock()
        patch: Dict[str, Any] = {"status": new_status, "updated_at": now}
        if remarks:
            patch["remarks"] = remarks
        if updated_by:
            patch["updated_by"] = updated_by
        if assigned_to:
            patch["assigned_to"] = assigned_to
        self.store.update(GUEST_REQUESTS_TABLE, patch, {"id": request.id})
        logger.info("Guest request %s: %s -> %s", request.id, request.status, new_status)
        return replace(
            request,
            status=new_status,
            updated_at=now,
            remarks=remarks or request.remarks,
            updated_by=updated_by or request.updated_by,
            assigned_to=assigned_to or request.assigned_to,
        )
