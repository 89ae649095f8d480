"""Session controller for one logged-in staff member.

``AppState`` holds everything a screen needs (current user, current shift,
reference lists). ``FrontOfficeSession`` owns one and routes every user action
through the domain modules. Write failures propagate and leave the state as it
was, read failures on refresh fall back to defaults.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional

from aggregation import average_occupancy, completion_percent, guest_request_counts, weekly_forecast
from app_settings import load_app_config, save_app_config
from catalog import ChecklistCatalog
from clock import available_shift_types, default_shift_type, operational_date
from errors import AuthorizationError, InvalidTransitionError
from guest_requests import GuestRequestLog, can_transition
from handover import TextGenerator, generate_handover_summary, smart_task_suggestion
from models import SHIFT_DRAFT, AppConfig, DailyOccupancy, GuestRequest, ShiftData, TaskTemplate, User
from occupancy import load_occupancy, save_occupancy
from roles import can_edit_settings, can_manage_checklists, can_manage_occupancy, can_work_shifts, require
from shifts import ShiftRecordManager, toggle_task, update_notes
from store import RecordStore
from users import BOOTSTRAP_USERS, UserDirectory


logger = logging.getLogger(__name__)


@dataclass
class AppState:
    current_user: Optional[User] = None
    current_shift: Optional[ShiftData] = None
    users: List[User] = field(default_factory=lambda: list(BOOTSTRAP_USERS))
    templates: List[TaskTemplate] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    occupancy: List[DailyOccupancy] = field(default_factory=list)
    guest_requests: List[GuestRequest] = field(default_factory=list)
    submitted_shifts_today: List[str] = field(default_factory=list)
    shift_types: List[str] = field(default_factory=available_shift_types)
    config: AppConfig = field(default_factory=AppConfig)


class FrontOfficeSession:
    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
        generator: Optional[TextGenerator] = None,
        state: Optional[AppState] = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.generator = generator
        self.state = state or AppState()
        self.shifts = ShiftRecordManager(store, clock=clock)
        self.catalog = ChecklistCatalog(store)
        self.directory = UserDirectory(store)
        self.requests = GuestRequestLog(store)

    # ------------------------------------------------------------------
    # Session

    @property
    def user(self) -> User:
        if self.state.current_user is None:
            raise AuthorizationError("Log in first.")
        return self.state.current_user

    def login(self, user: User) -> ShiftData | None:
        self.state.current_user = user
        self.refresh()
        return self.auto_select_shift()

    def logout(self) -> None:
        self.state.current_user = None
        self.state.current_shift = None

    def refresh(self) -> AppState:
        state = self.state
        state.users = self.directory.list_users() or list(BOOTSTRAP_USERS)
        state.templates = self.catalog.list_templates()
        state.occupancy = load_occupancy(self.store)
        state.submitted_shifts_today = self.shifts.submitted_shift_types(operational_date(self.clock()))
        state.guest_requests = self.requests.list_requests()
        state.categories = self.catalog.list_categories()
        state.config = load_app_config(self.store)
        return state

    # ------------------------------------------------------------------
    # Shift checklist

    def auto_select_shift(self) -> ShiftData | None:
        if not can_work_shifts(self.user.role):
            self.state.current_shift = None
            return None
        current = self.state.current_shift
        if not self.state.templates or (current is not None and current.tasks):
            return current
        return self.select_shift(default_shift_type(self.clock()))

    def select_shift(self, shift_label: str) -> ShiftData:
        shift = self.shifts.load_or_init(shift_label, self.user, self.state.templates, self.state.occupancy)
        self.state.current_shift = shift
        return shift

    def _shift(self) -> ShiftData:
        if self.state.current_shift is None:
            raise LookupError("No shift is selected.")
        return self.state.current_shift

    def toggle_task(self, task_id: str) -> ShiftData:
        self.state.current_shift = toggle_task(self._shift(), task_id)
        return self.state.current_shift

    def update_notes(self, text: str) -> ShiftData:
        shift = self._shift()
        if shift.is_submitted:
            return shift
        self.state.current_shift = update_notes(shift, text)
        return self.state.current_shift

    def save_draft(self) -> ShiftData:
        self.state.current_shift = self.shifts.save_draft(self._shift(), self.user)
        return self.state.current_shift

    def submit(self) -> ShiftData:
        shift = self.shifts.submit(self._shift(), self.user)
        self.state.current_shift = shift
        if shift.type not in self.state.submitted_shifts_today:
            self.state.submitted_shifts_today.append(shift.type)
        return shift

    def reopen(self, date_label: Optional[str] = None, shift_type: Optional[str] = None) -> bool:
        """Unlock a submitted shift; defaults to the one currently on screen."""
        current = self.state.current_shift
        date_label = date_label or (current.date if current else None)
        shift_type = shift_type or (current.type if current else None)
        if not date_label or not shift_type:
            raise LookupError("No shift to reopen.")
        changed = self.shifts.reopen_record(date_label, shift_type, self.user)
        if date_label == operational_date(self.clock()):
            self.state.submitted_shifts_today = [
                name for name in self.state.submitted_shifts_today if name != shift_type
            ]
        if current is not None and current.date == date_label and current.type == shift_type:
            self.state.current_shift = replace(current, status=SHIFT_DRAFT)
        return changed

    def handover_summary(self) -> str:
        return generate_handover_summary(self._shift(), self.generator)

    def smart_suggestion(self, weather: str, time_of_day: str) -> str:
        return smart_task_suggestion(weather, time_of_day, self.generator)

    # ------------------------------------------------------------------
    # Guest requests

    def log_guest_request(self, fields: Mapping[str, Any]) -> GuestRequest:
        request = self.requests.create(fields, self.user.name)
        self.state.guest_requests = self.requests.list_requests()
        return request

    def update_guest_request(
        self,
        request_id: Any,
        new_status: str,
        remarks: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> GuestRequest:
        request = next((item for item in self.state.guest_requests if item.id == request_id), None)
        if request is None:
            request = self.requests.get(request_id)
        if request is None:
            raise LookupError(f"Guest request {request_id} was not found.")
        if not can_transition(request.status, new_status):
            raise InvalidTransitionError(f"Cannot move a {request.status} request to {new_status}.")
        updated = self.requests.transition(request, new_status, remarks, self.user.name, assigned_to)
        self.state.guest_requests = self.requests.list_requests()
        return updated

    # ------------------------------------------------------------------
    # Manager configuration

    def add_template(self, label: str, category: str, shift_type: str) -> TaskTemplate:
        require(can_manage_checklists, self.user.role, "Manager access required to edit checklists.")
        template = self.catalog.add_template(label, category, shift_type)
        self.state.templates = self.state.templates + [template]
        return template

    def delete_template(self, template_id: Any) -> None:
        require(can_manage_checklists, self.user.role, "Manager access required to edit checklists.")
        self.catalog.delete_template(template_id)
        self.state.templates = [item for item in self.state.templates if item.id != template_id]

    def save_occupancy(self, records: List[DailyOccupancy]) -> List[DailyOccupancy]:
        require(can_manage_occupancy, self.user.role, "Manager access required to plan occupancy.")
        saved = save_occupancy(self.store, records)
        by_date = {record.date: record for record in self.state.occupancy}
        by_date.update({record.date: record for record in saved})
        self.state.occupancy = sorted(by_date.values(), key=lambda record: record.date)
        return saved

    def save_config(self, config: AppConfig) -> AppConfig:
        require(can_edit_settings, self.user.role, "Only the Front Office Manager can change settings.")
        self.state.config = save_app_config(self.store, config)
        return self.state.config

    # ------------------------------------------------------------------
    # Derived values

    def dashboard(self) -> Dict[str, Any]:
        shift = self.state.current_shift
        forecast = weekly_forecast(self.state.occupancy, self.clock().date())
        return {
            "operational_date": operational_date(self.clock()),
            "shift": shift.to_dict() if shift else None,
            "progress": completion_percent(shift.tasks) if shift else 0,
            "forecast": forecast,
            "average_occupancy": average_occupancy(forecast),
            "requests": guest_request_counts(self.state.guest_requests),
        }
