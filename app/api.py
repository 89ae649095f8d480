"""FastAPI surface over the front office record store.

Every endpoint is a thin shell: resolve the acting user, call the domain
module, translate errors to HTTP statuses. No request state survives between
calls; the client sends the shift it is working on back with each save.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import datetime
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Ensure absolute imports (e.g., "import database") resolve when served from the repo root.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from aggregation import average_occupancy, completion_percent, guest_request_counts, weekly_forecast  # noqa: E402
from app_settings import load_app_config, save_app_config  # noqa: E402
from catalog import ChecklistCatalog  # noqa: E402
from clock import available_shift_types, coerce_date, default_shift_type, operational_date  # noqa: E402
from database import SessionLocal, init_database  # noqa: E402
from errors import (  # noqa: E402
    AuthorizationError,
    InvalidTransitionError,
    ShiftStateError,
    StoreReadError,
    StoreWriteError,
)
from guest_requests import GuestRequestLog, can_transition, filter_requests, next_statuses  # noqa: E402
from handover import generate_handover_summary, smart_task_suggestion  # noqa: E402
from models import AppConfig, DailyOccupancy, ShiftData, User  # noqa: E402
from occupancy import CSV_TEMPLATE, editor_week, import_occupancy_csv, load_occupancy, save_occupancy  # noqa: E402
from roles import (  # noqa: E402
    badge_for_role,
    can_edit_settings,
    can_manage_checklists,
    can_manage_occupancy,
    can_manage_roster,
    can_manage_users,
    can_work_shifts,
    permissions_for,
    require,
)
from roster import ShiftRoster  # noqa: E402
from shifts import WORK_DENIED, ShiftRecordManager, toggle_task  # noqa: E402
from store import RecordStore  # noqa: E402
from users import UserDirectory  # noqa: E402


logger = logging.getLogger(__name__)

OCCUPANCY_DENIED = "Manager access required to plan occupancy."


@asynccontextmanager
async def lifespan(_: FastAPI):
    logging.basicConfig(level=os.environ.get("FRONTDESK_LOG_LEVEL", "INFO"))
    init_database()
    yield


app = FastAPI(title="Front Office Hub API", version="0.1", lifespan=lifespan)


def get_store() -> RecordStore:
    return RecordStore(SessionLocal)


@app.exception_handler(AuthorizationError)
async def _authorization_failed(_, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(ShiftStateError)
@app.exception_handler(InvalidTransitionError)
async def _conflict(_, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(StoreReadError)
async def _read_failed(_, exc: StoreReadError) -> JSONResponse:
    logger.warning("Store read failed: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "The record store is unavailable; try again."})


@app.exception_handler(StoreWriteError)
async def _write_failed(_, exc: StoreWriteError) -> JSONResponse:
    logger.error("Store write failed: %s", exc)
    return JSONResponse(status_code=502, content={"detail": f"Saving failed: {exc}"})


def _actor(store: RecordStore, user_id: Any) -> User:
    if user_id in (None, ""):
        raise HTTPException(status_code=400, detail="user_id is required")
    user = UserDirectory(store).get(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _parse_date(value: str, field_name: str = "date") -> datetime.date:
    try:
        return coerce_date(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field_name} must be YYYY-MM-DD")


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/operational-date")
def current_operational_date() -> Dict[str, Any]:
    now = datetime.datetime.now()
    return {
        "operational_date": operational_date(now),
        "default_shift_type": default_shift_type(now),
        "shift_types": available_shift_types(),
    }


# ---------------------------------------------------------------------------
# Shifts


@app.get("/api/v1/shifts/current")
def current_shift(
    user_id: int = Query(...),
    shift_type: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store),
) -> JSONResponse:
    user = _actor(store, user_id)
    require(can_work_shifts, user.role, WORK_DENIED)
    label = shift_type or default_shift_type(datetime.datetime.now())
    templates = ChecklistCatalog(store).list_templates()
    shift = ShiftRecordManager(store).load_or_init(label, user, templates, load_occupancy(store))
    payload = shift.to_dict()
    payload["progress"] = completion_percent(shift.tasks)
    return JSONResponse(content=jsonable_encoder(payload))


@app.post("/api/v1/shifts/toggle")
def toggle_shift_task(payload: Dict[str, Any]) -> JSONResponse:
    shift = toggle_task(ShiftData.from_dict(payload.get("shift") or {}), str(payload.get("task_id") or ""))
    return JSONResponse(content=jsonable_encoder(shift.to_dict()))


@app.post("/api/v1/shifts/save")
def save_shift(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    user = _actor(store, payload.get("user_id"))
    shift = ShiftData.from_dict(payload.get("shift") or {})
    if not shift.type or not shift.date:
        raise HTTPException(status_code=400, detail="shift.type and shift.date are required")
    manager = ShiftRecordManager(store)
    saved = manager.submit(shift, user) if payload.get("final") else manager.save_draft(shift, user)
    return JSONResponse(content=jsonable_encoder(saved.to_dict()))


@app.post("/api/v1/shifts/reopen")
def reopen_shift(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    user = _actor(store, payload.get("user_id"))
    date_label = _parse_date(str(payload.get("date") or "")).isoformat()
    shift_type = payload.get("shift_type")
    if not shift_type:
        raise HTTPException(status_code=400, detail="shift_type is required")
    changed = ShiftRecordManager(store).reopen_record(date_label, shift_type, user)
    if not changed:
        raise HTTPException(status_code=409, detail="No submitted shift matched")
    return JSONResponse(content={"date": date_label, "shift_type": shift_type, "status": "draft"})


@app.get("/api/v1/shifts/submitted")
def submitted_today(date: Optional[str] = Query(None), store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    date_label = _parse_date(date).isoformat() if date else operational_date()
    return {"date": date_label, "shift_types": ShiftRecordManager(store).submitted_shift_types(date_label)}


@app.get("/api/v1/shifts/history")
def shift_history(
    search: str = Query(""),
    shift: str = Query("All"),
    store: RecordStore = Depends(get_store),
) -> JSONResponse:
    records = ShiftRecordManager(store).history(search, shift)
    payload = []
    for record in records:
        entry = record.to_dict()
        entry["progress"] = completion_percent(record.tasks)
        payload.append(entry)
    return JSONResponse(content=jsonable_encoder({"shifts": payload}))


@app.post("/api/v1/shifts/handover")
def handover(payload: Dict[str, Any]) -> Dict[str, str]:
    shift = ShiftData.from_dict(payload.get("shift") or {})
    return {"summary": generate_handover_summary(shift)}


@app.get("/api/v1/suggestion")
def suggestion(weather: str = Query("Sunny"), time_of_day: str = Query("Morning")) -> Dict[str, str]:
    return {"suggestion": smart_task_suggestion(weather, time_of_day)}


# ---------------------------------------------------------------------------
# Guest requests


@app.get("/api/v1/guest-requests")
def list_guest_requests(
    date: Optional[str] = Query(None),
    status: str = Query("All"),
    search: str = Query(""),
    store: RecordStore = Depends(get_store),
) -> JSONResponse:
    if date:
        date = _parse_date(date).isoformat()
    requests = filter_requests(GuestRequestLog(store).list_requests(), date=date, status=status, search=search)
    return JSONResponse(
        content=jsonable_encoder(
            {
                "requests": [item.to_dict() for item in requests],
                "counts": guest_request_counts(requests),
            }
        )
    )


@app.post("/api/v1/guest-requests")
def log_guest_request(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    user = _actor(store, payload.get("user_id"))
    try:
        request = GuestRequestLog(store).create(payload, user.name)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(status_code=201, content=jsonable_encoder(request.to_dict()))


@app.post("/api/v1/guest-requests/{request_id}/status")
def update_guest_request(request_id: int, payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    user = _actor(store, payload.get("user_id"))
    log = GuestRequestLog(store)
    request = log.get(request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Guest request not found")
    new_status = payload.get("status") or ""
    if not can_transition(request.status, new_status):
        raise InvalidTransitionError(
            f"Cannot move a {request.status} request to {new_status or 'nothing'}; "
            f"allowed: {', '.join(next_statuses(request.status)) or 'none'}"
        )
    updated = log.transition(request, new_status, payload.get("remarks"), user.name, payload.get("assigned_to"))
    return JSONResponse(content=jsonable_encoder(updated.to_dict()))


# ---------------------------------------------------------------------------
# Occupancy


@app.get("/api/v1/occupancy/forecast")
def occupancy_forecast(start: Optional[str] = Query(None), store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    start_date = _parse_date(start, "start") if start else datetime.date.today()
    forecast = weekly_forecast(load_occupancy(store), start_date)
    return {"start": start_date.isoformat(), "days": forecast, "average": average_occupancy(forecast)}


@app.get("/api/v1/occupancy/week")
def occupancy_week(anchor: Optional[str] = Query(None), store: RecordStore = Depends(get_store)) -> JSONResponse:
    anchor_date = _parse_date(anchor, "anchor") if anchor else datetime.date.today()
    days = editor_week(load_occupancy(store), anchor_date)
    return JSONResponse(content=jsonable_encoder({"days": [day.to_row() for day in days]}))


@app.put("/api/v1/occupancy")
def put_occupancy(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    actor = _actor(store, payload.get("actor_id"))
    require(can_manage_occupancy, actor.role, OCCUPANCY_DENIED)
    records: List[DailyOccupancy] = []
    for entry in payload.get("days") or []:
        try:
            date_label = _parse_date(str(entry.get("date") or "")).isoformat()
            records.append(
                DailyOccupancy(date=date_label, percentage=int(entry.get("percentage") or 0), notes=entry.get("notes") or "")
            )
        except (TypeError, ValueError) as exc:
            raise _bad_request(exc) from exc
    saved = save_occupancy(store, records)
    return JSONResponse(content=jsonable_encoder({"days": [day.to_row() for day in saved]}))


@app.post("/api/v1/occupancy/import")
def import_occupancy(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    actor = _actor(store, payload.get("actor_id"))
    require(can_manage_occupancy, actor.role, OCCUPANCY_DENIED)
    try:
        _, processed = import_occupancy_csv(store, payload.get("csv") or "")
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return {"processed": processed}


@app.get("/api/v1/occupancy/template")
def occupancy_template() -> Dict[str, str]:
    return {"csv": CSV_TEMPLATE}


# ---------------------------------------------------------------------------
# Checklist configuration


@app.get("/api/v1/templates")
def list_templates(store: RecordStore = Depends(get_store)) -> JSONResponse:
    catalog = ChecklistCatalog(store)
    templates = [
        {"id": item.id, "label": item.label, "category": item.category, "shiftType": item.shift_type}
        for item in catalog.list_templates()
    ]
    return JSONResponse(content=jsonable_encoder({"templates": templates, "categories": catalog.list_categories()}))


@app.post("/api/v1/templates")
def add_template(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    user = _actor(store, payload.get("user_id"))
    require(can_manage_checklists, user.role, "Manager access required to edit checklists.")
    try:
        template = ChecklistCatalog(store).add_template(
            payload.get("label") or "", payload.get("category") or "", payload.get("shift_type") or "ALL"
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(
            {"id": template.id, "label": template.label, "category": template.category, "shiftType": template.shift_type}
        ),
    )


@app.delete("/api/v1/templates/{template_id}")
def delete_template(template_id: int, user_id: int = Query(...), store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    user = _actor(store, user_id)
    require(can_manage_checklists, user.role, "Manager access required to edit checklists.")
    ChecklistCatalog(store).delete_template(template_id)
    return {"deleted": template_id}


@app.post("/api/v1/categories")
def add_category(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    user = _actor(store, payload.get("user_id"))
    require(can_manage_checklists, user.role, "Manager access required to edit checklists.")
    try:
        categories = ChecklistCatalog(store).add_category(payload.get("name") or "")
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return {"categories": categories}


@app.delete("/api/v1/categories/{name}")
def delete_category(name: str, user_id: int = Query(...), store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    user = _actor(store, user_id)
    require(can_manage_checklists, user.role, "Manager access required to edit checklists.")
    return {"categories": ChecklistCatalog(store).delete_category(name)}


# ---------------------------------------------------------------------------
# Users, roster, settings


def _user_payload(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "name": user.name,
        "role": user.role,
        "initials": user.initials,
        "color": user.color,
    }


@app.get("/api/v1/users")
def list_users(store: RecordStore = Depends(get_store)) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder({"users": [_user_payload(u) for u in UserDirectory(store).list_users()]}))


@app.get("/api/v1/users/{user_id}/permissions")
def user_permissions(user_id: int, store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    user = _actor(store, user_id)
    return {"role": user.role, "badge": badge_for_role(user.role), "permissions": permissions_for(user.role)}


@app.post("/api/v1/users")
def add_user(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    actor = _actor(store, payload.get("actor_id"))
    require(can_manage_users, actor.role, "Only the Front Office Manager can manage the team.")
    try:
        user = UserDirectory(store).add_user(payload.get("name") or "", payload.get("username") or "", payload.get("role") or "GSA")
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(status_code=201, content=jsonable_encoder(_user_payload(user)))


@app.put("/api/v1/users/{user_id}")
def edit_user(user_id: int, payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    actor = _actor(store, payload.get("actor_id"))
    require(can_manage_users, actor.role, "Only the Front Office Manager can manage the team.")
    directory = UserDirectory(store)
    user = _actor(store, user_id)
    try:
        updated = directory.edit_user(
            user,
            name=payload.get("name") or user.name,
            username=payload.get("username") or user.username,
            role=payload.get("role") or user.role,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(content=jsonable_encoder(_user_payload(updated)))


@app.delete("/api/v1/users/{user_id}")
def delete_user(user_id: int, actor_id: int = Query(...), store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    actor = _actor(store, actor_id)
    require(can_manage_users, actor.role, "Only the Front Office Manager can manage the team.")
    UserDirectory(store).delete_user(_actor(store, user_id))
    return {"deleted": user_id}


@app.get("/api/v1/roster")
def roster_week(anchor: Optional[str] = Query(None), store: RecordStore = Depends(get_store)) -> JSONResponse:
    anchor_date = _parse_date(anchor, "anchor") if anchor else datetime.date.today()
    assignments = ShiftRoster(store).week(anchor_date)
    return JSONResponse(
        content=jsonable_encoder(
            {
                "assignments": [
                    {"id": a.id, "date": a.date, "shiftType": a.shift_type, "userId": a.user_id} for a in assignments
                ]
            }
        )
    )


@app.post("/api/v1/roster")
def roster_assign(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> JSONResponse:
    actor = _actor(store, payload.get("actor_id"))
    require(can_manage_roster, actor.role, "Manager access required to edit the roster.")
    date_label = _parse_date(str(payload.get("date") or "")).isoformat()
    try:
        assignment = ShiftRoster(store).assign(date_label, payload.get("shift_type") or "", payload.get("user_id"))
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(
            {"id": assignment.id, "date": assignment.date, "shiftType": assignment.shift_type, "userId": assignment.user_id}
        ),
    )


@app.delete("/api/v1/roster/{assignment_id}")
def roster_unassign(assignment_id: int, actor_id: int = Query(...), store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    actor = _actor(store, actor_id)
    require(can_manage_roster, actor.role, "Manager access required to edit the roster.")
    ShiftRoster(store).unassign(assignment_id)
    return {"deleted": assignment_id}


@app.get("/api/v1/settings")
def get_settings(store: RecordStore = Depends(get_store)) -> Dict[str, str]:
    config = load_app_config(store)
    return {"appName": config.app_name, "logoUrl": config.logo_url, "supportMessage": config.support_message}


@app.put("/api/v1/settings")
def put_settings(payload: Dict[str, Any], store: RecordStore = Depends(get_store)) -> Dict[str, str]:
    actor = _actor(store, payload.get("actor_id"))
    require(can_edit_settings, actor.role, "Only the Front Office Manager can change settings.")
    current = load_app_config(store)
    config = AppConfig(
        app_name=payload.get("appName") or current.app_name,
        logo_url=payload.get("logoUrl", current.logo_url) or "",
        support_message=payload.get("supportMessage", current.support_message) or "",
    )
    save_app_config(store, config)
    return {"appName": config.app_name, "logoUrl": config.logo_url, "supportMessage": config.support_message}
