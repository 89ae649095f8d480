from __future__ import annotations

from typing import Callable, Dict, List

from errors import AuthorizationError


FRONT_OFFICE_MANAGER = "Front Office Manager"
ASSISTANT_FOM = "Asst. FOM"
MANAGEMENT = "Management"

USER_ROLES: List[str] = [
    FRONT_OFFICE_MANAGER,
    ASSISTANT_FOM,
    "Senior GSA",
    "GSA",
    MANAGEMENT,
]

MANAGER_ROLES = {FRONT_OFFICE_MANAGER, ASSISTANT_FOM}

ROLE_BADGES: Dict[str, str] = {
    FRONT_OFFICE_MANAGER: "bg-purple-50 border-purple-100",
    ASSISTANT_FOM: "bg-blue-50 border-blue-100",
    MANAGEMENT: "bg-gray-50 border-gray-100",
    "Other": "bg-white border-gray-100",
}


def normalize_role(role: str) -> str:
    return (role or "").strip().lower()


def canonical_role(role: str) -> str:
    """Return the defined role label matching ``role`` regardless of case."""
    label = normalize_role(role)
    for name in USER_ROLES:
        if normalize_role(name) == label:
            return name
    raise ValueError(f"Unsupported role '{role}'.")


def is_manager_role(role: str) -> bool:
    label = normalize_role(role)
    return any(label == normalize_role(name) for name in MANAGER_ROLES)


def is_front_office_manager(role: str) -> bool:
    return normalize_role(role) == normalize_role(FRONT_OFFICE_MANAGER)


def can_work_shifts(role: str) -> bool:
    """Management staff only follow guest requests; everyone else runs checklists."""
    label = normalize_role(role)
    return bool(label) and label != normalize_role(MANAGEMENT)


def badge_for_role(role: str) -> str:
    try:
        return ROLE_BADGES.get(canonical_role(role), ROLE_BADGES["Other"])
    except ValueError:
        return ROLE_BADGES["Other"]


# Feature permissions. Shift history and guest requests are open to every role.
can_reopen_shift = is_manager_role
can_manage_checklists = is_manager_role
can_manage_roster = is_manager_role
can_manage_occupancy = is_manager_role
can_view_settings = is_manager_role
can_manage_users = is_front_office_manager
can_edit_settings = is_front_office_manager


def permissions_for(role: str) -> Dict[str, bool]:
    return {
        "reopen_shift": can_reopen_shift(role),
        "manage_checklists": can_manage_checklists(role),
        "manage_roster": can_manage_roster(role),
        "manage_occupancy": can_manage_occupancy(role),
        "work_shifts": can_work_shifts(role),
        "view_settings": can_view_settings(role),
        "manage_users": can_manage_users(role),
        "edit_settings": can_edit_settings(role),
    }


def require(permission: Callable[[str], bool], role: str, message: str) -> None:
    if not permission(role):
        raise AuthorizationError(message)
