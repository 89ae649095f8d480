from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, List, Optional

from errors import AuthorizationError
from models import User
from roles import FRONT_OFFICE_MANAGER, canonical_role, is_front_office_manager
from store import RecordStore, recover_read


USERS_TABLE = "users"
USER_COLORS = [
    "bg-blue-100 text-blue-600",
    "bg-green-100 text-green-600",
    "bg-yellow-100 text-yellow-600",
    "bg-pink-100 text-pink-600",
    "bg-indigo-100 text-indigo-600",
    "bg-teal-100 text-teal-600",
]
BOOTSTRAP_USERS = [
    User(
        id=0,
        username="Ahmed.Ihsaan",
        name="Ahmed Ihsaan",
        role=FRONT_OFFICE_MANAGER,
        initials="AI",
        color="bg-purple-100 text-purple-600",
    ),
]


def make_initials(name: str) -> str:
    return "".join(part[0] for part in (name or "").split()[:2]).upper()


class UserDirectory:
    def __init__(self, store: RecordStore, *, rng: Optional[random.Random] = None) -> None:
        self.store = store
        self.rng = rng or random.Random()

    def list_users(self) -> List[User]:
        rows = recover_read(lambda: self.store.select(USERS_TABLE, order_by=["name"]), [], what="users")
        return [User.from_row(row) for row in rows]

    def get(self, user_id: Any) -> Optional[User]:
        rows = self.store.select(USERS_TABLE, {"id": user_id})
        return User.from_row(rows[0]) if rows else None

    def _validated(self, name: str, username: str, role: str):
        name = (name or "").strip()
        username = (username or "").strip()
        if not name or not username:
            raise ValueError("Name and username are required.")
        return name, username, canonical_role(role)

    def add_user(self, name: str, username: str, role: str = "GSA") -> User:
        name, username, role = self._validated(name, username, role)
        user = User(
            id=None,
            username=username,
            name=name,
            role=role,
            initials=make_initials(name),
            color=self.rng.choice(USER_COLORS),
        )
        inserted = self.store.insert(USERS_TABLE, [user.to_row()])
        return User.from_row(inserted[0])

    def edit_user(self, user: User, *, name: str, username: str, role: str) -> User:
        name, username, role = self._validated(name, username, role)
        updated = replace(user, name=name, username=username, role=role, initials=make_initials(name))
        self.store.update(USERS_TABLE, updated.to_row(), {"id": user.id})
        return updated

    def delete_user(self, user: User) -> None:
        if is_front_office_manager(user.role):
            raise AuthorizationError("The Front Office Manager account cannot be removed.")
        self.store.delete(USERS_TABLE, {"id": user.id})
