from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app_settings import load_app_config, save_app_config
from catalog import CATEGORIES_TABLE, DEFAULT_CATEGORIES, ChecklistCatalog
from database import init_database
from roles import USER_ROLES
from store import RecordStore
from users import BOOTSTRAP_USERS, UserDirectory


VALID_ROLES = set(USER_ROLES)

SAMPLE_USERS: List[Dict] = [
    {"name": BOOTSTRAP_USERS[0].name, "username": BOOTSTRAP_USERS[0].username, "role": BOOTSTRAP_USERS[0].role},
    {"name": "Mariyam Shifna", "username": "Mariyam.Shifna", "role": "Asst. FOM"},
    {"name": "Ibrahim Nashid", "username": "Ibrahim.Nashid", "role": "Senior GSA"},
    {"name": "Aishath Rasha", "username": "Aishath.Rasha", "role": "GSA"},
    {"name": "Hassan Zahir", "username": "Hassan.Zahir", "role": "GSA"},
    {"name": "Fathimath Leena", "username": "Fathimath.Leena", "role": "Management"},
]

STARTER_TEMPLATES: List[Dict] = [
    # Every shift
    {"label": "Check Float", "category": "Cashiering", "shift_type": "ALL"},
    {"label": "Review guest requests log", "category": "Operations", "shift_type": "ALL"},
    # Morning
    {"label": "Print arrivals list", "category": "Arrivals", "shift_type": "Morning"},
    {"label": "Confirm seaplane transfers", "category": "Arrivals", "shift_type": "Morning"},
    {"label": "Prepare welcome drinks", "category": "Concierge", "shift_type": "Morning"},
    # Afternoon
    {"label": "Check out departing villas", "category": "Departures", "shift_type": "Afternoon"},
    {"label": "Settle open folios", "category": "Cashiering", "shift_type": "Afternoon"},
    {"label": "Confirm dinner reservations", "category": "Concierge", "shift_type": "Afternoon"},
    # Night
    {"label": "Run night audit", "category": "Cashiering", "shift_type": "Night"},
    {"label": "Print tomorrow's departures", "category": "Departures", "shift_type": "Night"},
    {"label": "Lobby security walk", "category": "Operations", "shift_type": "Night"},
]


def seed_users(directory: UserDirectory) -> int:
    existing = {user.username.lower() for user in directory.list_users()}
    created = 0
    for entry in SAMPLE_USERS:
        if entry["role"] not in VALID_ROLES:
            print(f"[seed] Skipping {entry['name']}: undefined role {entry['role']}")
            continue
        if entry["username"].lower() in existing:
            continue
        directory.add_user(entry["name"], entry["username"], entry["role"])
        created += 1
    return created


def seed_catalog(catalog: ChecklistCatalog) -> int:
    # list_categories falls back to the defaults, so check the rows themselves.
    stored = {row["name"] for row in catalog.store.select(CATEGORIES_TABLE)}
    for name in DEFAULT_CATEGORIES:
        if name not in stored:
            catalog.add_category(name)

    known = {(item.label, item.shift_type) for item in catalog.list_templates()}
    created = 0
    for entry in STARTER_TEMPLATES:
        if (entry["label"], entry["shift_type"]) in known:
            continue
        catalog.add_template(entry["label"], entry["category"], entry["shift_type"])
        created += 1
    return created


def seed_data() -> None:
    init_database()
    store = RecordStore()
    users = seed_users(UserDirectory(store))
    templates = seed_catalog(ChecklistCatalog(store))
    save_app_config(store, load_app_config(store))
    print(f"Seed complete. Created {users} users and {templates} task templates.")


if __name__ == "__main__":
    seed_data()
