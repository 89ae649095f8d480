from __future__ import annotations

import logging
from typing import Any, List

from models import TaskTemplate
from store import RecordStore, recover_read
from task_templates import ALL_SHIFTS


logger = logging.getLogger(__name__)

TEMPLATES_TABLE = "task_templates"
CATEGORIES_TABLE = "task_categories"
DEFAULT_CATEGORIES = ["Arrivals", "Departures", "Operations", "Cashiering", "Concierge"]


class ChecklistCatalog:
    """Task templates and the categories they are filed under."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def list_templates(self) -> List[TaskTemplate]:
        rows = recover_read(lambda: self.store.select(TEMPLATES_TABLE, order_by=["id"]), [], what="task templates")
        return [TaskTemplate.from_row(row) for row in rows]

    def add_template(self, label: str, category: str, shift_type: str = ALL_SHIFTS) -> TaskTemplate:
        label = (label or "").strip()
        if not label:
            raise ValueError("Task label is required.")
        template = TaskTemplate(id=None, label=label, category=(category or "").strip(), shift_type=shift_type or ALL_SHIFTS)
        inserted = self.store.insert(TEMPLATES_TABLE, [template.to_row()])
        return TaskTemplate.from_row(inserted[0])

    def delete_template(self, template_id: Any) -> None:
        self.store.delete(TEMPLATES_TABLE, {"id": template_id})

    def list_categories(self) -> List[str]:
        rows = recover_read(lambda: self.store.select(CATEGORIES_TABLE, order_by=["name"]), [], what="task categories")
        names = [row["name"] for row in rows if row.get("name")]
        return names or list(DEFAULT_CATEGORIES)

    def add_category(self, name: str) -> List[str]:
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name is required.")
        existing = self.store.select(CATEGORIES_TABLE, {"name": name})
        if existing:
            raise ValueError(f"Category '{name}' already exists.")
        self.store.insert(CATEGORIES_TABLE, [{"name": name}])
        return self.list_categories()

    def delete_category(self, name: str) -> List[str]:
        # Templates keep their category label; it just stops being offered.
        self.store.delete(CATEGORIES_TABLE, {"name": name})
        return self.list_categories()
