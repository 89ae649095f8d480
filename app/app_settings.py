from __future__ import annotations

from database import SETTINGS_ROW_ID
from models import AppConfig
from store import RecordStore, recover_read


SETTINGS_TABLE = "settings"


def load_app_config(store: RecordStore) -> AppConfig:
    rows = recover_read(lambda: store.select(SETTINGS_TABLE, {"id": SETTINGS_ROW_ID}), [], what="app settings")
    return AppConfig.from_row(rows[0]) if rows else AppConfig()


def save_app_config(store: RecordStore, config: AppConfig) -> AppConfig:
    store.upsert(SETTINGS_TABLE, [config.to_row()], conflict_key=["id"])
    return config
