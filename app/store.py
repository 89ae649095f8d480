"""Table-name record store over the SQLAlchemy schema.

Every front office operation is a filtered read or write against one table, so
the store exposes exactly that: select/insert/update/upsert/delete with simple
equality filters. Rows go in and come out as plain dicts keyed by column name;
turning them into domain objects is the job of ``models``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Type

from sqlalchemy import MetaData, Table, delete, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from database import Base, SessionLocal
from errors import StoreError, StoreReadError, StoreWriteError


logger = logging.getLogger(__name__)

Row = Dict[str, Any]
_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class RecordStore:
    def __init__(self, session_factory: Callable = SessionLocal, metadata: MetaData = Base.metadata) -> None:
        self._session_factory = session_factory
        self._metadata = metadata

    # ------------------------------------------------------------------
    # Helpers

    def _table(self, name: str, error: Type[StoreError]) -> Table:
        table = self._metadata.tables.get(name)
        if table is None:
            raise error(f"Unknown table '{name}'.", table=name)
        return table

    def _column(self, table: Table, name: str, error: Type[StoreError]):
        try:
            return table.c[name]
        except KeyError:
            raise error(f"Unknown column '{name}' on '{table.name}'.", table=table.name) from None

    def _where(self, stmt, table: Table, filters: Optional[Mapping[str, Any]], error: Type[StoreError]):
        for column_name, value in (filters or {}).items():
            stmt = stmt.where(self._column(table, column_name, error) == value)
        return stmt

    def _clean(self, table: Table, row: Mapping[str, Any]) -> Row:
        unknown = [key for key in row if key not in table.c]
        if unknown:
            raise StoreWriteError(
                f"Unknown column(s) {', '.join(sorted(unknown))} on '{table.name}'.", table=table.name
            )
        return dict(row)

    # ------------------------------------------------------------------
    # Operations

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        tbl = self._table(table, StoreReadError)
        stmt = self._where(select(tbl), tbl, filters, StoreReadError)
        for key in order_by or []:
            descending = key.startswith("-")
            column = self._column(tbl, key.lstrip("-"), StoreReadError)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        try:
            with self._session_factory() as session:
                return [dict(row) for row in session.execute(stmt).mappings()]
        except SQLAlchemyError as exc:
            raise StoreReadError(f"Reading '{table}' failed: {exc}", table=table) from exc

    def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[Row]:
        tbl = self._table(table, StoreWriteError)
        payload = [self._clean(tbl, row) for row in rows]
        inserted: List[Row] = []
        try:
            with self._session_factory() as session, session.begin():
                for row in payload:
                    result = session.execute(insert(tbl).values(**row).returning(*tbl.c))
                    inserted.append(dict(result.mappings().one()))
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Inserting into '{table}' failed: {exc}", table=table) from exc
        return inserted

    def update(self, table: str, patch: Mapping[str, Any], filters: Mapping[str, Any]) -> int:
        tbl = self._table(table, StoreWriteError)
        values = self._clean(tbl, patch)
        if not filters:
            raise StoreWriteError(f"Refusing to update every row of '{table}'.", table=table)
        stmt = self._where(update(tbl), tbl, filters, StoreWriteError).values(**values)
        try:
            with self._session_factory() as session, session.begin():
                return int(session.execute(stmt).rowcount or 0)
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Updating '{table}' failed: {exc}", table=table) from exc

    def upsert(self, table: str, rows: Iterable[Mapping[str, Any]], conflict_key: Sequence[str]) -> None:
        tbl = self._table(table, StoreWriteError)
        payload = [self._clean(tbl, row) for row in rows]
        keys = list(conflict_key)
        for key in keys:
            self._column(tbl, key, StoreWriteError)
        try:
            with self._session_factory() as session, session.begin():
                dialect = session.get_bind().dialect.name
                dialect_insert = _UPSERT_DIALECTS.get(dialect)
                if dialect_insert is None:
                    raise StoreWriteError(f"Upsert is not supported on '{dialect}'.", table=table)
                for row in payload:
                    stmt = dialect_insert(tbl).values(**row)
                    changes = {name: stmt.excluded[name] for name in row if name not in keys}
                    if changes:
                        stmt = stmt.on_conflict_do_update(index_elements=keys, set_=changes)
                    else:
                        stmt = stmt.on_conflict_do_nothing(index_elements=keys)
                    session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Upserting into '{table}' failed: {exc}", table=table) from exc

    def delete(self, table: str, filters: Mapping[str, Any]) -> int:
        tbl = self._table(table, StoreWriteError)
        if not filters:
            raise StoreWriteError(f"Refusing to delete every row of '{table}'.", table=table)
        stmt = self._where(delete(tbl), tbl, filters, StoreWriteError)
        try:
            with self._session_factory() as session, session.begin():
                return int(session.execute(stmt).rowcount or 0)
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Deleting from '{table}' failed: {exc}", table=table) from exc


def recover_read(action: Callable[[], Any], default: Any, *, what: str) -> Any:
    """Run a store read, degrading to ``default`` when the store is unavailable."""
    try:
        return action()
    except StoreReadError as exc:
        logger.warning("Could not load %s, using defaults: %s", what, exc)
        return default
