from __future__ import annotations

import re
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

from ..models.row_data import OUTPUT_HEADER, OutputRow
from ..services.normalize import cell_text

"""Viewer record store.

Holds the latest consolidated records so the viewer can search them without
re-running a merge. The store is a caller-owned handle around a DB-API
cursor (psycopg2 in live mode); nothing here keeps a module-level
connection.

Saving replaces the whole table content: ``clear_and_save`` deletes every
row and inserts the new records in batches with
``psycopg2.extras.execute_values``. Transaction boundaries belong to the
caller.
"""

__all__ = [
    "RecordStore",
    "RecordStoreError",
    "SaveMetrics",
    "RECORD_COLUMNS",
    "SEARCH_COLUMNS",
]

# Column names in OUTPUT_HEADER order
RECORD_COLUMNS: tuple[str, ...] = (
    "client_id",
    "name",
    "spouse",
    "product",
    "co_name",
    "cell_no",
    "area",
    "maturity_date",
    "branch",
    "last_amount_paid",
    "address",
    "loan_amount",
    "loan_cycle",
    "guarantor_name",
    "guarantor_cell",
)
SEARCH_COLUMNS: tuple[str, ...] = ("client_id", "name", "co_name", "branch")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RecordStoreError(Exception):
    pass


@dataclass(frozen=True)
class SaveMetrics:
    """Timing of one clear_and_save call."""
    saved_rows: int
    elapsed_seconds: float


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _record_values(record: OutputRow | Mapping[str, Any]) -> tuple[str | None, ...]:
    if isinstance(record, OutputRow):
        values = record.as_list()
    else:
        values = [record.get(header) for header in OUTPUT_HEADER]
    return tuple(None if v is None else cell_text(v) for v in values)


class RecordStore:
    """Persisted consolidated records.

    Records come back as header-keyed dicts (``"Client ID"``, ``"Name"``, ...)
    plus an ``"id"`` key, the same shape ``OutputRow.as_record`` produces.
    """

    def __init__(self, cursor: Any, table: str = "guarantor_records", page_size: int = 100) -> None:
        if not _IDENTIFIER.match(table):
            raise RecordStoreError(f"invalid table name: {table!r}")
        self.cursor = cursor
        self.table = table
        self.page_size = page_size

    def _execute(self, sql: str, params: Any = None) -> None:
        try:
            self.cursor.execute(sql, params)
        except Exception as e:
            raise RecordStoreError(f"{self.table}: {e}") from e

    def _to_record(self, row: tuple[Any, ...]) -> dict[str, Any]:
        record: dict[str, Any] = {"id": row[0]}
        record.update(zip(OUTPUT_HEADER, row[1:]))
        return record

    def _fetch_records(self) -> list[dict[str, Any]]:
        try:
            rows = self.cursor.fetchall()
        except Exception as e:
            raise RecordStoreError(f"{self.table}: failed fetching rows: {e}") from e
        return [self._to_record(r) for r in rows]

    def ensure_schema(self) -> None:
        cols = ", ".join(f"{c} TEXT" for c in RECORD_COLUMNS)
        self._execute(f"CREATE TABLE IF NOT EXISTS {self.table} (id SERIAL PRIMARY KEY, {cols})")
        for col in SEARCH_COLUMNS:
            self._execute(f"CREATE INDEX IF NOT EXISTS {self.table}_{col}_idx ON {self.table} ({col})")

    def clear_and_save(
        self,
        records: Iterable[OutputRow | Mapping[str, Any]],
        metrics_callback: Callable[[SaveMetrics], None] | None = None,
    ) -> int:
        """Replace the stored records; returns the number saved."""
        rows = [_record_values(r) for r in records]
        start = time.time()
        self._execute(f"DELETE FROM {self.table}")
        if rows:
            cols_sql = ", ".join(RECORD_COLUMNS)
            try:
                execute_values(
                    self.cursor,
                    f"INSERT INTO {self.table} ({cols_sql}) VALUES %s",
                    rows,
                    page_size=self.page_size,
                )
            except Exception as e:
                raise RecordStoreError(f"{self.table}: insert failed: {e}") from e
        if metrics_callback is not None:
            metrics_callback(SaveMetrics(saved_rows=len(rows), elapsed_seconds=time.time() - start))
        return len(rows)

    def get_all(self) -> list[dict[str, Any]]:
        cols_sql = ", ".join(RECORD_COLUMNS)
        self._execute(f"SELECT id, {cols_sql} FROM {self.table} ORDER BY id")
        return self._fetch_records()

    def search(self, query: str) -> list[dict[str, Any]]:
        """Case-insensitive substring search on Client ID, Name, CO Name and Branch.

        A blank query returns no records.
        """
        query = query.strip()
        if not query:
            return []
        pattern = f"%{_escape_like(query)}%"
        cols_sql = ", ".join(RECORD_COLUMNS)
        where = " OR ".join(f"{c} ILIKE %s" for c in SEARCH_COLUMNS)
        self._execute(
            f"SELECT id, {cols_sql} FROM {self.table} WHERE {where} ORDER BY id",
            tuple(pattern for _ in SEARCH_COLUMNS),
        )
        return self._fetch_records()

    def count(self) -> int:
        self._execute(f"SELECT COUNT(*) FROM {self.table}")
        try:
            row = self.cursor.fetchone()
        except Exception as e:
            raise RecordStoreError(f"{self.table}: failed fetching count: {e}") from e
        return int(row[0]) if row else 0

    def delete_all(self) -> None:
        self._execute(f"DELETE FROM {self.table}")
