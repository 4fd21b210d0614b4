"""In-memory store with atomic conditional updates."""

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Sequence

from loan_pact.exceptions import StoreError
from loan_pact.models.base import new_id
from loan_pact.store.base import TABLES
from loan_pact.store.query import Predicate, matches_all


@dataclass
class InMemoryStore:
    """Dict-backed store for tests, demos and single-process deployments.

    Every operation runs under one lock, so a conditional ``update`` is
    a single linearization point. Records are copied in and out so
    callers never share mutable state with the store.
    """

    tables: dict[str, dict[str, dict[str, Any]]] = field(
        default_factory=lambda: {name: {} for name in TABLES}
    )
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        try:
            return self.tables[table]
        except KeyError:
            raise StoreError(f"Unknown table {table}") from None

    def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        """Get a record by id."""
        with self._lock:
            record = self._table(table).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def query(
        self,
        table: str,
        conditions: Sequence[Predicate] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Get all records matching the conditions."""
        with self._lock:
            rows = [
                copy.deepcopy(record)
                for record in self._table(table).values()
                if matches_all(record, conditions)
            ]
        if order_by is not None:
            # None sorts first ascending, last descending
            rows.sort(
                key=lambda r: (r.get(order_by) is not None, r.get(order_by)),
                reverse=descending,
            )
        return rows[:limit] if limit is not None else rows

    def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Add a record to the store."""
        with self._lock:
            rows = self._table(table)
            record = copy.deepcopy(record)
            if not record.get("id"):
                record["id"] = new_id()
            if record["id"] in rows:
                raise StoreError(f"Duplicate id {record['id']} in {table}")
            rows[record["id"]] = record
            return copy.deepcopy(record)

    def update(
        self,
        table: str,
        record_id: str,
        changes: dict[str, Any],
        where: Sequence[Predicate] = (),
    ) -> dict[str, Any] | None:
        """Apply a partial update if the record still matches ``where``."""
        with self._lock:
            record = self._table(table).get(record_id)
            if record is None or not matches_all(record, where):
                return None
            record.update(copy.deepcopy(changes))
            return copy.deepcopy(record)

    def delete(self, table: str, record_id: str) -> bool:
        """Remove a record."""
        with self._lock:
            return self._table(table).pop(record_id, None) is not None

    def summary(self) -> dict[str, int]:
        """Return row counts per table."""
        with self._lock:
            return {name: len(rows) for name, rows in self.tables.items()}
