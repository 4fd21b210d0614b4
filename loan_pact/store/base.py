"""Store interface shared by the in-memory and PostgreSQL backends."""

from typing import Any, Protocol, Sequence

from loan_pact.store.query import Predicate

AGREEMENTS = "agreements"
NOTIFICATIONS = "notifications"
USERS = "users"

TABLES = (AGREEMENTS, NOTIFICATIONS, USERS)


class Store(Protocol):
    """Row-level persistence keyed by the ``id`` column.

    Records are plain dicts. Backend failures surface as ``StoreError``.
    """

    def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        """Return the record or ``None`` if absent."""
        ...

    def query(
        self,
        table: str,
        conditions: Sequence[Predicate] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return records matching every condition."""
        ...

    def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a record (an ``id`` is assigned when missing) and return it."""
        ...

    def update(
        self,
        table: str,
        record_id: str,
        changes: dict[str, Any],
        where: Sequence[Predicate] = (),
    ) -> dict[str, Any] | None:
        """Apply ``changes`` atomically if the record exists and matches ``where``.

        Returns the updated record, or ``None`` when nothing matched.
        """
        ...

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record, returning whether it existed."""
        ...
