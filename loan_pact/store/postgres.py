"""PostgreSQL store backed by psycopg 3."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from loan_pact.exceptions import StoreError
from loan_pact.models.base import new_id
from loan_pact.store.base import TABLES
from loan_pact.store.query import AnyOf, Predicate

logger = logging.getLogger(__name__)

SQL_OPERATORS = {
    "eq": "=",
    "ne": "<>",
    "lt": "<",
    "lte": "<=",
    "gt": ">",
    "gte": ">=",
}

# Columns stored as jsonb
JSON_COLUMNS = {"repayment_schedule", "escalation_settings"}

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    phone TEXT,
    reputation_score INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    deleted_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS agreements (
    id TEXT PRIMARY KEY,
    lender_id TEXT NOT NULL,
    borrower_id TEXT NOT NULL,
    amount NUMERIC(15, 2) NOT NULL CHECK (amount > 0),
    interest_rate NUMERIC(7, 4) NOT NULL DEFAULT 0 CHECK (interest_rate >= 0),
    due_date TIMESTAMP NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    lender_confirmed BOOLEAN NOT NULL DEFAULT FALSE,
    borrower_confirmed BOOLEAN NOT NULL DEFAULT FALSE,
    repayment_schedule JSONB,
    escalation_settings JSONB,
    qr_code TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    CHECK (lender_id <> borrower_id)
);
CREATE INDEX IF NOT EXISTS agreements_due_date_idx ON agreements (due_date);

CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    agreement_id TEXT,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    delivery_method TEXT NOT NULL,
    read_status BOOLEAN NOT NULL DEFAULT FALSE,
    escalation_level INTEGER NOT NULL DEFAULT 0,
    scheduled_time TIMESTAMP,
    created_at TIMESTAMP
);
CREATE INDEX IF NOT EXISTS notifications_agreement_idx ON notifications (agreement_id, type, created_at);
"""


def render_condition(condition: Predicate) -> tuple[sql.Composable, list[Any]]:
    """Render a condition to a SQL fragment and its parameters."""
    if isinstance(condition, AnyOf):
        parts, params = [], []
        for inner in condition.conditions:
            fragment, inner_params = render_condition(inner)
            parts.append(fragment)
            params.extend(inner_params)
        return sql.SQL("({})").format(sql.SQL(" OR ").join(parts)), params

    column = sql.Identifier(condition.field)
    if condition.op == "is_null" or (condition.op == "eq" and condition.value is None):
        return sql.SQL("{} IS NULL").format(column), []
    if condition.op == "ne" and condition.value is None:
        return sql.SQL("{} IS NOT NULL").format(column), []
    if condition.op == "ne":
        # NULL <> x is unknown in SQL; match the in-memory semantics
        return sql.SQL("({} IS NULL OR {} <> %s)").format(column, column), [condition.value]
    try:
        op = SQL_OPERATORS[condition.op]
    except KeyError:
        raise StoreError(f"Unsupported operator {condition.op}") from None
    return sql.SQL("{} " + op + " %s").format(column), [condition.value]


def render_where(conditions: Sequence[Predicate]) -> tuple[sql.Composable, list[Any]]:
    """Render a conjunction; empty input renders as ``TRUE``."""
    if not conditions:
        return sql.SQL("TRUE"), []
    parts, params = [], []
    for condition in conditions:
        fragment, condition_params = render_condition(condition)
        parts.append(fragment)
        params.extend(condition_params)
    return sql.SQL(" AND ").join(parts), params


def _adapt(column: str, value: Any) -> Any:
    if column in JSON_COLUMNS and value is not None:
        return Jsonb(value)
    return value


class PostgresStore:
    """Store implementation over a PostgreSQL database.

    Each call opens a short transaction on a fresh connection. Conditional
    updates are a single ``UPDATE ... WHERE ... RETURNING *`` so the
    database serialises concurrent confirmations.
    """

    def __init__(self, connection_string: str, connect_timeout: int = 10) -> None:
        """Initialize the store.

        Parameters
        ----------
        connection_string : str
            libpq connection string (``PostgresConfig.connection_string``).
        connect_timeout : int
            Seconds to wait for a connection.
        """
        self.connection_string = connection_string
        self.connect_timeout = connect_timeout

    def _connect(self) -> psycopg.Connection:
        return psycopg.connect(
            self.connection_string,
            row_factory=dict_row,
            connect_timeout=self.connect_timeout,
        )

    def _execute(
        self,
        statement: sql.Composable,
        params: Sequence[Any] = (),
        fetch: str = "all",
    ) -> Any:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(statement, params)
                    if fetch == "one":
                        return cur.fetchone()
                    if fetch == "rowcount":
                        return cur.rowcount
                    return cur.fetchall()
        except psycopg.Error as e:
            logger.error("PostgreSQL operation failed: %s", e)
            raise StoreError(str(e)) from e

    @staticmethod
    def _check_table(table: str) -> sql.Identifier:
        if table not in TABLES:
            raise StoreError(f"Unknown table {table}")
        return sql.Identifier(table)

    def create_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        try:
            with self._connect() as conn:
                conn.execute(SCHEMA_DDL)
        except psycopg.Error as e:
            raise StoreError(str(e)) from e
        logger.info("Schema ensured")

    def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        """Get a record by id."""
        statement = sql.SQL("SELECT * FROM {} WHERE id = %s").format(self._check_table(table))
        return self._execute(statement, [record_id], fetch="one")

    def query(
        self,
        table: str,
        conditions: Sequence[Predicate] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Get all records matching the conditions."""
        where, params = render_where(conditions)
        statement = sql.SQL("SELECT * FROM {} WHERE {}").format(self._check_table(table), where)
        if order_by is not None:
            direction = sql.SQL("DESC") if descending else sql.SQL("ASC")
            statement = sql.SQL("{} ORDER BY {} {}").format(
                statement, sql.Identifier(order_by), direction
            )
        if limit is not None:
            statement = sql.SQL("{} LIMIT %s").format(statement)
            params.append(limit)
        return self._execute(statement, params)

    def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a record and return the stored row."""
        record = dict(record)
        if not record.get("id"):
            record["id"] = new_id()
        columns = list(record)
        statement = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            self._check_table(table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        return self._execute(statement, [_adapt(c, record[c]) for c in columns], fetch="one")

    def update(
        self,
        table: str,
        record_id: str,
        changes: dict[str, Any],
        where: Sequence[Predicate] = (),
    ) -> dict[str, Any] | None:
        """Apply a partial update if the row still matches ``where``."""
        if not changes:
            raise StoreError("Update without changes")
        columns = list(changes)
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns
        )
        guard, guard_params = render_where(list(where))
        statement = sql.SQL("UPDATE {} SET {} WHERE id = %s AND {} RETURNING *").format(
            self._check_table(table), assignments, guard
        )
        params = [_adapt(c, changes[c]) for c in columns] + [record_id] + guard_params
        return self._execute(statement, params, fetch="one")

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record by id."""
        statement = sql.SQL("DELETE FROM {} WHERE id = %s").format(self._check_table(table))
        return self._execute(statement, [record_id], fetch="rowcount") > 0
