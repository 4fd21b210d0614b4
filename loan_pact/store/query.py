"""Backend-neutral query conditions.

Conditions are evaluated in Python by ``InMemoryStore`` and rendered
to SQL by ``PostgresStore``. Comparisons against ``None`` never match
except through ``eq(field, None)`` / ``is_null``.
"""

import operator
from dataclasses import dataclass
from typing import Any, Callable, Sequence

OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
}


@dataclass(frozen=True)
class Condition:
    """``field <op> value`` on a single column."""

    field: str
    op: str
    value: Any = None

    def matches(self, record: dict[str, Any]) -> bool:
        actual = record.get(self.field)
        if self.op == "is_null":
            return actual is None
        if self.op == "eq" and self.value is None:
            return actual is None
        if actual is None or self.value is None:
            return self.op == "ne" and actual is not self.value
        return OPERATORS[self.op](actual, self.value)


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of conditions."""

    conditions: tuple[Condition, ...]

    def matches(self, record: dict[str, Any]) -> bool:
        return any(c.matches(record) for c in self.conditions)


Predicate = Condition | AnyOf


def eq(field: str, value: Any) -> Condition:
    return Condition(field, "eq", value)


def ne(field: str, value: Any) -> Condition:
    return Condition(field, "ne", value)


def lt(field: str, value: Any) -> Condition:
    return Condition(field, "lt", value)


def lte(field: str, value: Any) -> Condition:
    return Condition(field, "lte", value)


def gt(field: str, value: Any) -> Condition:
    return Condition(field, "gt", value)


def gte(field: str, value: Any) -> Condition:
    return Condition(field, "gte", value)


def is_null(field: str) -> Condition:
    return Condition(field, "is_null")


def any_of(*conditions: Condition) -> AnyOf:
    return AnyOf(tuple(conditions))


def matches_all(record: dict[str, Any], conditions: Sequence[Predicate]) -> bool:
    """True when ``record`` satisfies every condition."""
    return all(c.matches(record) for c in conditions)
