"""Persistence backends for agreements, notifications and users."""

from loan_pact.store.base import AGREEMENTS, NOTIFICATIONS, USERS, Store
from loan_pact.store.memory import InMemoryStore
from loan_pact.store.postgres import PostgresStore

__all__ = ["AGREEMENTS", "InMemoryStore", "NOTIFICATIONS", "PostgresStore", "Store", "USERS"]
