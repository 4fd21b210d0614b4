"""Pytest configuration and fixtures."""

from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Callable

import pytest

from loan_pact.bootstrap import Services, build_services
from loan_pact.clock import FixedClock
from loan_pact.config import LoanPactConfig
from loan_pact.exceptions import DispatchError
from loan_pact.models import Agreement, Notification
from loan_pact.store import InMemoryStore

LENDER_ID = "lender-1"
BORROWER_ID = "borrower-1"
STRANGER_ID = "stranger-1"

TOKENS = {
    "tok-lender": LENDER_ID,
    "tok-borrower": BORROWER_ID,
    "tok-stranger": STRANGER_ID,
}


class RecordingDispatcher:
    """Dispatcher that keeps what it was given."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []
        self.fail = False
        self.closed = False

    def send(self, notification: Notification) -> None:
        if self.fail:
            raise DispatchError("channel down")
        self.sent.append(notification)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def now() -> datetime:
    """Tuesday 10 March 2026, 10:00 local."""
    return datetime(2026, 3, 10, 10, 0)


@pytest.fixture
def clock(now: datetime) -> FixedClock:
    return FixedClock(now)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def config() -> LoanPactConfig:
    return LoanPactConfig(auth_tokens=dict(TOKENS))


@pytest.fixture
def services(
    config: LoanPactConfig,
    store: InMemoryStore,
    dispatcher: RecordingDispatcher,
    clock: FixedClock,
) -> Services:
    """Service graph over the in-memory store with three registered users."""
    services = build_services(config, store=store, dispatcher=dispatcher, clock=clock)
    services.users.create("Budi Santoso", "budi@example.com", user_id=LENDER_ID)
    services.users.create("Siti Rahayu", "siti@example.com", user_id=BORROWER_ID)
    services.users.create("Agus Wijaya", "agus@example.com", user_id=STRANGER_ID)
    return services


@pytest.fixture
def make_agreement(services: Services, now: datetime) -> Callable[..., Agreement]:
    """Create an agreement due ``due_in_days`` from today at 17:00."""

    def _make(due_in_days: int = 14, amount: str = "1500000", **terms) -> Agreement:
        due_date = datetime.combine(now.date() + timedelta(days=due_in_days), time(17, 0))
        return services.lifecycle.create(LENDER_ID, BORROWER_ID, Decimal(amount), due_date, **terms)

    return _make


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible generator tests."""
    return 42
