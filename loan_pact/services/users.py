"""User records with soft deletion."""

import logging

from loan_pact.clock import Clock
from loan_pact.exceptions import NotFoundError, ValidationError
from loan_pact.models import User
from loan_pact.models.base import new_id
from loan_pact.store import USERS, Store
from loan_pact.store.query import eq, is_null

logger = logging.getLogger(__name__)


class UserService:
    """Create, look up and soft-delete users."""

    def __init__(self, store: Store, clock: Clock) -> None:
        self.store = store
        self.clock = clock

    def create(self, name: str, email: str, phone: str | None = None, user_id: str | None = None) -> User:
        if not name or not email:
            raise ValidationError("Name and email are required")
        if self.store.query(USERS, [eq("email", email)], limit=1):
            raise ValidationError(f"Email {email} is already registered")
        now = self.clock.now()
        user = User(
            id=user_id or new_id(),
            name=name,
            email=email,
            phone=phone,
            created_at=now,
            updated_at=now,
        )
        stored = User.from_record(self.store.insert(USERS, user.to_record()))
        logger.info("Registered user %s", stored.id)
        return stored

    def get(self, user_id: str) -> User:
        """Active user by id; soft-deleted users are not found."""
        record = self.store.get(USERS, user_id)
        if record is None or record.get("deleted_at") is not None:
            raise NotFoundError(f"User {user_id} not found")
        return User.from_record(record)

    def list_active(self) -> list[User]:
        return [User.from_record(r) for r in self.store.query(USERS, [is_null("deleted_at")])]

    def remove(self, user_id: str) -> User:
        now = self.clock.now()
        record = self.store.update(
            USERS, user_id, {"deleted_at": now, "updated_at": now}, where=[is_null("deleted_at")]
        )
        if record is None:
            raise NotFoundError(f"User {user_id} not found")
        logger.info("Soft-deleted user %s", user_id)
        return User.from_record(record)
