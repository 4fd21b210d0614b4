"""User model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loan_pact.models.base import parse_datetime


@dataclass
class User:
    """Registered person who can lend or borrow."""

    id: str
    name: str
    email: str
    phone: str | None = None
    reputation_score: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None  # soft delete

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "reputation_score": self.reputation_score,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "deleted_at": self.deleted_at,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "User":
        return cls(
            id=record["id"],
            name=record["name"],
            email=record["email"],
            phone=record.get("phone"),
            reputation_score=int(record.get("reputation_score") or 0),
            created_at=parse_datetime(record.get("created_at")),
            updated_at=parse_datetime(record.get("updated_at")),
            deleted_at=parse_datetime(record.get("deleted_at")),
        )
