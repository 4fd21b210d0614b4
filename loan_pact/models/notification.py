"""Notification model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loan_pact.models.base import parse_datetime
from loan_pact.models.enums import DeliveryMethod, NotificationType


@dataclass
class Notification:
    """Message addressed to one user, optionally about one agreement."""

    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    delivery_method: DeliveryMethod = DeliveryMethod.PUSH
    agreement_id: str | None = None
    read_status: bool = False
    escalation_level: int = 0
    scheduled_time: datetime | None = None
    created_at: datetime | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "agreement_id": self.agreement_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "delivery_method": self.delivery_method.value,
            "read_status": self.read_status,
            "escalation_level": self.escalation_level,
            "scheduled_time": self.scheduled_time,
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Notification":
        return cls(
            id=record["id"],
            user_id=record["user_id"],
            agreement_id=record.get("agreement_id"),
            type=NotificationType(record["type"]),
            title=record["title"],
            message=record["message"],
            delivery_method=DeliveryMethod(record.get("delivery_method") or DeliveryMethod.PUSH),
            read_status=bool(record.get("read_status")),
            escalation_level=int(record.get("escalation_level") or 0),
            scheduled_time=parse_datetime(record.get("scheduled_time")),
            created_at=parse_datetime(record.get("created_at")),
        )
