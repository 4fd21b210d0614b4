"""Loan agreement models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from loan_pact.models.base import parse_datetime, parse_decimal
from loan_pact.models.enums import AgreementStatus, Party


@dataclass
class RepaymentInstallment:
    """One planned repayment (cicilan) of an agreement."""

    amount: Decimal
    due_date: datetime

    def to_record(self) -> dict[str, Any]:
        return {"amount": str(self.amount), "due_date": self.due_date.isoformat()}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "RepaymentInstallment":
        return cls(
            amount=parse_decimal(record["amount"]),
            due_date=parse_datetime(record["due_date"]),
        )


@dataclass
class Agreement:
    """Bilateral loan agreement between a lender and a borrower."""

    id: str
    lender_id: str
    borrower_id: str
    amount: Decimal
    due_date: datetime
    interest_rate: Decimal = Decimal("0")
    status: AgreementStatus = AgreementStatus.PENDING
    lender_confirmed: bool = False
    borrower_confirmed: bool = False
    repayment_schedule: list[RepaymentInstallment] = field(default_factory=list)
    escalation_settings: dict[str, Any] | None = None
    qr_code: str | None = None  # reference to the last issued confirmation payload
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == AgreementStatus.PAID

    def party_id(self, party: Party) -> str:
        return getattr(self, party.id_field)

    def is_confirmed_by(self, party: Party) -> bool:
        return getattr(self, party.flag_field)

    def party_of(self, user_id: str) -> Party | None:
        """Which side ``user_id`` is on, if any."""
        if user_id == self.lender_id:
            return Party.LENDER
        if user_id == self.borrower_id:
            return Party.BORROWER
        return None

    @property
    def total_due(self) -> Decimal:
        """Principal plus flat interest."""
        return self.amount * (1 + self.interest_rate)

    def to_record(self) -> dict[str, Any]:
        """Flatten into a store row."""
        return {
            "id": self.id,
            "lender_id": self.lender_id,
            "borrower_id": self.borrower_id,
            "amount": self.amount,
            "interest_rate": self.interest_rate,
            "due_date": self.due_date,
            "status": self.status.value,
            "lender_confirmed": self.lender_confirmed,
            "borrower_confirmed": self.borrower_confirmed,
            "repayment_schedule": [item.to_record() for item in self.repayment_schedule],
            "escalation_settings": self.escalation_settings,
            "qr_code": self.qr_code,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Agreement":
        """Build from a store row."""
        return cls(
            id=record["id"],
            lender_id=record["lender_id"],
            borrower_id=record["borrower_id"],
            amount=parse_decimal(record["amount"]),
            due_date=parse_datetime(record["due_date"]),
            interest_rate=parse_decimal(record.get("interest_rate") or 0),
            status=AgreementStatus(record.get("status") or AgreementStatus.PENDING),
            lender_confirmed=bool(record.get("lender_confirmed")),
            borrower_confirmed=bool(record.get("borrower_confirmed")),
            repayment_schedule=[
                RepaymentInstallment.from_record(item)
                for item in record.get("repayment_schedule") or []
            ],
            escalation_settings=record.get("escalation_settings"),
            qr_code=record.get("qr_code"),
            created_at=parse_datetime(record.get("created_at")),
            updated_at=parse_datetime(record.get("updated_at")),
        )
