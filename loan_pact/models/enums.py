"""Enumeration types for agreements and notifications."""

from enum import Enum


class AgreementStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    PAID = "paid"
    OVERDUE = "overdue"
    DISPUTED = "disputed"


class Party(str, Enum):
    LENDER = "lender"
    BORROWER = "borrower"

    @property
    def flag_field(self) -> str:
        """Agreement column holding this party's confirmation."""
        return f"{self.value}_confirmed"

    @property
    def id_field(self) -> str:
        """Agreement column holding this party's user id."""
        return f"{self.value}_id"

    @property
    def counterpart(self) -> "Party":
        return Party.BORROWER if self is Party.LENDER else Party.LENDER


class NotificationType(str, Enum):
    REMINDER = "reminder"
    CONFIRMATION = "confirmation"
    PAYMENT = "payment"
    ESCALATION = "escalation"
    SUMMARY = "summary"


class DeliveryMethod(str, Enum):
    PUSH = "push"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
