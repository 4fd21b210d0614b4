"""Domain models for loan agreements and notifications."""

from loan_pact.models.agreement import Agreement, RepaymentInstallment
from loan_pact.models.enums import AgreementStatus, DeliveryMethod, NotificationType, Party
from loan_pact.models.notification import Notification
from loan_pact.models.payload import ConfirmationPayload
from loan_pact.models.user import User

__all__ = [
    "Agreement",
    "AgreementStatus",
    "ConfirmationPayload",
    "DeliveryMethod",
    "Notification",
    "NotificationType",
    "Party",
    "RepaymentInstallment",
    "User",
]
