"""Application services over the store."""

from loan_pact.services.agreements import AgreementService
from loan_pact.services.users import UserService

__all__ = ["AgreementService", "UserService"]
