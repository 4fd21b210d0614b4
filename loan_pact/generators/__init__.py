"""Synthetic users and agreements for demos and tests."""

from loan_pact.generators.agreements import AgreementGenerator
from loan_pact.generators.users import UserGenerator

__all__ = ["AgreementGenerator", "UserGenerator"]
