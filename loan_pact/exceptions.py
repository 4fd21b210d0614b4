"""Custom exception hierarchy for loan-pact."""


class LoanPactError(Exception):
    """Base exception for all loan-pact errors."""


class NotFoundError(LoanPactError):
    """Raised when a referenced agreement, notification or user does not exist."""


class ValidationError(LoanPactError):
    """Raised when input violates a domain rule (e.g. lender equals borrower)."""


class ConfigurationError(LoanPactError):
    """Raised when configuration is invalid or missing."""


class StoreError(LoanPactError):
    """Raised when the backing store fails. The original cause is chained."""


class DispatchError(LoanPactError):
    """Raised when a dispatcher cannot hand a notification off."""


class AuthenticationError(LoanPactError):
    """Raised when a request carries no valid caller identity."""


class PermissionDeniedError(LoanPactError):
    """Raised when an authenticated caller may not act on an agreement."""


class InvalidTransitionError(LoanPactError):
    """Raised when an agreement is in an invalid state for the operation."""


class TerminalStateError(InvalidTransitionError):
    """Raised when operating on an agreement that is already paid."""


class ConfirmationError(LoanPactError):
    """Base class for confirmation payload failures."""


class MalformedPayloadError(ConfirmationError):
    """Raised when a confirmation payload is structurally invalid."""


class InvalidCodeError(ConfirmationError):
    """Raised when a verification code does not match its agreement."""


class ExpiredError(ConfirmationError):
    """Raised when a confirmation payload is past its validity window."""


class AlreadyConfirmedError(ConfirmationError):
    """Raised when a party confirms an agreement a second time."""
