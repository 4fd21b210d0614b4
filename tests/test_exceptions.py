"""Tests for the exception hierarchy."""

import pytest

from loan_pact.exceptions import (
    AlreadyConfirmedError,
    AuthenticationError,
    ConfigurationError,
    ConfirmationError,
    DispatchError,
    ExpiredError,
    InvalidCodeError,
    InvalidTransitionError,
    LoanPactError,
    MalformedPayloadError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    TerminalStateError,
    ValidationError,
)


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            NotFoundError,
            ValidationError,
            ConfigurationError,
            StoreError,
            DispatchError,
            AuthenticationError,
            PermissionDeniedError,
            InvalidTransitionError,
            ConfirmationError,
        ],
    )
    def test_direct_subclasses(self, exc_class: type) -> None:
        """Test every family derives from LoanPactError."""
        assert issubclass(exc_class, LoanPactError)

    @pytest.mark.parametrize(
        "exc_class",
        [MalformedPayloadError, InvalidCodeError, ExpiredError, AlreadyConfirmedError],
    )
    def test_confirmation_failures(self, exc_class: type) -> None:
        """Test confirmation failures share a base class."""
        assert issubclass(exc_class, ConfirmationError)

    def test_terminal_is_invalid_transition(self) -> None:
        """Test a paid agreement is an invalid transition."""
        assert issubclass(TerminalStateError, InvalidTransitionError)

    def test_catch_by_base(self) -> None:
        """Test catching by the root class."""
        with pytest.raises(LoanPactError, match="gone"):
            raise NotFoundError("gone")

    def test_chained_cause(self) -> None:
        """Test the original cause is preserved."""
        cause = OSError("disk full")
        try:
            raise StoreError("write failed") from cause
        except StoreError as e:
            assert e.__cause__ is cause
