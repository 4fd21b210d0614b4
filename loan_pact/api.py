"""Request-level facade: authentication, authorization and error mapping.

Each operation takes the caller's bearer token and returns a ``Response``
whose body is a JSON-ready dict. Domain errors become
``{"error": {"code", "message"}}`` bodies; anything else propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from loan_pact.auth import Authenticator, Caller
from loan_pact.confirmation import ConfirmationProtocol, decode_payload, encode_payload
from loan_pact.dispatch.serialization import to_dict
from loan_pact.exceptions import (
    AlreadyConfirmedError,
    AuthenticationError,
    ConfigurationError,
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
from loan_pact.lifecycle import as_party
from loan_pact.models import Agreement, Party
from loan_pact.notifications import NotificationService
from loan_pact.services import AgreementService

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS: list[tuple[type[LoanPactError], int, str]] = [
    (AuthenticationError, 401, "unauthenticated"),
    (PermissionDeniedError, 403, "forbidden"),
    (NotFoundError, 404, "not_found"),
    (MalformedPayloadError, 400, "malformed_payload"),
    (InvalidCodeError, 400, "invalid_code"),
    (ExpiredError, 410, "expired"),
    (AlreadyConfirmedError, 409, "already_confirmed"),
    (TerminalStateError, 409, "terminal_state"),
    (InvalidTransitionError, 409, "invalid_transition"),
    (ValidationError, 422, "validation_failed"),
    (StoreError, 503, "store_unavailable"),
    (DispatchError, 503, "dispatch_unavailable"),
    (ConfigurationError, 500, "misconfigured"),
]


@dataclass
class Response:
    status: int
    body: dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status < 400


def error_response(exc: LoanPactError) -> Response:
    """Map a domain error to its status and error body."""
    for cls, status, code in ERROR_STATUS:
        if isinstance(exc, cls):
            break
    else:
        status, code = 500, "internal_error"
    message = str(exc)
    if isinstance(exc, StoreError):
        # Backend details stay in the logs
        message = "Storage is temporarily unavailable"
    return Response(status, {"error": {"code": code, "message": message}})


def agreement_body(agreement: Agreement) -> dict[str, Any]:
    body = to_dict(agreement)
    body["total_due"] = str(agreement.total_due)
    return body


class _Facade:
    def __init__(self, authenticator: Authenticator) -> None:
        self.authenticator = authenticator

    def _handle(self, token: str | None, operation: Callable[[Caller], tuple[int, dict]]) -> Response:
        try:
            caller = self.authenticator.authenticate(token)
            status, body = operation(caller)
        except LoanPactError as e:
            response = error_response(e)
            log = logger.error if response.status >= 500 else logger.info
            code = response.body["error"]["code"]
            log("Request failed with %s: %s", code, e, extra={"error_code": code})
            return response
        return Response(status, body)

    @staticmethod
    def _require_party(agreement: Agreement, caller: Caller) -> Party:
        party = agreement.party_of(caller.user_id)
        if party is None:
            raise PermissionDeniedError(f"Not a party to agreement {agreement.id}")
        return party


class ConfirmationApi(_Facade):
    """Issue, verify and consume confirmation codes."""

    def __init__(
        self,
        authenticator: Authenticator,
        protocol: ConfirmationProtocol,
    ) -> None:
        super().__init__(authenticator)
        self.protocol = protocol

    def issue_code(self, token: str | None, agreement_id: str) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            self._require_party(self.protocol.lifecycle.load(agreement_id), caller)
            payload = self.protocol.issue(agreement_id)
            return 201, {
                "agreement_id": payload.agreement_id,
                "reference": payload.reference,
                "verification_code": payload.verification_code,
                "issued_at": payload.issued_at,
                "expires_at": self.protocol.expires_at(payload).isoformat(),
                "payload": encode_payload(payload),
            }

        return self._handle(token, operation)

    def verify_code(self, token: str | None, payload: Any) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            verified = self.protocol.verify(payload)
            return 200, {
                "valid": True,
                "agreement_id": verified.agreement_id,
                "expires_at": self.protocol.expires_at(verified).isoformat(),
            }

        return self._handle(token, operation)

    def confirm(self, token: str | None, payload: Any, party: Party | str) -> Response:
        """Confirm as ``party``; the caller must be that party."""

        def operation(caller: Caller) -> tuple[int, dict]:
            named = as_party(party)
            decoded = decode_payload(payload)
            agreement = self.protocol.lifecycle.load(decoded.agreement_id)
            if agreement.party_id(named) != caller.user_id:
                raise PermissionDeniedError(f"Only the {named.value} may confirm as {named.value}")
            self.protocol.confirm(decoded, named)
            confirmed = self.protocol.lifecycle.load(decoded.agreement_id)
            return 200, {"confirmed": True, "agreement": agreement_body(confirmed)}

        return self._handle(token, operation)


class AgreementApi(_Facade):
    """Agreement and notification endpoints scoped to the caller."""

    def __init__(
        self,
        authenticator: Authenticator,
        agreements: AgreementService,
        notifications: NotificationService,
    ) -> None:
        super().__init__(authenticator)
        self.agreements = agreements
        self.notifications = notifications

    def create_agreement(self, token: str | None, body: dict[str, Any]) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            try:
                lender_id = body["lender_id"]
                borrower_id = body["borrower_id"]
                amount = body["amount"]
                due_date = body["due_date"]
            except KeyError as e:
                raise ValidationError(f"Missing field {e.args[0]}") from None
            if caller.user_id not in (lender_id, borrower_id):
                raise PermissionDeniedError("Caller must be the lender or the borrower")
            terms = {
                key: body[key]
                for key in ("interest_rate", "repayment_schedule", "escalation_settings")
                if key in body
            }
            agreement = self.agreements.create(lender_id, borrower_id, amount, due_date, **terms)
            return 201, agreement_body(agreement)

        return self._handle(token, operation)

    def get_agreement(self, token: str | None, agreement_id: str) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            agreement = self.agreements.get(agreement_id)
            self._require_party(agreement, caller)
            return 200, agreement_body(agreement)

        return self._handle(token, operation)

    def list_my_agreements(self, token: str | None) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            items = self.agreements.list_for_user(caller.user_id)
            return 200, {"items": [agreement_body(a) for a in items], "count": len(items)}

        return self._handle(token, operation)

    def update_agreement(self, token: str | None, agreement_id: str, changes: dict[str, Any]) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            self._require_party(self.agreements.get(agreement_id), caller)
            return 200, agreement_body(self.agreements.update_terms(agreement_id, changes))

        return self._handle(token, operation)

    def delete_agreement(self, token: str | None, agreement_id: str) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            self._require_party(self.agreements.get(agreement_id), caller)
            self.agreements.remove(agreement_id)
            return 200, {"deleted": agreement_id}

        return self._handle(token, operation)

    def mark_paid(self, token: str | None, agreement_id: str) -> Response:
        """Only the lender can declare the loan repaid."""

        def operation(caller: Caller) -> tuple[int, dict]:
            agreement = self.agreements.get(agreement_id)
            if self._require_party(agreement, caller) != Party.LENDER:
                raise PermissionDeniedError("Only the lender may mark an agreement as paid")
            return 200, agreement_body(self.agreements.mark_paid(agreement_id))

        return self._handle(token, operation)

    def dispute(self, token: str | None, agreement_id: str) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            self._require_party(self.agreements.get(agreement_id), caller)
            return 200, agreement_body(self.agreements.dispute(agreement_id))

        return self._handle(token, operation)

    def list_notifications(self, token: str | None, unread_only: bool = False) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            items = self.notifications.list_for_user(caller.user_id)
            if unread_only:
                items = [n for n in items if not n.read_status]
            return 200, {"items": [to_dict(n) for n in items], "count": len(items)}

        return self._handle(token, operation)

    def mark_notification_read(self, token: str | None, notification_id: str, read: bool = True) -> Response:
        def operation(caller: Caller) -> tuple[int, dict]:
            notification = self.notifications.get(notification_id)
            if notification.user_id != caller.user_id:
                # Someone else's notification is reported as missing
                raise NotFoundError(f"Notification {notification_id} not found")
            if read:
                notification = self.notifications.mark_read(notification_id)
            else:
                notification = self.notifications.mark_unread(notification_id)
            return 200, to_dict(notification)

        return self._handle(token, operation)
