"""Two-party QR confirmation protocol."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Mapping

from loan_pact.clock import Clock, epoch_millis
from loan_pact.config import ConfirmationConfig
from loan_pact.confirmation.codes import codes_match, generate_code
from loan_pact.confirmation.payload import decode_payload, elapsed_ms, encode_payload, is_expired
from loan_pact.exceptions import AlreadyConfirmedError, ExpiredError, InvalidCodeError
from loan_pact.lifecycle import AgreementLifecycle, as_party, ensure_open
from loan_pact.models import ConfirmationPayload, Party

logger = logging.getLogger(__name__)

PayloadInput = ConfirmationPayload | Mapping[str, Any] | str | bytes


class ConfirmationProtocol:
    """Issue, verify and consume confirmation payloads.

    Codes are recomputed at verification time from the salt embedded in the
    payload, so nothing but a reference marker is stored. Replays after a
    confirmation are rejected by the lifecycle's per-party guard; the
    validity window bounds how long a leaked payload is useful.
    """

    def __init__(
        self,
        lifecycle: AgreementLifecycle,
        clock: Clock,
        config: ConfirmationConfig | None = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.clock = clock
        self.config = config or ConfirmationConfig()

    def issue(self, agreement_id: str) -> ConfirmationPayload:
        """Build a fresh payload for ``agreement_id`` and remember its reference.

        Any previously issued payload is no longer the referenced one, but
        still verifies until its own window closes.
        """
        agreement = self.lifecycle.load(agreement_id)
        ensure_open(agreement)

        issued_at = epoch_millis(self.clock.now())
        payload = ConfirmationPayload(
            agreement_id=agreement.id,
            lender_id=agreement.lender_id,
            borrower_id=agreement.borrower_id,
            issued_at=issued_at,
            verification_code=generate_code(agreement.id, issued_at, self.config.code_length),
        )
        self.lifecycle.record_qr_reference(agreement.id, payload.reference)
        logger.info("Issued confirmation payload %s", payload.reference)
        return payload

    def encode(self, payload: ConfirmationPayload) -> str:
        """Text to render into the scannable image."""
        return encode_payload(payload)

    def expires_at(self, payload: ConfirmationPayload) -> datetime:
        """Local time after which ``payload`` is rejected."""
        issued = datetime.fromtimestamp(payload.issued_at / 1000)
        return issued + timedelta(milliseconds=self.config.validity_ms)

    def verify(self, data: PayloadInput) -> ConfirmationPayload:
        """Validate structure, agreement, code and freshness, in that order.

        Raises
        ------
        MalformedPayloadError
            If required fields are missing or mistyped.
        NotFoundError
            If the agreement no longer exists.
        InvalidCodeError
            If the code or the party snapshot does not match.
        ExpiredError
            If more than the validity window has elapsed since issuance.
        """
        payload = decode_payload(data)
        agreement = self.lifecycle.load(payload.agreement_id)

        expected = generate_code(payload.agreement_id, payload.issued_at, self.config.code_length)
        if not codes_match(expected, payload.verification_code):
            raise InvalidCodeError("Invalid verification code")
        if (payload.lender_id, payload.borrower_id) != (agreement.lender_id, agreement.borrower_id):
            raise InvalidCodeError("Payload parties no longer match the agreement")

        now_ms = epoch_millis(self.clock.now())
        if is_expired(payload, now_ms, self.config.validity_ms):
            raise ExpiredError(
                f"Confirmation code expired {elapsed_ms(payload, now_ms) - self.config.validity_ms} ms ago"
            )
        return payload

    def confirm(self, data: PayloadInput, party: Party | str) -> bool:
        """Verify the payload and record ``party``'s confirmation."""
        party = as_party(party)
        payload = self.verify(data)

        agreement = self.lifecycle.load(payload.agreement_id)
        ensure_open(agreement)
        if agreement.is_confirmed_by(party):
            raise AlreadyConfirmedError(
                f"Agreement {agreement.id} already confirmed by {party.value}"
            )
        self.lifecycle.confirm(agreement.id, party)
        return True
