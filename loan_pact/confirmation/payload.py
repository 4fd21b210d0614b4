"""Encoding and structural validation of confirmation payloads."""

import json
from typing import Any, Mapping

from loan_pact.exceptions import MalformedPayloadError
from loan_pact.models import ConfirmationPayload

REQUIRED_FIELDS = ("agreement_id", "lender_id", "borrower_id", "issued_at", "verification_code")
# Older clients sent the issuance time as ``timestamp``
LEGACY_ALIASES = {"timestamp": "issued_at"}


def encode_payload(payload: ConfirmationPayload) -> str:
    """Serialize a payload to the compact JSON text embedded in the QR image."""
    return json.dumps(
        {
            "agreement_id": payload.agreement_id,
            "lender_id": payload.lender_id,
            "borrower_id": payload.borrower_id,
            "issued_at": payload.issued_at,
            "verification_code": payload.verification_code,
        },
        separators=(",", ":"),
    )


def decode_payload(data: ConfirmationPayload | Mapping[str, Any] | str | bytes) -> ConfirmationPayload:
    """Parse and structurally validate a submitted payload.

    Parameters
    ----------
    data : ConfirmationPayload | Mapping | str | bytes
        Payload object, decoded mapping, or the raw scanned text.

    Returns
    -------
    ConfirmationPayload
        Validated payload.

    Raises
    ------
    MalformedPayloadError
        If the text is not JSON or a required field is missing or mistyped.
    """
    if isinstance(data, ConfirmationPayload):
        return _validate(data)

    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedPayloadError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(data, Mapping):
        raise MalformedPayloadError("Payload must be a JSON object")

    fields = dict(data)
    for legacy, current in LEGACY_ALIASES.items():
        if current not in fields and legacy in fields:
            fields[current] = fields.pop(legacy)

    missing = [name for name in REQUIRED_FIELDS if fields.get(name) in (None, "")]
    if missing:
        raise MalformedPayloadError(f"Payload missing required fields: {', '.join(missing)}")

    try:
        payload = ConfirmationPayload(**{name: fields[name] for name in REQUIRED_FIELDS})
    except TypeError as e:
        raise MalformedPayloadError(str(e)) from e
    return _validate(payload)


def _validate(payload: ConfirmationPayload) -> ConfirmationPayload:
    for name in ("agreement_id", "lender_id", "borrower_id", "verification_code"):
        value = getattr(payload, name)
        if not isinstance(value, str) or not value:
            raise MalformedPayloadError(f"Payload field {name} must be a non-empty string")
    if isinstance(payload.issued_at, bool) or not isinstance(payload.issued_at, int) or payload.issued_at < 0:
        raise MalformedPayloadError("Payload field issued_at must be epoch milliseconds")
    return payload


def elapsed_ms(payload: ConfirmationPayload, now_ms: int) -> int:
    """Milliseconds since the payload was issued."""
    return now_ms - payload.issued_at


def is_expired(payload: ConfirmationPayload, now_ms: int, validity_ms: int) -> bool:
    """True once strictly more than ``validity_ms`` has elapsed."""
    return elapsed_ms(payload, now_ms) > validity_ms
