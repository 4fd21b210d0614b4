"""Confirmation payload carried by a QR code."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ConfirmationPayload:
    """Snapshot of an agreement handed to the confirming party.

    Never persisted; the agreement only keeps a reference marker.
    ``issued_at`` is epoch milliseconds and doubles as the salt of
    ``verification_code``.
    """

    agreement_id: str
    lender_id: str
    borrower_id: str
    issued_at: int
    verification_code: str

    @property
    def reference(self) -> str:
        """Marker stored on the agreement for the last issued payload."""
        return f"qr_{self.agreement_id}_{self.issued_at}"
