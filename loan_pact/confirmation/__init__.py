"""QR confirmation: code generation, payload codec and protocol."""

from loan_pact.confirmation.codes import generate_code
from loan_pact.confirmation.payload import decode_payload, encode_payload
from loan_pact.confirmation.protocol import ConfirmationProtocol

__all__ = ["ConfirmationProtocol", "decode_payload", "encode_payload", "generate_code"]
