"""Verification codes for confirmation payloads.

The code is tamper-evidence and typo resistance only: a 32-bit
``h * 31 + c`` rolling hash over ``agreement_id + salt``, rendered as
uppercase base-36. It is not a signature.
"""

import hmac
import string

CODE_LENGTH = 8
_DIGITS = string.digits + string.ascii_uppercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_DIGITS[rem])
    return "".join(reversed(out))


def _mix(text: str) -> int:
    """Signed 32-bit rolling hash of ``text``."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def generate_code(agreement_id: str, salt: int | str, length: int = CODE_LENGTH) -> str:
    """Derive the verification code for ``agreement_id`` issued with ``salt``.

    Parameters
    ----------
    agreement_id : str
        Agreement the code is bound to.
    salt : int | str
        Issuance timestamp in epoch milliseconds, embedded in the payload.
    length : int
        Fixed output length; shorter codes are left-padded with ``0``.

    Returns
    -------
    str
        Uppercase base-36 code of exactly ``length`` characters.
    """
    digest = _to_base36(abs(_mix(f"{agreement_id}{salt}")))
    return digest.rjust(length, "0")[:length]


def codes_match(expected: str, submitted: str) -> bool:
    """Compare codes without leaking the mismatch position through timing."""
    return hmac.compare_digest(expected.encode("utf-8"), submitted.upper().encode("utf-8"))
