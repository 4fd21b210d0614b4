"""Bearer token authentication boundary."""

import hmac
from dataclasses import dataclass
from typing import Protocol

from loan_pact.exceptions import AuthenticationError


@dataclass(frozen=True)
class Caller:
    """Authenticated user on whose behalf an operation runs."""

    user_id: str


class Authenticator(Protocol):
    def authenticate(self, token: str | None) -> Caller: ...


class StaticTokenAuthenticator:
    """Map of token to user id, for development and tests."""

    def __init__(self, tokens: dict[str, str]) -> None:
        self.tokens = dict(tokens)

    def authenticate(self, token: str | None) -> Caller:
        if not token:
            raise AuthenticationError("Missing bearer token")
        if token.startswith("Bearer "):
            token = token[len("Bearer "):]
        for known, user_id in self.tokens.items():
            if hmac.compare_digest(known, token):
                return Caller(user_id=user_id)
        raise AuthenticationError("Invalid bearer token")
