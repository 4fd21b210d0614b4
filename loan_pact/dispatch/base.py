"""Dispatcher interface."""

from typing import Protocol

from loan_pact.models import Notification


class Dispatcher(Protocol):
    """Fire-and-forget delivery of a notification to the recipient's device.

    Implementations may raise ``DispatchError``; callers log it and move on.
    No delivery confirmation is reported back.
    """

    def send(self, notification: Notification) -> None: ...

    def close(self) -> None: ...
