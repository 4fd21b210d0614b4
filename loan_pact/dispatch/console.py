"""Console dispatcher for debugging and development."""

from loan_pact.dispatch.serialization import to_json
from loan_pact.exceptions import DispatchError
from loan_pact.models import Notification


class ConsoleDispatcher:
    """Print notifications to stdout instead of delivering them."""

    def __init__(self, pretty: bool = True) -> None:
        """Initialize console dispatcher.

        Parameters
        ----------
        pretty : bool
            Pretty-print JSON output.
        """
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def send(self, notification: Notification) -> None:
        """Print one notification."""
        try:
            print(f"[{notification.delivery_method.value}] -> {notification.user_id}")
            print(to_json(notification, indent=2 if self.pretty else None))
        except (OSError, ValueError) as e:
            # ValueError is what a closed stdout raises
            raise DispatchError(f"Cannot print notification {notification.id}: {e}") from e

        kind = notification.type.value
        self._counts[kind] = self._counts.get(kind, 0) + 1

    def close(self) -> None:
        """Print summary and close."""
        print(f"\n{'='*60}")
        print("Console Dispatcher Summary")
        print("=" * 60)
        for kind, count in self._counts.items():
            print(f"  {kind}: {count} notifications")
