"""JSON Lines outbox dispatcher."""

import threading
from pathlib import Path

from loan_pact.dispatch.serialization import to_json
from loan_pact.exceptions import DispatchError
from loan_pact.models import Notification


class JsonLinesDispatcher:
    """Append notifications to per-channel ``.jsonl`` outbox files.

    A delivery worker outside this process is expected to tail the files.
    """

    def __init__(self, output_dir: str | Path) -> None:
        """Initialize the outbox.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write outbox files to (created if missing).
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def path_for(self, channel: str) -> Path:
        return self.output_dir / f"{channel}.jsonl"

    def send(self, notification: Notification) -> None:
        """Append one notification to its delivery channel's file."""
        channel = notification.delivery_method.value
        line = to_json(notification)
        try:
            with self._lock, open(self.path_for(channel), "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise DispatchError(f"Cannot write outbox {channel}: {e}") from e
        self._counts[channel] = self._counts.get(channel, 0) + 1

    def close(self) -> None:
        """Print summary."""
        print(f"Outbox files written to: {self.output_dir}")
        for channel, count in self._counts.items():
            print(f"  {channel}: {count} notifications")
