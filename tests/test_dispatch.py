"""Tests for notification dispatchers."""

import json
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from loan_pact.config import KafkaConfig
from loan_pact.dispatch import ConsoleDispatcher, JsonLinesDispatcher
from loan_pact.exceptions import DispatchError
from loan_pact.models import DeliveryMethod, Notification, NotificationType


@pytest.fixture
def notification() -> Notification:
    return Notification(
        id="n-1",
        user_id="borrower-1",
        type=NotificationType.REMINDER,
        title="Payment reminder",
        message="Your debt of Rp 1.500.000 is due tomorrow.",
        agreement_id="agr-1",
        escalation_level=0,
        created_at=datetime(2026, 3, 10, 8, 0),
    )


class TestConsoleDispatcher:
    """Tests for ConsoleDispatcher."""

    def test_send_pretty(self, notification: Notification, capsys: pytest.CaptureFixture) -> None:
        """Test pretty-printed output."""
        dispatcher = ConsoleDispatcher()

        dispatcher.send(notification)
        out = capsys.readouterr().out

        assert "[push] -> borrower-1" in out
        assert '"title": "Payment reminder"' in out
        assert dispatcher._counts == {"reminder": 1}

    def test_send_compact(self, notification: Notification, capsys: pytest.CaptureFixture) -> None:
        """Test single-line output is valid JSON."""
        dispatcher = ConsoleDispatcher(pretty=False)

        dispatcher.send(notification)
        lines = capsys.readouterr().out.strip().splitlines()

        assert json.loads(lines[1])["created_at"] == "2026-03-10T08:00:00"

    @pytest.mark.parametrize("error", [OSError("broken pipe"), ValueError("I/O operation on closed file")])
    def test_send_stream_error(self, notification: Notification, error: Exception) -> None:
        """Test a failing stdout raises DispatchError and is not counted."""
        dispatcher = ConsoleDispatcher()

        with patch("builtins.print", side_effect=error):
            with pytest.raises(DispatchError, match="n-1"):
                dispatcher.send(notification)
        assert dispatcher._counts == {}

    def test_close_summary(self, notification: Notification, capsys: pytest.CaptureFixture) -> None:
        """Test the closing summary counts per type."""
        dispatcher = ConsoleDispatcher(pretty=False)
        dispatcher.send(notification)
        dispatcher.send(notification)
        capsys.readouterr()

        dispatcher.close()

        assert "reminder: 2 notifications" in capsys.readouterr().out


class TestJsonLinesDispatcher:
    """Tests for JsonLinesDispatcher."""

    def test_creates_directory(self, tmp_path: Path) -> None:
        """Test the outbox directory is created."""
        JsonLinesDispatcher(tmp_path / "nested" / "outbox")

        assert (tmp_path / "nested" / "outbox").is_dir()

    def test_appends_per_channel(self, notification: Notification, tmp_path: Path) -> None:
        """Test one line per notification in its channel file."""
        dispatcher = JsonLinesDispatcher(tmp_path)
        dispatcher.send(notification)
        notification.delivery_method = DeliveryMethod.EMAIL
        dispatcher.send(notification)
        dispatcher.send(notification)

        push = dispatcher.path_for("push").read_text(encoding="utf-8").splitlines()
        email = dispatcher.path_for("email").read_text(encoding="utf-8").splitlines()

        assert len(push) == 1
        assert len(email) == 2
        assert json.loads(push[0])["type"] == "reminder"

    def test_write_failure(self, notification: Notification, tmp_path: Path) -> None:
        """Test an unwritable outbox raises DispatchError."""
        dispatcher = JsonLinesDispatcher(tmp_path)
        dispatcher.path_for("push").mkdir()

        with pytest.raises(DispatchError, match="push"):
            dispatcher.send(notification)

    def test_close_summary(self, notification: Notification, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """Test the closing summary."""
        dispatcher = JsonLinesDispatcher(tmp_path)
        dispatcher.send(notification)

        dispatcher.close()

        assert "push: 1 notifications" in capsys.readouterr().out


class TestKafkaDispatcherMocked:
    """Tests for KafkaDispatcher using mocks (no actual Kafka connection)."""

    def test_delivery_stats(self) -> None:
        """Test delivery rate and per-type counts."""
        from loan_pact.dispatch.kafka import DeliveryStats

        stats = DeliveryStats(delivered=9, failed=1)
        stats.record_sent("reminder")
        stats.record_sent("reminder")
        stats.record_sent("escalation")

        assert stats.delivery_rate == 0.9
        assert stats.sent == 3
        assert stats.sent_by_type == {"reminder": 2, "escalation": 1}
        assert DeliveryStats().delivery_rate == 0.0

    @patch("loan_pact.dispatch.kafka.Producer")
    def test_init_with_string(self, mock_producer_class: MagicMock) -> None:
        """Test initialization with bootstrap servers."""
        from loan_pact.dispatch.kafka import KafkaDispatcher

        dispatcher = KafkaDispatcher("kafka:9092")

        assert dispatcher.config.bootstrap_servers == "kafka:9092"
        assert mock_producer_class.call_args[0][0]["bootstrap.servers"] == "kafka:9092"

    @patch("loan_pact.dispatch.kafka.Producer")
    def test_send_keyed_by_user(self, mock_producer_class: MagicMock, notification: Notification) -> None:
        """Test messages are keyed by recipient and carry the type header."""
        from loan_pact.dispatch.kafka import KafkaDispatcher

        mock_producer = MagicMock()
        mock_producer_class.return_value = mock_producer
        dispatcher = KafkaDispatcher(KafkaConfig(topic="pacts"))

        dispatcher.send(notification)

        kwargs = mock_producer.produce.call_args[1]
        assert kwargs["topic"] == "pacts"
        assert kwargs["key"] == b"borrower-1"
        assert kwargs["headers"] == {"type": "reminder"}
        assert json.loads(kwargs["value"])["id"] == "n-1"
        mock_producer.poll.assert_called_with(0)
        assert dispatcher.stats.sent == 1

    @patch("loan_pact.dispatch.kafka.Producer")
    def test_send_buffer_full(self, mock_producer_class: MagicMock, notification: Notification) -> None:
        """Test a full local queue raises DispatchError."""
        from loan_pact.dispatch.kafka import KafkaDispatcher

        mock_producer = MagicMock()
        mock_producer.produce.side_effect = BufferError("queue full")
        mock_producer_class.return_value = mock_producer
        dispatcher = KafkaDispatcher("localhost:9092")

        with pytest.raises(DispatchError, match="n-1"):
            dispatcher.send(notification)
        assert dispatcher.stats.sent == 0

    @patch("loan_pact.dispatch.kafka.Producer")
    def test_delivery_callback(self, mock_producer_class: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
        """Test delivery reports update stats and name the recipient on failure."""
        from loan_pact.dispatch.kafka import KafkaDispatcher

        failed = MagicMock()
        failed.key.return_value = b"borrower-1"
        dispatcher = KafkaDispatcher("localhost:9092")
        dispatcher._on_delivery(None, MagicMock())
        dispatcher._on_delivery("broker down", failed)

        assert dispatcher.stats.delivered == 1
        assert dispatcher.stats.failed == 1
        assert "borrower-1 was not delivered: broker down" in caplog.text

    @patch("loan_pact.dispatch.kafka.Producer")
    def test_close_flushes(self, mock_producer_class: MagicMock) -> None:
        """Test close flushes the producer."""
        from loan_pact.dispatch.kafka import KafkaDispatcher

        mock_producer = MagicMock()
        mock_producer_class.return_value = mock_producer
        KafkaDispatcher("localhost:9092").close()

        mock_producer.flush.assert_called_once_with(30.0)
