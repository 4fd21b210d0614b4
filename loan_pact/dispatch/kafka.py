"""Kafka dispatcher publishing notifications for delivery workers."""

import logging
from dataclasses import dataclass, field
from typing import Any

from confluent_kafka import KafkaException, Producer

from loan_pact.config import KafkaConfig
from loan_pact.dispatch.serialization import to_json
from loan_pact.exceptions import DispatchError
from loan_pact.models import Notification

logger = logging.getLogger(__name__)


@dataclass
class DeliveryStats:
    """Counts of notifications handed to and acknowledged by Kafka."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    sent_by_type: dict[str, int] = field(default_factory=dict)

    def record_sent(self, notification_type: str) -> None:
        self.sent += 1
        self.sent_by_type[notification_type] = self.sent_by_type.get(notification_type, 0) + 1

    @property
    def delivery_rate(self) -> float:
        """Share of acknowledged messages that reached the broker."""
        acked = self.delivered + self.failed
        return self.delivered / acked if acked else 0.0


class KafkaDispatcher:
    """Publish notifications to a Kafka topic, keyed by recipient.

    Keying by ``user_id`` keeps one user's notifications ordered within a
    partition. Delivery reports only update ``stats``; nothing is surfaced
    to the caller.
    """

    def __init__(self, config: KafkaConfig | str) -> None:
        """Initialize Kafka dispatcher.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = Producer(config.to_dict())
        self.stats = DeliveryStats()

    def _on_delivery(self, err: Any, msg: Any) -> None:
        if err is None:
            self.stats.delivered += 1
            return
        self.stats.failed += 1
        recipient = msg.key().decode("utf-8") if msg.key() else None
        logger.error("Notification for %s was not delivered: %s", recipient, err, extra={"user_id": recipient})

    def send(self, notification: Notification) -> None:
        """Queue one notification for publishing."""
        value = to_json(notification).encode("utf-8")
        try:
            self.producer.produce(
                topic=self.config.topic,
                key=notification.user_id.encode("utf-8"),
                value=value,
                headers={"type": notification.type.value},
                callback=self._on_delivery,
            )
        except (BufferError, KafkaException) as e:
            raise DispatchError(f"Cannot enqueue notification {notification.id}: {e}") from e
        self.stats.record_sent(notification.type.value)
        self.producer.poll(0)

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        self.producer.flush(timeout)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka dispatcher closed: sent=%d (%s), delivered=%d, failed=%d",
            self.stats.sent,
            ", ".join(f"{kind}={count}" for kind, count in sorted(self.stats.sent_by_type.items())) or "none",
            self.stats.delivered,
            self.stats.failed,
        )
