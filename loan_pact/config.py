"""Configuration management for loan-pact."""

from dataclasses import dataclass, field
from datetime import time
from pathlib import Path
from typing import Any

from loan_pact.exceptions import ConfigurationError

STORE_BACKENDS = ("memory", "postgres")
DISPATCH_BACKENDS = ("console", "jsonl", "kafka")
DELIVERY_METHODS = ("push", "email", "whatsapp")
LOG_FORMATS = ("standard", "json")


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "loanpact"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class KafkaConfig:
    """Kafka producer configuration for notification dispatch."""

    bootstrap_servers: str = "localhost:9092"
    topic: str = "loanpact.notifications"
    acks: str = "all"
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class ConfirmationConfig:
    """QR confirmation settings."""

    validity_ms: int = 3_600_000
    code_length: int = 8


@dataclass
class SchedulerConfig:
    """Cadence and escalation settings for the notification sweep."""

    upcoming_at: time = time(8, 0)
    overdue_at: time = time(9, 0)
    summary_weekday: int = 6  # Monday=0 ... Sunday=6
    summary_at: time = time(12, 0)
    poll_seconds: float = 30.0
    dedup_upcoming: bool = False
    # days overdue -> escalation level
    escalation_thresholds: dict[int, int] = field(default_factory=lambda: {7: 2, 30: 3})
    notify_lender_on_escalation: bool = True


@dataclass
class NotificationConfig:
    """Defaults applied to generated notifications."""

    delivery_method: str = "push"
    currency: str = "Rp"


@dataclass
class LoanPactConfig:
    """Main configuration for loan-pact."""

    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    confirmation: ConfirmationConfig = field(default_factory=ConfirmationConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    store_backend: str = "memory"
    dispatch_backend: str = "console"
    outbox_dir: Path = field(default_factory=lambda: Path("outbox"))
    log_level: str = "INFO"
    log_format: str = "standard"
    auth_tokens: dict[str, str] = field(default_factory=dict)

    def validate(self) -> "LoanPactConfig":
        """Check enumerated settings, raising ``ConfigurationError`` on bad values."""
        if self.store_backend not in STORE_BACKENDS:
            raise ConfigurationError(
                f"Unknown store backend {self.store_backend!r}; expected one of {STORE_BACKENDS}"
            )
        if self.dispatch_backend not in DISPATCH_BACKENDS:
            raise ConfigurationError(
                f"Unknown dispatch backend {self.dispatch_backend!r}; expected one of {DISPATCH_BACKENDS}"
            )
        if self.notifications.delivery_method not in DELIVERY_METHODS:
            raise ConfigurationError(
                f"Unknown delivery method {self.notifications.delivery_method!r}"
            )
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(f"Unknown log format {self.log_format!r}; expected one of {LOG_FORMATS}")
        if self.confirmation.validity_ms <= 0:
            raise ConfigurationError("QR validity window must be positive")
        if not 0 <= self.scheduler.summary_weekday <= 6:
            raise ConfigurationError("Summary weekday must be between 0 (Monday) and 6 (Sunday)")
        return self

    @classmethod
    def from_env(cls) -> "LoanPactConfig":
        """Create config from environment variables."""
        import json
        import os

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=_parse_int("POSTGRES_PORT", os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "loanpact"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            topic=os.getenv("KAFKA_TOPIC", "loanpact.notifications"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        confirmation = ConfirmationConfig(
            validity_ms=_parse_int("LOAN_PACT_QR_VALIDITY_MS", os.getenv("LOAN_PACT_QR_VALIDITY_MS", "3600000")),
        )

        scheduler = SchedulerConfig(
            upcoming_at=parse_time_of_day(os.getenv("LOAN_PACT_UPCOMING_AT", "08:00")),
            overdue_at=parse_time_of_day(os.getenv("LOAN_PACT_OVERDUE_AT", "09:00")),
            summary_weekday=_parse_int("LOAN_PACT_SUMMARY_WEEKDAY", os.getenv("LOAN_PACT_SUMMARY_WEEKDAY", "6")),
            summary_at=parse_time_of_day(os.getenv("LOAN_PACT_SUMMARY_AT", "12:00")),
            dedup_upcoming=os.getenv("LOAN_PACT_DEDUP_UPCOMING", "false").lower() == "true",
        )

        thresholds_str = os.getenv("LOAN_PACT_ESCALATION_THRESHOLDS")
        if thresholds_str:
            try:
                scheduler.escalation_thresholds = {
                    int(days): int(level) for days, level in json.loads(thresholds_str).items()
                }
            except (ValueError, AttributeError) as e:
                raise ConfigurationError(f"Invalid LOAN_PACT_ESCALATION_THRESHOLDS: {e}") from e

        notifications = NotificationConfig(
            delivery_method=os.getenv("LOAN_PACT_DELIVERY_METHOD", "push"),
            currency=os.getenv("LOAN_PACT_CURRENCY", "Rp"),
        )

        tokens_str = os.getenv("LOAN_PACT_AUTH_TOKENS")
        try:
            auth_tokens = json.loads(tokens_str) if tokens_str else {}
        except ValueError as e:
            raise ConfigurationError(f"Invalid LOAN_PACT_AUTH_TOKENS: {e}") from e
        if not isinstance(auth_tokens, dict):
            raise ConfigurationError("LOAN_PACT_AUTH_TOKENS must be a JSON object")

        return cls(
            postgres=postgres,
            kafka=kafka,
            confirmation=confirmation,
            scheduler=scheduler,
            notifications=notifications,
            store_backend=os.getenv("LOAN_PACT_STORE", "memory"),
            dispatch_backend=os.getenv("LOAN_PACT_DISPATCH", "console"),
            outbox_dir=Path(os.getenv("LOAN_PACT_OUTBOX_DIR", "outbox")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
            auth_tokens=auth_tokens,
        ).validate()


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` into a ``datetime.time``."""
    try:
        hour, minute = value.split(":")
        return time(int(hour), int(minute))
    except ValueError as e:
        raise ConfigurationError(f"Invalid time of day {value!r}, expected HH:MM") from e


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e
