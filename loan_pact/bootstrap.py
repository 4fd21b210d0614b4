"""Wire configuration into a ready set of services."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from loan_pact.api import AgreementApi, ConfirmationApi
from loan_pact.auth import StaticTokenAuthenticator
from loan_pact.clock import Clock, SystemClock
from loan_pact.config import LoanPactConfig
from loan_pact.confirmation import ConfirmationProtocol
from loan_pact.dispatch import ConsoleDispatcher, Dispatcher, JsonLinesDispatcher, KafkaDispatcher
from loan_pact.exceptions import ConfigurationError
from loan_pact.lifecycle import AgreementLifecycle
from loan_pact.notifications import NotificationService
from loan_pact.notifications.scheduler import EscalationScheduler
from loan_pact.services import AgreementService, UserService
from loan_pact.store import InMemoryStore, PostgresStore, Store

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a process needs, sharing one store, dispatcher and clock."""

    config: LoanPactConfig
    store: Store
    dispatcher: Dispatcher
    clock: Clock
    notifications: NotificationService
    lifecycle: AgreementLifecycle
    protocol: ConfirmationProtocol
    agreements: AgreementService
    users: UserService
    scheduler: EscalationScheduler
    confirmation_api: ConfirmationApi
    agreement_api: AgreementApi

    def close(self) -> None:
        self.dispatcher.close()


def build_store(config: LoanPactConfig) -> Store:
    if config.store_backend == "memory":
        return InMemoryStore()
    if config.store_backend == "postgres":
        return PostgresStore(config.postgres.connection_string)
    raise ConfigurationError(f"Unknown store backend {config.store_backend!r}")


def build_dispatcher(config: LoanPactConfig) -> Dispatcher:
    if config.dispatch_backend == "console":
        return ConsoleDispatcher()
    if config.dispatch_backend == "jsonl":
        return JsonLinesDispatcher(config.outbox_dir)
    if config.dispatch_backend == "kafka":
        return KafkaDispatcher(config.kafka)
    raise ConfigurationError(f"Unknown dispatch backend {config.dispatch_backend!r}")


def build_services(
    config: LoanPactConfig | None = None,
    *,
    store: Store | None = None,
    dispatcher: Dispatcher | None = None,
    clock: Clock | None = None,
) -> Services:
    """Build the service graph.

    Parameters
    ----------
    config : LoanPactConfig | None
        Defaults to ``LoanPactConfig()`` (in-memory store, console output).
    store, dispatcher, clock
        Overrides for the configured backends, mainly for tests.

    Returns
    -------
    Services
        Connected services.
    """
    config = (config or LoanPactConfig()).validate()
    store = store if store is not None else build_store(config)
    dispatcher = dispatcher if dispatcher is not None else build_dispatcher(config)
    clock = clock or SystemClock()

    notifications = NotificationService(store, dispatcher, clock, config.notifications)
    lifecycle = AgreementLifecycle(
        store, clock, notifications=notifications, notification_config=config.notifications
    )
    protocol = ConfirmationProtocol(lifecycle, clock, config.confirmation)
    agreements = AgreementService(store, lifecycle)
    users = UserService(store, clock)
    scheduler = EscalationScheduler(
        store, notifications, lifecycle, clock, config.scheduler, config.notifications
    )
    authenticator = StaticTokenAuthenticator(config.auth_tokens)

    logger.info(
        "Services ready (store=%s, dispatch=%s)", config.store_backend, config.dispatch_backend
    )
    return Services(
        config=config,
        store=store,
        dispatcher=dispatcher,
        clock=clock,
        notifications=notifications,
        lifecycle=lifecycle,
        protocol=protocol,
        agreements=agreements,
        users=users,
        scheduler=scheduler,
        confirmation_api=ConfirmationApi(authenticator, protocol),
        agreement_api=AgreementApi(authenticator, agreements, notifications),
    )
