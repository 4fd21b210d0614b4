"""Notification records and their hand-off to a dispatcher."""

import logging
from datetime import datetime

from loan_pact.clock import Clock
from loan_pact.config import NotificationConfig
from loan_pact.dispatch.base import Dispatcher
from loan_pact.exceptions import DispatchError, NotFoundError
from loan_pact.models import DeliveryMethod, Notification, NotificationType
from loan_pact.models.base import new_id
from loan_pact.store import NOTIFICATIONS, Store
from loan_pact.store.query import eq, gte

logger = logging.getLogger(__name__)


class NotificationService:
    """Create, list and toggle notifications.

    Creating a notification is one insert into the store followed by a
    fire-and-forget dispatch. Content is never updated afterwards; only
    ``read_status`` changes.
    """

    def __init__(
        self,
        store: Store,
        dispatcher: Dispatcher,
        clock: Clock,
        config: NotificationConfig | None = None,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock
        self.config = config or NotificationConfig()

    def create(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        agreement_id: str | None = None,
        escalation_level: int = 0,
        delivery_method: DeliveryMethod | None = None,
        scheduled_time: datetime | None = None,
    ) -> Notification:
        """Persist a notification and dispatch it unless it is scheduled for later.

        Dispatch failures are logged; the stored record stands.
        """
        now = self.clock.now()
        notification = Notification(
            id=new_id(),
            user_id=user_id,
            agreement_id=agreement_id,
            type=NotificationType(type),
            title=title,
            message=message,
            delivery_method=DeliveryMethod(delivery_method or self.config.delivery_method),
            escalation_level=escalation_level,
            scheduled_time=scheduled_time,
            created_at=now,
        )
        stored = Notification.from_record(self.store.insert(NOTIFICATIONS, notification.to_record()))
        logger.debug(
            "Created %s notification %s for user %s (level %d)",
            stored.type.value, stored.id, stored.user_id, stored.escalation_level,
        )

        if scheduled_time is None or scheduled_time <= now:
            try:
                self.dispatcher.send(stored)
            except DispatchError as e:
                logger.warning(
                    "Dispatch of notification %s failed: %s", stored.id, e,
                    extra={"notification_id": stored.id, "user_id": stored.user_id},
                )
        return stored

    def get(self, notification_id: str) -> Notification:
        record = self.store.get(NOTIFICATIONS, notification_id)
        if record is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        return Notification.from_record(record)

    def list_all(self) -> list[Notification]:
        return self._list([])

    def list_for_user(self, user_id: str) -> list[Notification]:
        return self._list([eq("user_id", user_id)])

    def list_for_agreement(self, agreement_id: str) -> list[Notification]:
        return self._list([eq("agreement_id", agreement_id)])

    def _list(self, conditions: list) -> list[Notification]:
        records = self.store.query(NOTIFICATIONS, conditions, order_by="created_at", descending=True)
        return [Notification.from_record(r) for r in records]

    def mark_read(self, notification_id: str) -> Notification:
        return self._set_read(notification_id, True)

    def mark_unread(self, notification_id: str) -> Notification:
        return self._set_read(notification_id, False)

    def _set_read(self, notification_id: str, read: bool) -> Notification:
        record = self.store.update(NOTIFICATIONS, notification_id, {"read_status": read})
        if record is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        return Notification.from_record(record)

    def remove(self, notification_id: str) -> None:
        if not self.store.delete(NOTIFICATIONS, notification_id):
            raise NotFoundError(f"Notification {notification_id} not found")

    def exists_since(
        self,
        type: NotificationType,
        since: datetime,
        agreement_id: str | None = None,
        user_id: str | None = None,
        escalation_level: int | None = None,
    ) -> bool:
        """Whether a matching notification was created at or after ``since``."""
        conditions = [eq("type", NotificationType(type).value), gte("created_at", since)]
        if agreement_id is not None:
            conditions.append(eq("agreement_id", agreement_id))
        if user_id is not None:
            conditions.append(eq("user_id", user_id))
        if escalation_level is not None:
            conditions.append(eq("escalation_level", escalation_level))
        return bool(self.store.query(NOTIFICATIONS, conditions, limit=1))
