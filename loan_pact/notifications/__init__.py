"""Notification records, message texts and the escalation sweep.

The scheduler lives in ``loan_pact.notifications.scheduler`` and the
periodic trigger in ``loan_pact.notifications.runner``.
"""

from loan_pact.notifications.escalation import EscalationPolicy
from loan_pact.notifications.service import NotificationService

__all__ = ["EscalationPolicy", "NotificationService"]
