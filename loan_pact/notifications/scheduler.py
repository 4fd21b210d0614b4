"""Periodic reminder and escalation sweep."""

from __future__ import annotations

import logging
import time as _time
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable

from loan_pact.clock import Clock
from loan_pact.config import NotificationConfig, SchedulerConfig
from loan_pact.exceptions import LoanPactError
from loan_pact.lifecycle import AgreementLifecycle
from loan_pact.models import Agreement, AgreementStatus, NotificationType, Party, User
from loan_pact.notifications import messages
from loan_pact.notifications.escalation import OVERDUE_LEVEL, EscalationPolicy
from loan_pact.notifications.service import NotificationService
from loan_pact.store import AGREEMENTS, USERS, Store
from loan_pact.store.query import any_of, eq, gte, is_null, lt, ne

logger = logging.getLogger(__name__)

# Level of the day-before reminder
UPCOMING_LEVEL = 0


@dataclass
class SweepReport:
    """Outcome counters for one pass."""

    name: str
    examined: int = 0
    emitted: int = 0
    skipped: int = 0
    failed: int = 0
    started_at: float | None = None
    finished_at: float | None = None

    @property
    def duration(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return self.finished_at - self.started_at


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def days_overdue(agreement: Agreement, today: date) -> int:
    return (today - agreement.due_date.date()).days


class EscalationScheduler:
    """Best-effort batch passes over agreements and users.

    Each pass reads its candidates fresh from the store. A failure on one
    agreement or user is logged and counted; the pass moves on.

    Parameters
    ----------
    store : Store
        Source of agreements and users.
    notifications : NotificationService
        Used to deduplicate and to emit notifications.
    lifecycle : AgreementLifecycle
        Persists the ``overdue`` status found by the overdue pass.
    clock : Clock
        Defines "today".
    config : SchedulerConfig | None
        Dedup switch and default escalation thresholds.
    notification_config : NotificationConfig | None
        Currency label used in message texts.
    """

    def __init__(
        self,
        store: Store,
        notifications: NotificationService,
        lifecycle: AgreementLifecycle,
        clock: Clock,
        config: SchedulerConfig | None = None,
        notification_config: NotificationConfig | None = None,
    ) -> None:
        self.store = store
        self.notifications = notifications
        self.lifecycle = lifecycle
        self.clock = clock
        self.config = config or SchedulerConfig()
        self.currency = (notification_config or NotificationConfig()).currency
        self.default_policy = EscalationPolicy(
            thresholds=dict(self.config.escalation_thresholds),
            notify_lender=self.config.notify_lender_on_escalation,
        )

    def sweep(self, include_summary: bool = False) -> list[SweepReport]:
        """Run the daily passes (and optionally the summary pass) once."""
        reports = [self.run_upcoming_due_pass(), self.run_overdue_pass()]
        if include_summary:
            reports.append(self.run_summary_pass())
        return reports

    def run_upcoming_due_pass(self) -> SweepReport:
        """Remind borrowers whose agreement is due tomorrow."""
        now = self.clock.now()
        today = now.date()
        tomorrow = today + timedelta(days=1)
        midnight = start_of_day(today)

        def handle(record: dict, report: SweepReport) -> None:
            agreement = Agreement.from_record(record)
            if agreement.due_date.date() != tomorrow:
                report.skipped += 1
                return
            if self.config.dedup_upcoming and self.notifications.exists_since(
                NotificationType.REMINDER, midnight,
                agreement_id=agreement.id, escalation_level=UPCOMING_LEVEL,
            ):
                report.skipped += 1
                return
            title, body = messages.upcoming_reminder(agreement, self.currency)
            self.notifications.create(
                user_id=agreement.borrower_id,
                agreement_id=agreement.id,
                type=NotificationType.REMINDER,
                title=title,
                message=body,
                escalation_level=UPCOMING_LEVEL,
            )
            report.emitted += 1

        return self._run(
            "upcoming_due",
            lambda: self.store.query(
                AGREEMENTS,
                [
                    gte("due_date", midnight),
                    lt("due_date", start_of_day(tomorrow + timedelta(days=1))),
                    ne("status", AgreementStatus.PAID.value),
                ],
            ),
            handle,
        )

    def run_overdue_pass(self) -> SweepReport:
        """Send at most one overdue reminder per agreement per day, then escalate."""
        now = self.clock.now()
        today = now.date()
        midnight = start_of_day(today)

        def handle(record: dict, report: SweepReport) -> None:
            agreement = self.lifecycle.refresh_status(Agreement.from_record(record), now)
            if agreement.is_paid:
                report.skipped += 1
                return
            overdue_days = days_overdue(agreement, today)

            if self.notifications.exists_since(
                NotificationType.REMINDER, midnight, agreement_id=agreement.id
            ):
                report.skipped += 1
            else:
                title, body = messages.overdue_reminder(agreement, overdue_days, self.currency)
                self.notifications.create(
                    user_id=agreement.borrower_id,
                    agreement_id=agreement.id,
                    type=NotificationType.REMINDER,
                    title=title,
                    message=body,
                    escalation_level=OVERDUE_LEVEL,
                )
                report.emitted += 1

            report.emitted += self._escalate(agreement, overdue_days)

        return self._run(
            "overdue",
            lambda: self.store.query(
                AGREEMENTS,
                [lt("due_date", midnight), ne("status", AgreementStatus.PAID.value)],
            ),
            handle,
        )

    def _escalate(self, agreement: Agreement, overdue_days: int) -> int:
        """Emit escalation notices for a newly reached level, once per recipient."""
        policy = EscalationPolicy.from_settings(agreement.escalation_settings, self.default_policy)
        level = policy.level_for(overdue_days)
        if level <= OVERDUE_LEVEL:
            return 0

        recipients = [Party.BORROWER] + ([Party.LENDER] if policy.notify_lender else [])
        emitted = 0
        for party in recipients:
            user_id = agreement.party_id(party)
            if self.notifications.exists_since(
                NotificationType.ESCALATION, agreement.created_at or datetime.min,
                agreement_id=agreement.id, user_id=user_id, escalation_level=level,
            ):
                continue
            title, body = messages.escalation_notice(agreement, overdue_days, level, party, self.currency)
            self.notifications.create(
                user_id=user_id,
                agreement_id=agreement.id,
                type=NotificationType.ESCALATION,
                title=title,
                message=body,
                escalation_level=level,
            )
            emitted += 1
        if emitted:
            logger.info("Agreement %s escalated to level %d", agreement.id, level)
        return emitted

    def run_summary_pass(self) -> SweepReport:
        """One summary per active user per ISO week."""
        now = self.clock.now()
        today = now.date()
        period_start = today - timedelta(days=today.weekday())
        since = start_of_day(period_start)

        def handle(record: dict, report: SweepReport) -> None:
            user = User.from_record(record)
            if self.notifications.exists_since(NotificationType.SUMMARY, since, user_id=user.id):
                report.skipped += 1
                return
            title, body = self._compose_summary(user, period_start, now)
            self.notifications.create(
                user_id=user.id,
                type=NotificationType.SUMMARY,
                title=title,
                message=body,
            )
            report.emitted += 1

        return self._run(
            "summary",
            lambda: self.store.query(USERS, [is_null("deleted_at")]),
            handle,
        )

    def _compose_summary(self, user: User, period_start: date, now: datetime) -> tuple[str, str]:
        records = self.store.query(
            AGREEMENTS,
            [
                any_of(eq("lender_id", user.id), eq("borrower_id", user.id)),
                ne("status", AgreementStatus.PAID.value),
            ],
        )
        lent_count, lent_total = 0, Decimal("0")
        owed_count, owed_total = 0, Decimal("0")
        overdue = 0
        for record in records:
            agreement = Agreement.from_record(record)
            if agreement.lender_id == user.id:
                lent_count += 1
                lent_total += agreement.total_due
            else:
                owed_count += 1
                owed_total += agreement.total_due
            if agreement.due_date < now:
                overdue += 1
        return messages.weekly_summary(
            period_start, (lent_count, lent_total), (owed_count, owed_total), overdue, self.currency
        )

    def _run(
        self,
        name: str,
        load: Callable[[], list[dict]],
        handle: Callable[[dict, SweepReport], None],
    ) -> SweepReport:
        report = SweepReport(name=name, started_at=_time.monotonic())
        try:
            records = load()
        except LoanPactError:
            logger.exception("[%s] Could not load candidates, pass aborted", name, extra={"sweep": name})
            report.failed += 1
            report.finished_at = _time.monotonic()
            return report

        for record in records:
            report.examined += 1
            try:
                handle(record, report)
            except LoanPactError:
                report.failed += 1
                logger.exception(
                    "[%s] Failed on %s, continuing", name, record.get("id"), extra={"sweep": name}
                )
            except Exception:
                # Malformed rows must not stop the rest of the pass
                report.failed += 1
                logger.exception(
                    "[%s] Unexpected error on %s, continuing", name, record.get("id"), extra={"sweep": name}
                )

        report.finished_at = _time.monotonic()
        logger.info(
            "[%s] examined=%d emitted=%d skipped=%d failed=%d (%.2fs)",
            name, report.examined, report.emitted, report.skipped, report.failed, report.duration,
            extra={"sweep": name},
        )
        return report
