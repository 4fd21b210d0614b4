"""Tests for notification records, texts and the escalation policy."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from loan_pact.bootstrap import Services
from loan_pact.clock import FixedClock
from loan_pact.exceptions import NotFoundError, ValidationError
from loan_pact.models import Agreement, DeliveryMethod, NotificationType, Party
from loan_pact.notifications import EscalationPolicy, messages

USER_ID = "borrower-1"


class TestNotificationService:
    """Tests for NotificationService."""

    def test_create_dispatches(self, services: Services, dispatcher, now: datetime) -> None:
        """Test a new notification is stored and handed to the dispatcher."""
        notification = services.notifications.create(
            USER_ID, NotificationType.REMINDER, "Hi", "Pay up", agreement_id="agr-1", escalation_level=1
        )

        assert notification.created_at == now
        assert notification.delivery_method == DeliveryMethod.PUSH
        assert notification.read_status is False
        assert [n.id for n in dispatcher.sent] == [notification.id]

    def test_scheduled_in_future_not_dispatched(self, services: Services, dispatcher, now: datetime) -> None:
        """Test future notifications are only stored."""
        services.notifications.create(
            USER_ID, NotificationType.REMINDER, "Later", "Soon", scheduled_time=now + timedelta(hours=1)
        )

        assert dispatcher.sent == []
        assert len(services.notifications.list_for_user(USER_ID)) == 1

    def test_dispatch_failure_keeps_record(self, services: Services, dispatcher) -> None:
        """Test a broken channel does not lose the notification."""
        dispatcher.fail = True

        notification = services.notifications.create(USER_ID, "summary", "Weekly", "Text")

        assert services.notifications.get(notification.id) == notification

    def test_delivery_method_override(self, services: Services) -> None:
        """Test a per-notification delivery method."""
        notification = services.notifications.create(
            USER_ID, NotificationType.REMINDER, "t", "m", delivery_method=DeliveryMethod.WHATSAPP
        )

        assert notification.delivery_method == DeliveryMethod.WHATSAPP

    def test_lists_newest_first(self, services: Services, clock: FixedClock) -> None:
        """Test listings are ordered by creation time, descending."""
        first = services.notifications.create(USER_ID, NotificationType.REMINDER, "1", "m", agreement_id="a")
        clock.advance(minutes=1)
        second = services.notifications.create(USER_ID, NotificationType.PAYMENT, "2", "m", agreement_id="a")
        clock.advance(minutes=1)
        services.notifications.create("lender-1", NotificationType.PAYMENT, "3", "m")

        assert [n.id for n in services.notifications.list_for_user(USER_ID)] == [second.id, first.id]
        assert [n.id for n in services.notifications.list_for_agreement("a")] == [second.id, first.id]
        assert len(services.notifications.list_all()) == 3

    def test_read_toggle(self, services: Services) -> None:
        """Test read and unread marking."""
        notification = services.notifications.create(USER_ID, NotificationType.REMINDER, "t", "m")

        assert services.notifications.mark_read(notification.id).read_status is True
        assert services.notifications.mark_unread(notification.id).read_status is False

    def test_missing(self, services: Services) -> None:
        """Test operations on a missing notification."""
        with pytest.raises(NotFoundError):
            services.notifications.get("nope")
        with pytest.raises(NotFoundError):
            services.notifications.mark_read("nope")
        with pytest.raises(NotFoundError):
            services.notifications.remove("nope")

    def test_remove(self, services: Services) -> None:
        """Test deletion."""
        notification = services.notifications.create(USER_ID, NotificationType.REMINDER, "t", "m")

        services.notifications.remove(notification.id)

        assert services.notifications.list_all() == []

    def test_exists_since(self, services: Services, clock: FixedClock, now: datetime) -> None:
        """Test dedup lookups by type, window and scope."""
        services.notifications.create(
            USER_ID, NotificationType.ESCALATION, "t", "m", agreement_id="a", escalation_level=2
        )
        exists = services.notifications.exists_since

        assert exists(NotificationType.ESCALATION, now, agreement_id="a", escalation_level=2)
        assert not exists(NotificationType.ESCALATION, now, agreement_id="a", escalation_level=3)
        assert not exists(NotificationType.ESCALATION, now, user_id="lender-1")
        assert not exists(NotificationType.REMINDER, now, agreement_id="a")
        assert not exists(NotificationType.ESCALATION, now + timedelta(seconds=1))


class TestMessages:
    """Tests for notification texts."""

    @pytest.fixture
    def agreement(self) -> Agreement:
        return Agreement(
            id="a",
            lender_id="l",
            borrower_id="b",
            amount=Decimal("1500000"),
            interest_rate=Decimal("0.10"),
            due_date=datetime(2026, 3, 11, 17, 0),
        )

    @pytest.mark.parametrize(
        "amount, expected",
        [
            (Decimal("1500000"), "Rp 1.500.000"),
            (Decimal("1500000.00"), "Rp 1.500.000"),
            (Decimal("999"), "Rp 999"),
            (Decimal("2500.5"), "Rp 2.500,50"),
        ],
    )
    def test_format_amount(self, amount: Decimal, expected: str) -> None:
        """Test rupiah formatting."""
        assert messages.format_amount(amount) == expected

    def test_upcoming_uses_total_due(self, agreement: Agreement) -> None:
        """Test reminders quote principal plus interest."""
        title, body = messages.upcoming_reminder(agreement, "Rp")

        assert title == "Payment reminder"
        assert "Rp 1.650.000" in body
        assert "2026-03-11" in body

    def test_overdue(self, agreement: Agreement) -> None:
        """Test the overdue text names the days."""
        _, body = messages.overdue_reminder(agreement, 5, "Rp")

        assert "5 days ago" in body

    def test_escalation_per_recipient(self, agreement: Agreement) -> None:
        """Test lender and borrower get different wording."""
        lender_title, lender_body = messages.escalation_notice(agreement, 8, 2, Party.LENDER, "Rp")
        borrower_title, borrower_body = messages.escalation_notice(agreement, 8, 2, Party.BORROWER, "Rp")

        assert lender_title != borrower_title
        assert "owed to you" in lender_body
        assert "level 2" in borrower_body

    def test_weekly_summary(self) -> None:
        """Test summary text."""
        title, body = messages.weekly_summary(
            date(2026, 3, 9), (2, Decimal("3000000")), (1, Decimal("500000")), 1, "Rp"
        )

        assert title == "Weekly summary from 2026-03-09"
        assert "owed Rp 3.000.000 across 2" in body
        assert "owe Rp 500.000 across 1" in body


class TestEscalationPolicy:
    """Tests for EscalationPolicy."""

    @pytest.mark.parametrize(
        "days, level",
        [(-3, 0), (0, 0), (1, 1), (6, 1), (7, 2), (29, 2), (30, 3), (400, 3)],
    )
    def test_default_levels(self, days: int, level: int) -> None:
        """Test the default thresholds."""
        assert EscalationPolicy().level_for(days) == level

    def test_from_settings_override(self) -> None:
        """Test per-agreement overrides."""
        policy = EscalationPolicy.from_settings(
            {"thresholds": {"3": 2}, "notify_lender": False}, EscalationPolicy()
        )

        assert policy.thresholds == {3: 2}
        assert policy.notify_lender is False
        assert policy.level_for(3) == 2
        assert policy.level_for(40) == 2

    def test_from_settings_partial(self) -> None:
        """Test omitted keys fall back to the default."""
        default = EscalationPolicy()

        assert EscalationPolicy.from_settings(None, default) is default
        assert EscalationPolicy.from_settings({"notify_lender": False}, default).thresholds == {7: 2, 30: 3}

    @pytest.mark.parametrize(
        "settings",
        [
            "loud",
            {"thresholds": [7, 2]},
            {"thresholds": {"seven": 2}},
            {"thresholds": {"7": 1}},
            {"thresholds": {"0": 2}},
            {"notify_lender": "yes"},
        ],
    )
    def test_from_settings_invalid(self, settings) -> None:
        """Test malformed settings."""
        with pytest.raises(ValidationError):
            EscalationPolicy.from_settings(settings, EscalationPolicy())
