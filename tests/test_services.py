"""Tests for the agreement and user services."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from loan_pact.bootstrap import Services
from loan_pact.clock import FixedClock
from loan_pact.exceptions import NotFoundError, StoreError, TerminalStateError, ValidationError
from loan_pact.models import AgreementStatus, Party

LENDER_ID = "lender-1"
BORROWER_ID = "borrower-1"
STRANGER_ID = "stranger-1"


class TestAgreementService:
    """Tests for AgreementService."""

    def test_create_parses_due_date(self, services: Services) -> None:
        """Test ISO due dates are accepted."""
        agreement = services.agreements.create(LENDER_ID, BORROWER_ID, "200000", "2026-04-01T17:00:00")

        assert agreement.due_date == datetime(2026, 4, 1, 17, 0)

    def test_create_bad_due_date(self, services: Services) -> None:
        """Test an unparseable due date."""
        with pytest.raises(ValidationError):
            services.agreements.create(LENDER_ID, BORROWER_ID, "200000", "next friday")

    @pytest.mark.parametrize("suffix", ["Z", "+07:00"])
    def test_create_with_offset_stores_local_time(self, services: Services, suffix: str) -> None:
        """Test due dates with an offset become naive local time."""
        agreement = services.agreements.create(LENDER_ID, BORROWER_ID, "200000", f"2026-02-28T10:00:00{suffix}")
        expected = datetime.fromisoformat(f"2026-02-28T10:00:00{suffix}".replace("Z", "+00:00"))

        assert agreement.due_date.tzinfo is None
        assert agreement.due_date == expected.astimezone().replace(tzinfo=None)

    def test_offset_due_date_in_overdue_pass(self, services: Services, make_agreement) -> None:
        """Test an agreement created with a UTC due date is swept with the rest."""
        utc_due = services.agreements.create(LENDER_ID, BORROWER_ID, "200000", "2026-02-28T10:00:00Z")
        local_due = make_agreement(due_in_days=-5)

        report = services.scheduler.run_overdue_pass()
        reminded = {n.agreement_id for n in services.notifications.list_for_user(BORROWER_ID)}

        assert report.failed == 0
        assert reminded >= {utc_due.id, local_due.id}

    def test_confirm_with_aware_due_date(self, services: Services) -> None:
        """Test an aware datetime passed to the lifecycle can still be confirmed."""
        due = datetime(2026, 4, 1, 17, 0, tzinfo=timezone(timedelta(hours=7)))
        agreement = services.lifecycle.create(LENDER_ID, BORROWER_ID, "200000", due)

        confirmed = services.lifecycle.confirm(agreement.id, Party.LENDER)

        assert confirmed.status == AgreementStatus.ACTIVE
        assert confirmed.due_date.tzinfo is None

    def test_list_for_user(self, services: Services, make_agreement, clock: FixedClock) -> None:
        """Test agreements are listed for either side, newest first."""
        first = make_agreement()
        clock.advance(minutes=1)
        second = services.agreements.create(BORROWER_ID, STRANGER_ID, "50000", clock.now() + timedelta(days=3))

        assert [a.id for a in services.agreements.list_for_user(BORROWER_ID)] == [second.id, first.id]
        assert [a.id for a in services.agreements.list_for_user(LENDER_ID)] == [first.id]
        assert len(services.agreements.list_all()) == 2

    def test_update_terms(self, services: Services, make_agreement) -> None:
        """Test editable terms change and confirmations stay."""
        agreement = make_agreement()
        services.agreements.confirm(agreement.id, Party.LENDER)

        updated = services.agreements.update_terms(
            agreement.id,
            {"amount": "2000000", "interest_rate": "0.02", "escalation_settings": {"notify_lender": False}},
        )

        assert updated.amount == Decimal("2000000")
        assert updated.interest_rate == Decimal("0.02")
        assert updated.escalation_settings == {"notify_lender": False}
        assert updated.lender_confirmed
        assert updated.status == AgreementStatus.ACTIVE

    def test_update_due_date_rederives_status(self, services: Services, make_agreement, now: datetime) -> None:
        """Test moving the due date into the past makes the agreement overdue."""
        agreement = make_agreement()

        updated = services.agreements.update_terms(agreement.id, {"due_date": now - timedelta(days=1)})

        assert updated.status == AgreementStatus.OVERDUE

    def test_update_schedule(self, services: Services, make_agreement) -> None:
        """Test replacing the repayment schedule."""
        agreement = make_agreement()

        updated = services.agreements.update_terms(
            agreement.id, {"repayment_schedule": [{"amount": "1500000", "due_date": "2026-03-20T00:00:00"}]}
        )

        assert len(updated.repayment_schedule) == 1

    @pytest.mark.parametrize(
        "changes",
        [
            {"status": "paid"},
            {"lender_confirmed": True},
            {"amount": "0"},
            {"interest_rate": "-1"},
            {"due_date": "soon"},
        ],
    )
    def test_update_rejected(self, services: Services, make_agreement, changes: dict) -> None:
        """Test forbidden keys and invalid values."""
        with pytest.raises(ValidationError):
            services.agreements.update_terms(make_agreement().id, changes)

    def test_update_after_paid(self, services: Services, make_agreement) -> None:
        """Test paid agreements are frozen."""
        agreement = make_agreement()
        services.agreements.mark_paid(agreement.id)

        with pytest.raises(TerminalStateError):
            services.agreements.update_terms(agreement.id, {"amount": "1"})

    def test_update_keeps_concurrent_confirmation(self, services: Services, make_agreement, store) -> None:
        """Test a confirmation landing mid-update is not overwritten."""
        agreement = make_agreement()
        original_update = store.update
        term_writes = []

        def racing_update(table, record_id, changes, where=()):
            if "amount" in changes:
                if not term_writes:
                    services.lifecycle.confirm(record_id, Party.LENDER)
                term_writes.append(changes)
            return original_update(table, record_id, changes, where)

        store.update = racing_update
        updated = services.agreements.update_terms(agreement.id, {"amount": "2000000"})

        assert len(term_writes) == 2
        assert updated.lender_confirmed is True
        assert updated.status == AgreementStatus.ACTIVE
        assert updated.amount == Decimal("2000000")

    def test_update_keeps_concurrent_dispute(self, services: Services, make_agreement, store) -> None:
        """Test a dispute landing mid-update stays in place."""
        agreement = make_agreement()
        original_update = store.update
        raced = []

        def racing_update(table, record_id, changes, where=()):
            if "amount" in changes and not raced:
                raced.append(True)
                services.lifecycle.dispute(record_id)
            return original_update(table, record_id, changes, where)

        store.update = racing_update
        updated = services.agreements.update_terms(agreement.id, {"amount": "2000000"})

        assert updated.status == AgreementStatus.DISPUTED
        assert updated.amount == Decimal("2000000")

    def test_update_gives_up_under_contention(self, services: Services, make_agreement, store) -> None:
        """Test endless contention surfaces as StoreError."""
        agreement = make_agreement()
        store.update = lambda *args, **kwargs: None

        with pytest.raises(StoreError):
            services.agreements.update_terms(agreement.id, {"amount": "2000000"})

    def test_dispute(self, services: Services, make_agreement) -> None:
        """Test disputing through the service."""
        assert services.agreements.dispute(make_agreement().id).status == AgreementStatus.DISPUTED

    def test_remove(self, services: Services, make_agreement) -> None:
        """Test hard deletion."""
        agreement = make_agreement()

        services.agreements.remove(agreement.id)

        with pytest.raises(NotFoundError):
            services.agreements.get(agreement.id)
        with pytest.raises(NotFoundError):
            services.agreements.remove(agreement.id)


class TestUserService:
    """Tests for UserService."""

    def test_create(self, services: Services, now: datetime) -> None:
        """Test registration."""
        user = services.users.create("Dewi Lestari", "dewi@example.com", phone="+62 812 0000 0000")

        assert user.created_at == now
        assert services.users.get(user.id) == user

    def test_duplicate_email(self, services: Services) -> None:
        """Test emails are unique."""
        with pytest.raises(ValidationError):
            services.users.create("Budi Lain", "budi@example.com")

    def test_required_fields(self, services: Services) -> None:
        """Test name and email are required."""
        with pytest.raises(ValidationError):
            services.users.create("", "x@example.com")

    def test_soft_delete(self, services: Services) -> None:
        """Test removed users disappear from lookups but keep their row."""
        removed = services.users.remove(STRANGER_ID)

        assert removed.deleted_at is not None
        with pytest.raises(NotFoundError):
            services.users.get(STRANGER_ID)
        with pytest.raises(NotFoundError):
            services.users.remove(STRANGER_ID)
        assert {u.id for u in services.users.list_active()} == {LENDER_ID, BORROWER_ID}
        assert services.store.get("users", STRANGER_ID) is not None
