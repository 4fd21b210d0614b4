"""Agreement lifecycle: status derivation and guarded transitions.

``pending -> active -> paid``; ``overdue`` follows from the due date
passing before payment; ``disputed`` is a manual override that only
payment clears. ``paid`` is terminal.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from loan_pact.clock import Clock
from loan_pact.config import NotificationConfig
from loan_pact.exceptions import (
    AlreadyConfirmedError,
    LoanPactError,
    NotFoundError,
    StoreError,
    TerminalStateError,
    ValidationError,
)
from loan_pact.models import (
    Agreement,
    AgreementStatus,
    NotificationType,
    Party,
    RepaymentInstallment,
)
from loan_pact.models.base import new_id, parse_decimal, to_naive_local
from loan_pact.notifications import messages
from loan_pact.notifications.escalation import EscalationPolicy
from loan_pact.notifications.service import NotificationService
from loan_pact.store import AGREEMENTS, USERS, Store
from loan_pact.store.query import eq, ne

logger = logging.getLogger(__name__)

# Attempts at a conditional write before giving up on a contended record
MAX_WRITE_ATTEMPTS = 3


def derive_status(
    lender_confirmed: bool,
    borrower_confirmed: bool,
    due_date: datetime,
    paid: bool,
    now: datetime,
) -> AgreementStatus:
    """Status implied by confirmations, due date and payment."""
    if paid:
        return AgreementStatus.PAID
    if due_date < now:
        return AgreementStatus.OVERDUE
    if lender_confirmed or borrower_confirmed:
        return AgreementStatus.ACTIVE
    return AgreementStatus.PENDING


def next_status(agreement: Agreement, now: datetime, **overrides: Any) -> AgreementStatus:
    """Status of ``agreement`` after applying field ``overrides``.

    A disputed agreement stays disputed until paid.
    """
    if agreement.status == AgreementStatus.DISPUTED:
        return AgreementStatus.DISPUTED
    return derive_status(
        overrides.get("lender_confirmed", agreement.lender_confirmed),
        overrides.get("borrower_confirmed", agreement.borrower_confirmed),
        overrides.get("due_date", agreement.due_date),
        agreement.is_paid,
        now,
    )


def validate_terms(
    amount: Decimal,
    interest_rate: Decimal,
    due_date: datetime,
    repayment_schedule: list[RepaymentInstallment],
    escalation_settings: dict[str, Any] | None,
) -> None:
    """Raise ``ValidationError`` if the loan terms are unusable."""
    if amount <= 0:
        raise ValidationError("Amount must be positive")
    if interest_rate < 0:
        raise ValidationError("Interest rate must not be negative")
    if not isinstance(due_date, datetime):
        raise ValidationError("Due date must be a datetime")
    for item in repayment_schedule:
        if item.amount <= 0:
            raise ValidationError("Installment amounts must be positive")
    dates = [item.due_date for item in repayment_schedule]
    if dates != sorted(dates):
        raise ValidationError("Repayment schedule must be ordered by due date")
    EscalationPolicy.from_settings(escalation_settings, EscalationPolicy())


def coerce_schedule(schedule: list[Any] | None) -> list[RepaymentInstallment]:
    """Accept installments as models or ``{amount, due_date}`` mappings."""
    items = []
    for item in schedule or []:
        if isinstance(item, RepaymentInstallment):
            items.append(item)
            continue
        try:
            items.append(RepaymentInstallment.from_record(item))
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid repayment installment {item!r}: {e}") from e
    return items


class AgreementLifecycle:
    """Owns every status-changing write to an agreement.

    Writes are conditional updates, so two parties confirming at once
    cannot overwrite each other and a paid agreement cannot be reopened.

    Parameters
    ----------
    store : Store
        Source of truth for agreements.
    clock : Clock
        Time source for status derivation and timestamps.
    notifications : NotificationService | None
        When given, confirmations and payments notify the parties.
    verify_parties : bool
        Require lender and borrower to exist in the users table.
    """

    def __init__(
        self,
        store: Store,
        clock: Clock,
        notifications: NotificationService | None = None,
        verify_parties: bool = True,
        notification_config: NotificationConfig | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.notifications = notifications
        self.verify_parties = verify_parties
        self.currency = (notification_config or NotificationConfig()).currency

    def load(self, agreement_id: str) -> Agreement:
        """Read the live agreement or raise ``NotFoundError``."""
        record = self.store.get(AGREEMENTS, agreement_id)
        if record is None:
            raise NotFoundError(f"Agreement {agreement_id} not found")
        return Agreement.from_record(record)

    def create(
        self,
        lender_id: str,
        borrower_id: str,
        amount: Decimal | int | str,
        due_date: datetime,
        interest_rate: Decimal | int | str = 0,
        repayment_schedule: list[Any] | None = None,
        escalation_settings: dict[str, Any] | None = None,
    ) -> Agreement:
        """Create a pending agreement with neither party confirmed."""
        if not lender_id or not borrower_id:
            raise ValidationError("Both lender and borrower are required")
        if lender_id == borrower_id:
            raise ValidationError("Lender and borrower must be different users")
        try:
            amount = parse_decimal(amount)
            interest_rate = parse_decimal(interest_rate)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if isinstance(due_date, datetime):
            due_date = to_naive_local(due_date)
        schedule = coerce_schedule(repayment_schedule)
        validate_terms(amount, interest_rate, due_date, schedule, escalation_settings)

        if self.verify_parties:
            for user_id in (lender_id, borrower_id):
                user = self.store.get(USERS, user_id)
                if user is None or user.get("deleted_at") is not None:
                    raise NotFoundError(f"User {user_id} not found")

        now = self.clock.now()
        agreement = Agreement(
            id=new_id(),
            lender_id=lender_id,
            borrower_id=borrower_id,
            amount=amount,
            interest_rate=interest_rate,
            due_date=due_date,
            status=AgreementStatus.PENDING,
            repayment_schedule=schedule,
            escalation_settings=escalation_settings,
            created_at=now,
            updated_at=now,
        )
        stored = Agreement.from_record(self.store.insert(AGREEMENTS, agreement.to_record()))
        logger.info(
            "Created agreement %s: %s lends %s to %s, due %s",
            stored.id, stored.lender_id, stored.amount, stored.borrower_id, stored.due_date.date(),
        )
        return stored

    def confirm(self, agreement_id: str, party: Party | str) -> Agreement:
        """Record ``party``'s confirmation.

        Raises
        ------
        NotFoundError
            If the agreement does not exist.
        TerminalStateError
            If the agreement is paid.
        AlreadyConfirmedError
            If ``party`` has already confirmed.
        """
        party = as_party(party)
        for _ in range(MAX_WRITE_ATTEMPTS):
            agreement = self.load(agreement_id)
            ensure_open(agreement)
            if agreement.is_confirmed_by(party):
                raise AlreadyConfirmedError(
                    f"Agreement {agreement_id} already confirmed by {party.value}"
                )

            now = self.clock.now()
            status = next_status(agreement, now, **{party.flag_field: True})
            record = self.store.update(
                AGREEMENTS,
                agreement_id,
                {party.flag_field: True, "status": status.value, "updated_at": now},
                where=[
                    eq(party.flag_field, False),
                    eq("status", agreement.status.value),
                ],
            )
            if record is not None:
                confirmed = Agreement.from_record(record)
                logger.info(
                    "Agreement %s confirmed by %s (%s -> %s)",
                    agreement_id, party.value, agreement.status.value, confirmed.status.value,
                    extra={"agreement_id": agreement_id},
                )
                title, body = messages.confirmation_notice(confirmed, party, self.currency)
                self._announce(
                    confirmed.party_id(party.counterpart), NotificationType.CONFIRMATION,
                    title, body, confirmed.id,
                )
                return confirmed
            logger.debug("Confirmation of %s by %s raced another write, retrying", agreement_id, party.value)
        raise StoreError(f"Agreement {agreement_id} kept changing during confirmation")

    def mark_paid(self, agreement_id: str) -> Agreement:
        """Settle the agreement. Confirmation flags are left as they are."""
        now = self.clock.now()
        record = self.store.update(
            AGREEMENTS,
            agreement_id,
            {"status": AgreementStatus.PAID.value, "updated_at": now},
            where=[ne("status", AgreementStatus.PAID.value)],
        )
        if record is None:
            ensure_open(self.load(agreement_id))
            raise StoreError(f"Agreement {agreement_id} could not be marked as paid")

        paid = Agreement.from_record(record)
        logger.info("Agreement %s marked as paid", agreement_id)
        title, body = messages.payment_notice(paid, self.currency)
        for party in Party:
            self._announce(paid.party_id(party), NotificationType.PAYMENT, title, body, paid.id)
        return paid

    def dispute(self, agreement_id: str) -> Agreement:
        """Flag the agreement as disputed. Resolution happens elsewhere."""
        now = self.clock.now()
        record = self.store.update(
            AGREEMENTS,
            agreement_id,
            {"status": AgreementStatus.DISPUTED.value, "updated_at": now},
            where=[ne("status", AgreementStatus.PAID.value)],
        )
        if record is None:
            ensure_open(self.load(agreement_id))
            raise StoreError(f"Agreement {agreement_id} could not be disputed")
        logger.info("Agreement %s disputed", agreement_id)
        return Agreement.from_record(record)

    def refresh_status(self, agreement: Agreement, now: datetime | None = None) -> Agreement:
        """Persist the time-derived status (e.g. ``overdue``) if it changed.

        Loses gracefully to concurrent writers: when the stored status moved
        in the meantime the live record is returned untouched.
        """
        now = now or self.clock.now()
        status = next_status(agreement, now)
        if status == agreement.status or agreement.is_paid:
            return agreement
        record = self.store.update(
            AGREEMENTS,
            agreement.id,
            {"status": status.value, "updated_at": now},
            where=[eq("status", agreement.status.value)],
        )
        if record is None:
            return self.load(agreement.id)
        logger.info("Agreement %s is now %s", agreement.id, status.value)
        return Agreement.from_record(record)

    def record_qr_reference(self, agreement_id: str, reference: str) -> Agreement:
        """Point the agreement at its latest confirmation payload."""
        record = self.store.update(
            AGREEMENTS,
            agreement_id,
            {"qr_code": reference, "updated_at": self.clock.now()},
            where=[ne("status", AgreementStatus.PAID.value)],
        )
        if record is None:
            ensure_open(self.load(agreement_id))
            raise StoreError(f"Agreement {agreement_id} could not be updated")
        return Agreement.from_record(record)

    def _announce(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        agreement_id: str,
    ) -> None:
        if self.notifications is None:
            return
        try:
            self.notifications.create(
                user_id=user_id, type=type, title=title, message=message, agreement_id=agreement_id
            )
        except LoanPactError as e:
            # The transition is already committed; a lost notice is not fatal
            logger.warning("Could not notify %s about agreement %s: %s", user_id, agreement_id, e)


def as_party(party: Party | str) -> Party:
    try:
        return Party(party)
    except ValueError:
        raise ValidationError(f"Unknown party {party!r}; expected 'lender' or 'borrower'") from None


def ensure_open(agreement: Agreement) -> None:
    if agreement.is_paid:
        raise TerminalStateError(f"Agreement {agreement.id} is already paid")
