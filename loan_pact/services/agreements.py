"""Agreement CRUD on top of the lifecycle."""

from __future__ import annotations

import logging
from typing import Any

from loan_pact.exceptions import NotFoundError, StoreError, ValidationError
from loan_pact.lifecycle import (
    MAX_WRITE_ATTEMPTS,
    AgreementLifecycle,
    coerce_schedule,
    ensure_open,
    next_status,
    validate_terms,
)
from loan_pact.models import Agreement, Party
from loan_pact.models.base import parse_datetime, parse_decimal
from loan_pact.store import AGREEMENTS, Store
from loan_pact.store.query import any_of, eq

logger = logging.getLogger(__name__)

# Terms a party may still change before payment
EDITABLE_TERMS = ("amount", "interest_rate", "due_date", "repayment_schedule", "escalation_settings")


class AgreementService:
    """Read and edit agreements; status changes go through ``lifecycle``."""

    def __init__(self, store: Store, lifecycle: AgreementLifecycle) -> None:
        self.store = store
        self.lifecycle = lifecycle

    def create(self, lender_id: str, borrower_id: str, amount, due_date, **terms: Any) -> Agreement:
        try:
            due_date = parse_datetime(due_date)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid due date: {e}") from e
        return self.lifecycle.create(lender_id, borrower_id, amount, due_date, **terms)

    def get(self, agreement_id: str) -> Agreement:
        return self.lifecycle.load(agreement_id)

    def list_all(self) -> list[Agreement]:
        records = self.store.query(AGREEMENTS, order_by="created_at", descending=True)
        return [Agreement.from_record(r) for r in records]

    def list_for_user(self, user_id: str) -> list[Agreement]:
        """Agreements where ``user_id`` is lender or borrower, newest first."""
        records = self.store.query(
            AGREEMENTS,
            [any_of(eq("lender_id", user_id), eq("borrower_id", user_id))],
            order_by="created_at",
            descending=True,
        )
        return [Agreement.from_record(r) for r in records]

    def confirm(self, agreement_id: str, party: Party | str) -> Agreement:
        return self.lifecycle.confirm(agreement_id, party)

    def mark_paid(self, agreement_id: str) -> Agreement:
        return self.lifecycle.mark_paid(agreement_id)

    def dispute(self, agreement_id: str) -> Agreement:
        return self.lifecycle.dispute(agreement_id)

    def update_terms(self, agreement_id: str, changes: dict[str, Any]) -> Agreement:
        """Change loan terms of an unpaid agreement.

        Confirmation flags are not reset; the status is re-derived so that
        moving the due date can take an agreement in or out of ``overdue``.

        Raises
        ------
        ValidationError
            On unknown keys or invalid values.
        TerminalStateError
            If the agreement is paid.
        StoreError
            If the agreement keeps changing under concurrent writes.
        """
        unknown = set(changes) - set(EDITABLE_TERMS)
        if unknown:
            raise ValidationError(f"Cannot update {', '.join(sorted(unknown))}")

        for _ in range(MAX_WRITE_ATTEMPTS):
            agreement = self.lifecycle.load(agreement_id)
            ensure_open(agreement)

            try:
                amount = parse_decimal(changes.get("amount", agreement.amount))
                interest_rate = parse_decimal(changes.get("interest_rate", agreement.interest_rate))
                due_date = parse_datetime(changes.get("due_date", agreement.due_date))
            except (TypeError, ValueError) as e:
                raise ValidationError(str(e)) from e
            schedule = (
                coerce_schedule(changes["repayment_schedule"])
                if "repayment_schedule" in changes
                else agreement.repayment_schedule
            )
            settings = changes.get("escalation_settings", agreement.escalation_settings)
            validate_terms(amount, interest_rate, due_date, schedule, settings)

            now = self.lifecycle.clock.now()
            status = next_status(agreement, now, due_date=due_date)
            # Status is derived from the flags read above, so both must be unchanged
            record = self.store.update(
                AGREEMENTS,
                agreement_id,
                {
                    "amount": amount,
                    "interest_rate": interest_rate,
                    "due_date": due_date,
                    "repayment_schedule": [item.to_record() for item in schedule],
                    "escalation_settings": settings,
                    "status": status.value,
                    "updated_at": now,
                },
                where=[
                    eq("status", agreement.status.value),
                    eq("lender_confirmed", agreement.lender_confirmed),
                    eq("borrower_confirmed", agreement.borrower_confirmed),
                ],
            )
            if record is not None:
                logger.info(
                    "Updated terms of agreement %s: %s", agreement_id, ", ".join(sorted(changes)),
                    extra={"agreement_id": agreement_id},
                )
                return Agreement.from_record(record)
            logger.debug("Term update of %s raced another write, retrying", agreement_id)
        raise StoreError(f"Agreement {agreement_id} kept changing during the update")

    def remove(self, agreement_id: str) -> None:
        if not self.store.delete(AGREEMENTS, agreement_id):
            raise NotFoundError(f"Agreement {agreement_id} not found")
        logger.info("Removed agreement %s", agreement_id)
