"""Agreement generator for informal loans between acquaintances."""

from __future__ import annotations

import random
from datetime import datetime, time, timedelta
from decimal import Decimal

from loan_pact.generators.base import BaseGenerator
from loan_pact.lifecycle import derive_status
from loan_pact.models import Agreement, RepaymentInstallment
from loan_pact.models.base import new_id


class AgreementGenerator(BaseGenerator):
    """Generate agreements with plausible amounts and due dates.

    Most personal loans are interest free; the rest carry a small flat rate.
    """

    # Amounts in rupiah, rounded to this step
    AMOUNT_RANGE = (100_000, 10_000_000)
    AMOUNT_STEP = 50_000
    INTEREST_RATES = [Decimal("0"), Decimal("0.02"), Decimal("0.05"), Decimal("0.10")]
    INTEREST_WEIGHTS = [0.70, 0.12, 0.12, 0.06]

    def generate(
        self,
        lender_id: str,
        borrower_id: str,
        now: datetime,
        due_in_days: int | None = None,
        lender_confirmed: bool | None = None,
        borrower_confirmed: bool | None = None,
        installments: int = 0,
    ) -> Agreement:
        """Generate one agreement.

        Parameters
        ----------
        lender_id, borrower_id : str
            Parties; must differ.
        now : datetime
            Reference time for ``created_at`` and the derived status.
        due_in_days : int | None
            Days from ``now`` to the due date (negative for overdue).
            Random between -45 and 60 when omitted.
        lender_confirmed, borrower_confirmed : bool | None
            Confirmation flags; random when omitted.
        installments : int
            Number of equal repayment installments ending on the due date.

        Returns
        -------
        Agreement
            Generated agreement, status derived from its flags and due date.
        """
        if due_in_days is None:
            due_in_days = random.randint(-45, 60)
        if lender_confirmed is None:
            lender_confirmed = random.random() < 0.8
        if borrower_confirmed is None:
            borrower_confirmed = random.random() < 0.6

        low, high = self.AMOUNT_RANGE
        amount = Decimal(random.randint(low // self.AMOUNT_STEP, high // self.AMOUNT_STEP) * self.AMOUNT_STEP)
        rate = random.choices(self.INTEREST_RATES, weights=self.INTEREST_WEIGHTS, k=1)[0]
        due_date = datetime.combine((now + timedelta(days=due_in_days)).date(), time(17, 0))
        created_at = now - timedelta(days=random.randint(1, 30))

        return Agreement(
            id=new_id(),
            lender_id=lender_id,
            borrower_id=borrower_id,
            amount=amount,
            interest_rate=rate,
            due_date=due_date,
            status=derive_status(lender_confirmed, borrower_confirmed, due_date, False, now),
            lender_confirmed=lender_confirmed,
            borrower_confirmed=borrower_confirmed,
            repayment_schedule=self._schedule(amount * (1 + rate), due_date, installments),
            created_at=created_at,
            updated_at=created_at,
        )

    def _schedule(self, total: Decimal, due_date: datetime, count: int) -> list[RepaymentInstallment]:
        """Monthly installments, the last one absorbing rounding."""
        if count <= 0:
            return []
        share = (total / count).quantize(Decimal("1"))
        items = []
        for i in range(count):
            amount = share if i < count - 1 else total - share * (count - 1)
            items.append(
                RepaymentInstallment(amount=amount, due_date=due_date - timedelta(days=30 * (count - 1 - i)))
            )
        return items
