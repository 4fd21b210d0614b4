"""Titles and bodies of generated notifications."""

from datetime import date
from decimal import Decimal

from loan_pact.models import Agreement, Party


def format_amount(amount: Decimal, currency: str = "Rp") -> str:
    """Render an amount with dot thousands separators, e.g. ``Rp 1.500.000``."""
    places = 0 if amount == amount.to_integral_value() else 2
    text = f"{amount:,.{places}f}"
    # 1,500,000.50 -> 1.500.000,50
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{currency} {text}"


def upcoming_reminder(agreement: Agreement, currency: str) -> tuple[str, str]:
    return (
        "Payment reminder",
        f"Your debt of {format_amount(agreement.total_due, currency)} is due tomorrow "
        f"({agreement.due_date.date().isoformat()}).",
    )


def overdue_reminder(agreement: Agreement, days_overdue: int, currency: str) -> tuple[str, str]:
    return (
        "Payment overdue",
        f"Your debt of {format_amount(agreement.total_due, currency)} passed its due date "
        f"on {agreement.due_date.date().isoformat()} ({days_overdue} days ago).",
    )


def escalation_notice(
    agreement: Agreement, days_overdue: int, level: int, recipient: Party, currency: str
) -> tuple[str, str]:
    amount = format_amount(agreement.total_due, currency)
    if recipient is Party.LENDER:
        return (
            "Borrower payment overdue",
            f"The {amount} owed to you is {days_overdue} days overdue (escalation level {level}).",
        )
    return (
        "Overdue payment escalated",
        f"Your debt of {amount} is {days_overdue} days overdue (escalation level {level}). "
        "Please settle it or contact the lender.",
    )


def confirmation_notice(agreement: Agreement, confirmed_by: Party, currency: str) -> tuple[str, str]:
    amount = format_amount(agreement.amount, currency)
    return (
        "Agreement confirmed",
        f"The {confirmed_by.value} confirmed the agreement for {amount}.",
    )


def payment_notice(agreement: Agreement, currency: str) -> tuple[str, str]:
    return (
        "Agreement settled",
        f"The agreement for {format_amount(agreement.amount, currency)} was marked as paid.",
    )


def weekly_summary(
    period_start: date,
    lending: tuple[int, Decimal],
    borrowing: tuple[int, Decimal],
    overdue: int,
    currency: str,
) -> tuple[str, str]:
    """Summary text from (count, outstanding) pairs for each side."""
    lent_count, lent_total = lending
    owed_count, owed_total = borrowing
    return (
        f"Weekly summary from {period_start.isoformat()}",
        f"You are owed {format_amount(lent_total, currency)} across {lent_count} agreements "
        f"and owe {format_amount(owed_total, currency)} across {owed_count} agreements. "
        f"{overdue} of them are overdue.",
    )
