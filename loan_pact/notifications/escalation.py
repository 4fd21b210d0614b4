"""Mapping from days overdue to escalation levels."""

from dataclasses import dataclass, field
from typing import Any

from loan_pact.exceptions import ValidationError

# Level emitted by the daily overdue reminder
OVERDUE_LEVEL = 1


@dataclass(frozen=True)
class EscalationPolicy:
    """Days-overdue thresholds and who hears about escalations.

    ``thresholds`` maps a minimum number of days overdue to a level;
    only levels above ``OVERDUE_LEVEL`` produce escalation notices.
    """

    thresholds: dict[int, int] = field(default_factory=lambda: {7: 2, 30: 3})
    notify_lender: bool = True

    def level_for(self, days_overdue: int) -> int:
        """Highest level whose threshold has been reached (0 when not overdue)."""
        if days_overdue <= 0:
            return 0
        reached = [level for days, level in self.thresholds.items() if days_overdue >= days]
        return max(reached + [OVERDUE_LEVEL])

    @classmethod
    def from_settings(cls, settings: Any, default: "EscalationPolicy") -> "EscalationPolicy":
        """Overlay an agreement's ``escalation_settings`` blob on ``default``.

        Accepted shape: ``{"thresholds": {"7": 2}, "notify_lender": false}``;
        either key may be omitted.

        Raises
        ------
        ValidationError
            If the blob has the wrong shape.
        """
        if not settings:
            return default
        if not isinstance(settings, dict):
            raise ValidationError("escalation_settings must be an object")

        thresholds = default.thresholds
        if "thresholds" in settings:
            raw = settings["thresholds"]
            if not isinstance(raw, dict):
                raise ValidationError("escalation_settings.thresholds must be an object")
            try:
                thresholds = {int(days): int(level) for days, level in raw.items()}
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Invalid escalation threshold: {e}") from e
            if any(days <= 0 or level <= OVERDUE_LEVEL for days, level in thresholds.items()):
                raise ValidationError(
                    f"Escalation thresholds need positive days and levels above {OVERDUE_LEVEL}"
                )

        notify_lender = settings.get("notify_lender", default.notify_lender)
        if not isinstance(notify_lender, bool):
            raise ValidationError("escalation_settings.notify_lender must be a boolean")
        return cls(thresholds=thresholds, notify_lender=notify_lender)
