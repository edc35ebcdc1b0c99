"""
Guarantee Safety classification -- pure functions over dates.

Responsibility
--------------
Once a candidate joins, the placement fee is provisional until the client's
replacement-guarantee window closes.  This module derives, from the window
end date and "today" alone, how many days remain and which safety tier the
placement is in.  The stored ``safety_status`` on the record is only a
cache of this computation.

Tiers (calendar days remaining, floored at zero)::

    0 .. critical_days          critical
    .. at_risk_days             at_risk
    otherwise                   monitoring

``safe`` once promoted or once today is past the window end; ``renege``
once the placement was reversed.  ``eligible_for_safe`` is true exactly
when no days remain.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from placement_kernel.domain.workflow import Transition, Workflow

DEFAULT_GUARANTEE_DAYS = 90


class SafetyStatus(str, Enum):
    MONITORING = "monitoring"
    AT_RISK = "at_risk"
    CRITICAL = "critical"
    SAFE = "safe"
    RENEGE = "renege"


OPEN_SAFETY_STATUSES: frozenset[SafetyStatus] = frozenset({
    SafetyStatus.MONITORING,
    SafetyStatus.AT_RISK,
    SafetyStatus.CRITICAL,
})


SAFETY_WORKFLOW = Workflow(
    name="placement_safety",
    description="Guarantee window lifecycle of a joined placement",
    initial_state=SafetyStatus.MONITORING.value,
    states=tuple(s.value for s in SafetyStatus),
    transitions=(
        Transition("monitoring", "at_risk", action="age"),
        Transition("monitoring", "critical", action="age"),
        Transition("at_risk", "critical", action="age"),
        Transition("monitoring", "safe", action="promote"),
        Transition("at_risk", "safe", action="promote"),
        Transition("critical", "safe", action="promote"),
        Transition("monitoring", "renege", action="renege", reverses_revenue=True),
        Transition("at_risk", "renege", action="renege", reverses_revenue=True),
        Transition("critical", "renege", action="renege", reverses_revenue=True),
    ),
    terminal_states=("safe", "renege"),
)


@dataclass(frozen=True)
class SafetyThresholds:
    critical_days: int = 7
    at_risk_days: int = 30

    def __post_init__(self) -> None:
        if self.critical_days < 0 or self.at_risk_days < 0:
            raise ValueError("Safety thresholds must be non-negative")
        if self.critical_days >= self.at_risk_days:
            raise ValueError(
                f"critical_days ({self.critical_days}) must be below "
                f"at_risk_days ({self.at_risk_days})"
            )


DEFAULT_THRESHOLDS = SafetyThresholds()


@dataclass(frozen=True)
class SafetyClassification:
    """Date-driven view of one placement's guarantee state."""

    guarantee_period_ends: date
    days_remaining: int
    status: SafetyStatus
    is_safe: bool
    eligible_for_safe: bool


def guarantee_period_end(joining_date: date, guarantee_days: int | None) -> date:
    """Window end = joining date + client guarantee days (default 90)."""
    days = DEFAULT_GUARANTEE_DAYS if guarantee_days is None else guarantee_days
    if days < 0:
        raise ValueError(f"Guarantee days must be non-negative, got {days}")
    return joining_date + timedelta(days=days)


def days_remaining(guarantee_period_ends: date, today: date) -> int:
    """Whole calendar days left in the window; never negative."""
    return max(0, (guarantee_period_ends - today).days)


def within_window(guarantee_period_ends: date, on: date) -> bool:
    """True if ``on`` falls inside the guarantee window (end date inclusive)."""
    return on <= guarantee_period_ends


def tier_for(remaining: int, thresholds: SafetyThresholds = DEFAULT_THRESHOLDS) -> SafetyStatus:
    if remaining <= thresholds.critical_days:
        return SafetyStatus.CRITICAL
    if remaining <= thresholds.at_risk_days:
        return SafetyStatus.AT_RISK
    return SafetyStatus.MONITORING


def classify(
    guarantee_period_ends: date,
    today: date,
    *,
    reneged: bool = False,
    promoted: bool = False,
    thresholds: SafetyThresholds = DEFAULT_THRESHOLDS,
) -> SafetyClassification:
    """
    Classify a placement as of ``today``.

    Args:
        guarantee_period_ends: Last day of the guarantee window.
        today: Evaluation date.
        reneged: Revenue was reversed for this placement.
        promoted: An operator or sweep already promoted it to safe.
        thresholds: Tier boundaries in days.
    """
    remaining = days_remaining(guarantee_period_ends, today)

    if reneged:
        status = SafetyStatus.RENEGE
    elif promoted or today > guarantee_period_ends:
        status = SafetyStatus.SAFE
    else:
        status = tier_for(remaining, thresholds)

    return SafetyClassification(
        guarantee_period_ends=guarantee_period_ends,
        days_remaining=remaining,
        status=status,
        is_safe=status == SafetyStatus.SAFE,
        eligible_for_safe=remaining == 0 and not reneged,
    )
