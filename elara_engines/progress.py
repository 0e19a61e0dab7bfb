"""
elara_engines.progress -- Pure progress and SLA metrics.

Responsibility:
    Completion ratios, overdue detection and SLA breach checks for the
    read side.  All "now" values are passed in.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date


def completion_ratio(end_dates: Iterable[date | None]) -> float:
    """Fraction of items with an end date; 0.0 for an empty collection."""
    total = 0
    done = 0
    for end_date in end_dates:
        total += 1
        if end_date is not None:
            done += 1
    if total == 0:
        return 0.0
    return round(done / total, 4)


def is_overdue(due_date: date | None, end_date: date | None, today: date) -> bool:
    """Incomplete work whose due date has passed."""
    return end_date is None and due_date is not None and due_date < today


def elapsed_hours(started_on: date, finished_on: date) -> int:
    return max(0, (finished_on - started_on).days * 24)


def sla_breached(
    duration_hours: int,
    started_on: date,
    completed_on: date | None,
    today: date,
) -> bool:
    """True when the work ran (or is running) longer than the SLA allows."""
    finished = completed_on if completed_on is not None else today
    return elapsed_hours(started_on, finished) > duration_hours


def sla_escalation_due(
    duration_hours: int,
    escalation_delay_hours: int,
    started_on: date,
    completed_on: date | None,
    today: date,
) -> bool:
    """Open work past its SLA plus the escalation delay."""
    if completed_on is not None:
        return False
    return elapsed_hours(started_on, today) > duration_hours + escalation_delay_hours
