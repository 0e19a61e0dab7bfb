"""
elara_engines.cascade -- Pure parent-completion evaluation.

Responsibility:
    Given a parent's current ``end_date`` and its children's ``end_date``
    values, decide whether the parent completes now.  Used bottom-up by
    the cascade service: story -> epic, then epic -> project.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Non-vacuity: an empty child set never completes the parent.
    - Idempotence: an already completed parent is reported as such and
      never completed twice.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from enum import Enum


class ParentCompletion(str, Enum):
    """Outcome of evaluating a parent against its children."""

    COMPLETE = "complete"  # every child done; parent should complete now
    INCOMPLETE = "incomplete"  # at least one child still open
    EMPTY = "empty"  # no children yet
    ALREADY_COMPLETE = "already_complete"


def all_children_complete(child_end_dates: Iterable[date | None]) -> bool:
    """True iff there is at least one child and every child has an end date."""
    seen = False
    for end_date in child_end_dates:
        if end_date is None:
            return False
        seen = True
    return seen


def evaluate_parent_completion(
    parent_end_date: date | None,
    child_end_dates: Iterable[date | None],
) -> ParentCompletion:
    """Classify a parent for the cascade.

    Args:
        parent_end_date: The parent's current end date (None while pending).
        child_end_dates: End dates of every child, read in the same
            transaction that will write the parent.
    """
    if parent_end_date is not None:
        return ParentCompletion.ALREADY_COMPLETE

    dates = list(child_end_dates)
    if not dates:
        return ParentCompletion.EMPTY
    if all_children_complete(dates):
        return ParentCompletion.COMPLETE
    return ParentCompletion.INCOMPLETE


def incomplete_count(child_end_dates: Iterable[date | None]) -> int:
    return sum(1 for end_date in child_end_dates if end_date is None)
