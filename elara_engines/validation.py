"""
elara_engines.validation -- Pure field-level business validation.

Responsibility:
    Check create and update payloads for clients, projects, epics, stories
    and SLA rules against configured limits.  Returns every issue found
    rather than stopping at the first one; the calling service decides
    whether to raise.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Checks that need the
    database (name uniqueness, referenced rows existing) are done by the
    services, which pass the looked-up facts in.

Invariants enforced:
    - Purity: ``today`` is always a parameter.
    - Limits come from ``ValidationLimits`` (populated by elara_config).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from elara_kernel.domain.actors import EMPLOYEE_ACCESS_LEVEL, Actor
from elara_kernel.domain.dtos import (
    ClientDraft,
    EpicChanges,
    EpicDraft,
    ProjectChanges,
    ProjectDraft,
    SlaRuleDraft,
    SlaStartPoint,
    StoryChanges,
    StoryDraft,
    StoryPriority,
)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ValidationLimits:
    """Field limits; defaults mirror the shipped configuration."""

    project_name_min: int = 3
    project_name_max: int = 200
    project_deadline_min_days: int = 1
    project_deadline_max_days: int = 730
    epic_name_min: int = 3
    story_title_min: int = 5
    story_title_max: int = 255
    deliverables_max: int = 5000
    story_hours_max: int = 160
    assignee_open_hours_max: int = 160
    overrun_warning_factor: int = 3
    client_name_min: int = 2


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str

    def as_tuple(self) -> tuple[str, str]:
        return (self.field, self.message)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _check_length(
    field: str,
    label: str,
    value: str | None,
    minimum: int,
    maximum: int | None = None,
) -> list[ValidationIssue]:
    if _blank(value):
        return [ValidationIssue(field, f"{label} is required")]
    length = len(value.strip())
    if length < minimum:
        return [ValidationIssue(field, f"{label} must be at least {minimum} characters long")]
    if maximum is not None and length > maximum:
        return [ValidationIssue(field, f"{label} must not exceed {maximum} characters")]
    return []


def _check_deliverables(value: str | None, label: str, limits: ValidationLimits) -> list[ValidationIssue]:
    if value is not None and len(value) > limits.deliverables_max:
        return [
            ValidationIssue(
                "deliverables",
                f"{label} description must not exceed {limits.deliverables_max} characters",
            )
        ]
    return []


def _check_hours(field: str, label: str, hours: int | None, limits: ValidationLimits) -> list[ValidationIssue]:
    if hours is None:
        return []
    if hours < 0:
        return [ValidationIssue(field, f"{label} cannot be negative")]
    if hours > limits.story_hours_max:
        return [ValidationIssue(field, f"{label} cannot exceed {limits.story_hours_max} hours")]
    return []


# =============================================================================
# Projects
# =============================================================================


def validate_project_deadline(
    deadline: date | None,
    today: date,
    limits: ValidationLimits,
) -> list[ValidationIssue]:
    if deadline is None:
        return [ValidationIssue("deadline", "Project deadline is required")]
    days_ahead = (deadline - today).days
    if days_ahead < limits.project_deadline_min_days:
        return [
            ValidationIssue(
                "deadline",
                f"Project deadline must be at least {limits.project_deadline_min_days} "
                "day in the future",
            )
        ]
    if days_ahead > limits.project_deadline_max_days:
        return [
            ValidationIssue(
                "deadline",
                f"Project deadline cannot exceed {limits.project_deadline_max_days} "
                "days from today",
            )
        ]
    return []


def validate_manager(manager: Actor) -> list[ValidationIssue]:
    if manager.access_level < EMPLOYEE_ACCESS_LEVEL:
        return [
            ValidationIssue("manager_id", "Selected user does not have manager privileges")
        ]
    return []


def validate_project_draft(
    draft: ProjectDraft,
    today: date,
    limits: ValidationLimits,
    name_taken: bool = False,
) -> list[ValidationIssue]:
    issues = _check_length(
        "name", "Project name", draft.name, limits.project_name_min, limits.project_name_max
    )
    if name_taken:
        issues.append(
            ValidationIssue("name", "A project with this name already exists for this client")
        )
    issues += validate_project_deadline(draft.deadline, today, limits)
    issues += _check_deliverables(draft.deliverables, "Project", limits)
    return issues


def validate_project_changes(
    changes: ProjectChanges,
    current_client_id: object,
    is_approved: bool,
    today: date,
    limits: ValidationLimits,
    name_taken: bool = False,
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if changes.name is not None:
        issues += _check_length(
            "name", "Project name", changes.name, limits.project_name_min, limits.project_name_max
        )
    if name_taken:
        issues.append(
            ValidationIssue("name", "A project with this name already exists for this client")
        )
    if changes.deadline is not None:
        issues += validate_project_deadline(changes.deadline, today, limits)
    if (
        is_approved
        and changes.client_id is not None
        and changes.client_id != current_client_id
    ):
        issues.append(ValidationIssue("client_id", "Cannot change client of an approved project"))
    issues += _check_deliverables(changes.deliverables, "Project", limits)
    return issues


# =============================================================================
# Epics
# =============================================================================


def _check_epic_dates(start_date: date | None, deadline: date | None) -> list[ValidationIssue]:
    if start_date is not None and deadline is not None and deadline < start_date:
        return [ValidationIssue("deadline", "Epic deadline cannot precede its start date")]
    return []


def validate_epic_draft(draft: EpicDraft, limits: ValidationLimits) -> list[ValidationIssue]:
    issues = _check_length("name", "Epic name", draft.name, limits.epic_name_min)
    issues += _check_deliverables(draft.deliverables, "Epic", limits)
    issues += _check_epic_dates(draft.start_date, draft.deadline)
    return issues


def validate_epic_changes(
    changes: EpicChanges,
    current_start_date: date | None,
    current_deadline: date | None,
    limits: ValidationLimits,
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if changes.name is not None:
        issues += _check_length("name", "Epic name", changes.name, limits.epic_name_min)
    issues += _check_deliverables(changes.deliverables, "Epic", limits)
    issues += _check_epic_dates(
        changes.start_date if changes.start_date is not None else current_start_date,
        changes.deadline if changes.deadline is not None else current_deadline,
    )
    return issues


# =============================================================================
# Stories
# =============================================================================


def validate_story_due_date(
    due_date: date | None,
    today: date,
    project_deadline: date | None,
) -> list[ValidationIssue]:
    if due_date is None:
        return [ValidationIssue("due_date", "Story due date is required")]
    if due_date < today:
        return [ValidationIssue("due_date", "Story due date cannot be in the past")]
    if project_deadline is not None and due_date > project_deadline:
        return [ValidationIssue("due_date", "Story due date cannot exceed project deadline")]
    return []


def validate_assignee_workload(
    open_hours: int,
    added_hours: int | None,
    limits: ValidationLimits,
) -> list[ValidationIssue]:
    """Reject assignments that push an assignee past the open-hours cap."""
    if open_hours + (added_hours or 0) > limits.assignee_open_hours_max:
        return [
            ValidationIssue(
                "assignee_id",
                "Assigned user has excessive workload. Please reassign or adjust deadlines.",
            )
        ]
    return []


def validate_story_draft(
    draft: StoryDraft,
    today: date,
    project_deadline: date | None,
    limits: ValidationLimits,
) -> list[ValidationIssue]:
    issues = _check_length(
        "title", "Story title", draft.title, limits.story_title_min, limits.story_title_max
    )
    issues += _check_deliverables(draft.deliverables, "Story", limits)
    issues += validate_story_due_date(draft.due_date, today, project_deadline)
    issues += _check_hours("estimated_hours", "Estimated hours", draft.estimated_hours, limits)
    issues += _check_hours("actual_hours", "Actual hours", draft.actual_hours, limits)
    return issues


def validate_story_changes(
    changes: StoryChanges,
    today: date,
    project_deadline: date | None,
    limits: ValidationLimits,
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if changes.title is not None:
        issues += _check_length(
            "title", "Story title", changes.title, limits.story_title_min, limits.story_title_max
        )
    issues += _check_deliverables(changes.deliverables, "Story", limits)
    if changes.due_date is not None:
        issues += validate_story_due_date(changes.due_date, today, project_deadline)
    issues += _check_hours("estimated_hours", "Estimated hours", changes.estimated_hours, limits)
    issues += _check_hours("actual_hours", "Actual hours", changes.actual_hours, limits)
    return issues


def hours_overrun(
    estimated_hours: int | None,
    actual_hours: int | None,
    limits: ValidationLimits,
) -> bool:
    """Actual hours far above the estimate; worth a warning, not a rejection."""
    if not estimated_hours or actual_hours is None:
        return False
    return actual_hours > estimated_hours * limits.overrun_warning_factor


# =============================================================================
# Clients and SLA rules
# =============================================================================


def validate_client_draft(
    draft: ClientDraft,
    limits: ValidationLimits,
    name_taken: bool = False,
) -> list[ValidationIssue]:
    issues = _check_length("name", "Client name", draft.name, limits.client_name_min)
    if name_taken:
        issues.append(ValidationIssue("name", "A client with this name already exists"))
    if not _blank(draft.email) and not _EMAIL_PATTERN.match(draft.email.strip()):
        issues.append(ValidationIssue("email", "Client email is not a valid address"))
    return issues


def validate_sla_rule_draft(draft: SlaRuleDraft) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if _blank(draft.name):
        issues.append(ValidationIssue("name", "SLA rule name is required"))
    if draft.start_point is None:
        issues.append(ValidationIssue("start_point", "SLA start point is required"))
    elif draft.start_point not in {p.value for p in SlaStartPoint}:
        issues.append(
            ValidationIssue("start_point", f"Unknown SLA start point: {draft.start_point}")
        )
    if draft.duration_hours is None or draft.duration_hours < 0:
        issues.append(ValidationIssue("duration_hours", "SLA duration must be non-negative"))
    if draft.escalation_delay_hours is None or draft.escalation_delay_hours < 0:
        issues.append(
            ValidationIssue("escalation_delay_hours", "Escalation delay must be non-negative")
        )
    if draft.priority not in {p.value for p in StoryPriority}:
        issues.append(ValidationIssue("priority", f"Unknown SLA priority: {draft.priority}"))
    return issues
