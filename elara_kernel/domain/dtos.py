"""
Data Transfer Objects for the workflow kernel.

Drafts describe entities about to be created, Changes describe partial
updates (``None`` means "leave unchanged"), and Views are the read-side
snapshots returned across the service boundary.  All are immutable.

``end_date`` never appears on a Draft or Changes object: it is derived
from approval only.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from enum import Enum
from uuid import UUID


class StoryPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SlaStartPoint(str, Enum):
    """When an SLA clock starts running."""

    TASK_CREATION = "task_creation"
    STATE_ENTRY = "state_entry"


class _Changes:
    """Mixin for partial-update payloads."""

    def changed_fields(self) -> frozenset[str]:
        """Names of the non-approval fields this payload sets."""
        return frozenset(
            f.name
            for f in fields(self)
            if f.name != "is_approved" and getattr(self, f.name) is not None
        )

    def is_empty(self) -> bool:
        return not self.changed_fields() and getattr(self, "is_approved", None) is None


# =============================================================================
# Drafts (create payloads)
# =============================================================================


@dataclass(frozen=True)
class ProjectDraft:
    name: str
    client_id: UUID
    deadline: date | None
    manager_id: UUID | None = None
    deliverables: str = ""


@dataclass(frozen=True)
class EpicDraft:
    project_id: UUID
    name: str
    manager_id: UUID | None = None
    deliverables: str = ""
    start_date: date | None = None
    deadline: date | None = None


@dataclass(frozen=True)
class StoryDraft:
    epic_id: UUID
    title: str
    due_date: date | None
    assignee_id: UUID | None = None
    deliverables: str = ""
    estimated_hours: int | None = None
    actual_hours: int | None = None
    priority: StoryPriority = StoryPriority.MEDIUM


@dataclass(frozen=True)
class ClientDraft:
    name: str
    email: str | None = None
    contact_name: str | None = None


@dataclass(frozen=True)
class SlaRuleDraft:
    """Create (``rule_id`` None) or replace an SLA rule."""

    name: str
    start_point: SlaStartPoint | str | None
    duration_hours: int
    escalation_delay_hours: int = 0
    priority: StoryPriority | str = StoryPriority.MEDIUM
    project_id: UUID | None = None
    rule_id: UUID | None = None


# =============================================================================
# Changes (partial update payloads)
# =============================================================================


@dataclass(frozen=True)
class ProjectChanges(_Changes):
    name: str | None = None
    deliverables: str | None = None
    deadline: date | None = None
    client_id: UUID | None = None
    manager_id: UUID | None = None
    is_approved: bool | None = None


@dataclass(frozen=True)
class EpicChanges(_Changes):
    name: str | None = None
    deliverables: str | None = None
    start_date: date | None = None
    deadline: date | None = None
    manager_id: UUID | None = None
    is_approved: bool | None = None


@dataclass(frozen=True)
class StoryChanges(_Changes):
    title: str | None = None
    deliverables: str | None = None
    due_date: date | None = None
    assignee_id: UUID | None = None
    estimated_hours: int | None = None
    actual_hours: int | None = None
    priority: StoryPriority | None = None
    is_approved: bool | None = None


# =============================================================================
# Views (read side)
# =============================================================================


@dataclass(frozen=True)
class ClientView:
    client_id: UUID
    name: str
    email: str | None
    contact_name: str | None


@dataclass(frozen=True)
class ProjectView:
    project_id: UUID
    client_id: UUID
    name: str
    deliverables: str
    deadline: date | None
    manager_id: UUID
    creator_id: UUID | None
    is_approved: bool
    end_date: date | None
    version: int


@dataclass(frozen=True)
class EpicView:
    epic_id: UUID
    project_id: UUID
    name: str
    deliverables: str
    start_date: date | None
    deadline: date | None
    manager_id: UUID
    creator_id: UUID | None
    is_approved: bool
    end_date: date | None
    version: int


@dataclass(frozen=True)
class StoryView:
    story_id: UUID
    epic_id: UUID
    title: str
    deliverables: str
    due_date: date | None
    assignee_id: UUID | None
    creator_id: UUID | None
    estimated_hours: int | None
    actual_hours: int | None
    priority: StoryPriority
    is_approved: bool
    end_date: date | None
    version: int


@dataclass(frozen=True)
class SlaRuleView:
    rule_id: UUID
    name: str
    project_id: UUID | None
    start_point: SlaStartPoint
    duration_hours: int
    escalation_delay_hours: int
    priority: StoryPriority


@dataclass(frozen=True)
class ProjectProgress:
    """Completion metrics for one project."""

    project_id: UUID
    epic_count: int
    completed_epic_count: int
    story_count: int
    completed_story_count: int
    completion_ratio: float
    overdue_story_ids: tuple[UUID, ...] = ()
