"""
Workflow entity domain types (``elara_kernel.domain.entities``).

Responsibility
--------------
Pure value objects describing the governed hierarchy
(Project -> Epic -> Story), the two-state approval machine every governed
entity shares, and the result of a completion cascade.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``end_date`` is non-null iff ``is_approved`` is true.
* ``APPROVAL_TRANSITIONS`` allows only PENDING -> COMPLETED.  COMPLETED is
  terminal; there is no reverse edge.
* Children reference parents by id only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID

from elara_kernel.domain.actors import Actor


class EntityType(str, Enum):
    """Every entity kind the access policy knows about."""

    CLIENT = "client"
    PROJECT = "project"
    EPIC = "epic"
    STORY = "story"
    SLA_RULE = "sla_rule"


GOVERNED_ENTITY_TYPES: frozenset[EntityType] = frozenset({
    EntityType.PROJECT,
    EntityType.EPIC,
    EntityType.STORY,
})


# =========================================================================
# Approval state machine
# =========================================================================


class ApprovalState(str, Enum):
    """Pending work versus approved/completed work."""

    PENDING = "pending"
    COMPLETED = "completed"


APPROVAL_TRANSITIONS: dict[ApprovalState, frozenset[ApprovalState]] = {
    ApprovalState.PENDING: frozenset({ApprovalState.COMPLETED}),
    ApprovalState.COMPLETED: frozenset(),
}


def approval_state(is_approved: bool) -> ApprovalState:
    return ApprovalState.COMPLETED if is_approved else ApprovalState.PENDING


def is_valid_transition(current: ApprovalState, target: ApprovalState) -> bool:
    """True when ``current -> target`` is an allowed edge (self-loops are no-ops)."""
    return current == target or target in APPROVAL_TRANSITIONS[current]


# Fields that represent work on the entity itself.  They stay locked
# until the entity is approved, unless its effective creator is senior.
WORK_FIELDS: dict[EntityType, frozenset[str]] = {
    EntityType.PROJECT: frozenset({"deliverables"}),
    EntityType.EPIC: frozenset({"deliverables", "start_date"}),
    EntityType.STORY: frozenset({"deliverables"}),
}


# =========================================================================
# Governed entity view
# =========================================================================


@dataclass(frozen=True)
class GovernedEntity:
    """Policy-facing view of a Project, Epic or Story.

    ``manager`` is the assigning manager: the project manager for a
    project, the epic manager for an epic, and the owning project's
    manager for a story.
    """

    entity_type: EntityType
    entity_id: UUID
    creator: Actor | None
    manager: Actor | None
    assignee: Actor | None = None
    is_approved: bool = False
    end_date: date | None = None
    parent_id: UUID | None = None

    @property
    def state(self) -> ApprovalState:
        return approval_state(self.is_approved)

    @property
    def effective_creator(self) -> Actor | None:
        """Creator, falling back to the manager for legacy rows without one."""
        return self.creator if self.creator is not None else self.manager


@dataclass(frozen=True)
class CascadeResult:
    """Which levels a completion event propagated to."""

    epic_completed: bool = False
    project_completed: bool = False
    epic_id: UUID | None = None
    project_id: UUID | None = None

    @property
    def any_completed(self) -> bool:
        return self.epic_completed or self.project_completed


NO_CASCADE = CascadeResult()
