"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from elara_kernel.domain.access import (
    ALLOW,
    AccessDecision,
    AccessTarget,
    DenialCode,
    Operation,
)
from elara_kernel.domain.actors import (
    ADMIN_ACCESS_LEVEL,
    EMPLOYEE_ACCESS_LEVEL,
    MANAGER_ACCESS_LEVEL,
    SENIOR_ACCESS_LEVEL,
    Actor,
    ActorRole,
    role_for_access_level,
)
from elara_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from elara_kernel.domain.collaborators import (
    IdentityProvider,
    NotificationEvent,
    Notifier,
    PendingNotification,
)
from elara_kernel.domain.dtos import (
    ClientDraft,
    ClientView,
    EpicChanges,
    EpicDraft,
    EpicView,
    ProjectChanges,
    ProjectDraft,
    ProjectProgress,
    ProjectView,
    SlaRuleDraft,
    SlaRuleView,
    SlaStartPoint,
    StoryChanges,
    StoryDraft,
    StoryPriority,
    StoryView,
)
from elara_kernel.domain.entities import (
    APPROVAL_TRANSITIONS,
    NO_CASCADE,
    WORK_FIELDS,
    ApprovalState,
    CascadeResult,
    EntityType,
    GovernedEntity,
)

__all__ = [
    "ADMIN_ACCESS_LEVEL",
    "ALLOW",
    "APPROVAL_TRANSITIONS",
    "AccessDecision",
    "AccessTarget",
    "Actor",
    "ActorRole",
    "ApprovalState",
    "CascadeResult",
    "ClientDraft",
    "ClientView",
    "Clock",
    "DenialCode",
    "DeterministicClock",
    "EMPLOYEE_ACCESS_LEVEL",
    "EntityType",
    "EpicChanges",
    "EpicDraft",
    "EpicView",
    "GovernedEntity",
    "IdentityProvider",
    "MANAGER_ACCESS_LEVEL",
    "NO_CASCADE",
    "NotificationEvent",
    "Notifier",
    "Operation",
    "PendingNotification",
    "ProjectChanges",
    "ProjectDraft",
    "ProjectProgress",
    "ProjectView",
    "SENIOR_ACCESS_LEVEL",
    "SlaRuleDraft",
    "SlaRuleView",
    "SlaStartPoint",
    "StoryChanges",
    "StoryDraft",
    "StoryPriority",
    "StoryView",
    "SystemClock",
    "WORK_FIELDS",
    "role_for_access_level",
]
