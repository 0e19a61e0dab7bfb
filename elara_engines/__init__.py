"""
Module: elara_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    workflow engines: access policy, approval authority, cascade
    evaluation, field validation and progress metrics.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import elara_kernel.domain (and sibling engine modules).
    MUST NOT import elara_kernel services, selectors or models.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are passed in by the services, which read an injected Clock.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from elara_engines.access_policy import authorize
    from elara_engines.approval import apply_approval, can_approve
    from elara_engines.cascade import evaluate_parent_completion
"""

from elara_engines.access_policy import (
    COMPLETE_LEVEL,
    DELETE_LEVEL,
    UPDATE_LEVELS,
    VIEW_LEVELS,
    authorize,
)
from elara_engines.approval import (
    NOT_APPROVER_REASON,
    apply_approval,
    auto_approves_at_creation,
    can_approve,
    check_approval_authority,
    resolve_effective_creator,
)
from elara_engines.cascade import (
    ParentCompletion,
    all_children_complete,
    evaluate_parent_completion,
    incomplete_count,
)
from elara_engines.progress import (
    completion_ratio,
    is_overdue,
    sla_breached,
    sla_escalation_due,
)
from elara_engines.validation import ValidationIssue, ValidationLimits

__all__ = [
    "COMPLETE_LEVEL",
    "DELETE_LEVEL",
    "NOT_APPROVER_REASON",
    "ParentCompletion",
    "UPDATE_LEVELS",
    "VIEW_LEVELS",
    "ValidationIssue",
    "ValidationLimits",
    "all_children_complete",
    "apply_approval",
    "authorize",
    "auto_approves_at_creation",
    "can_approve",
    "check_approval_authority",
    "completion_ratio",
    "evaluate_parent_completion",
    "incomplete_count",
    "is_overdue",
    "resolve_effective_creator",
    "sla_breached",
    "sla_escalation_due",
]
