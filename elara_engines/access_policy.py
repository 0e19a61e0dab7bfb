"""
elara_engines.access_policy -- Hierarchical access-level policy.

Responsibility:
    Decide whether an actor may perform an operation on a target, based on
    the actor's access level, identity, reporting link, and the target's
    creator/manager/assignee and approval state.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import elara_kernel.domain types.

Invariants enforced:
    - Total function: ``authorize`` always returns an ``AccessDecision``;
      every denial carries a ``DenialCode`` and a human-readable reason.
    - Monotonic approval: an update payload that clears ``is_approved`` on
      an approved entity is denied with ``DenialCode.UNAPPROVE``.
    - Work gating: work fields of an unapproved entity are locked unless
      the entity's effective creator is senior.

Failure modes:
    - None raised.  An UPDATE or APPROVE target with no project, epic or
      story to inspect is denied with ``DenialCode.NO_TARGET``.
"""

from __future__ import annotations

from collections.abc import Callable

from elara_engines.approval import check_approval_authority
from elara_engines.tracer import traced_engine
from elara_kernel.domain.access import (
    ALLOW,
    AccessDecision,
    AccessTarget,
    DenialCode,
    Operation,
)
from elara_kernel.domain.actors import (
    EMPLOYEE_ACCESS_LEVEL,
    MANAGER_ACCESS_LEVEL,
    SENIOR_ACCESS_LEVEL,
    Actor,
)
from elara_kernel.domain.entities import (
    GOVERNED_ENTITY_TYPES,
    WORK_FIELDS,
    EntityType,
)

# Minimum access level to update each entity type.
UPDATE_LEVELS: dict[EntityType, int] = {
    EntityType.PROJECT: SENIOR_ACCESS_LEVEL,
    EntityType.EPIC: EMPLOYEE_ACCESS_LEVEL,
    EntityType.STORY: EMPLOYEE_ACCESS_LEVEL,
    EntityType.CLIENT: SENIOR_ACCESS_LEVEL,
    EntityType.SLA_RULE: SENIOR_ACCESS_LEVEL,
}

DELETE_LEVEL = SENIOR_ACCESS_LEVEL
COMPLETE_LEVEL = EMPLOYEE_ACCESS_LEVEL

# Minimum access level to read; 1 means any authenticated actor.
VIEW_LEVELS: dict[EntityType, int] = {
    EntityType.CLIENT: 1,
    EntityType.PROJECT: 1,
    EntityType.EPIC: EMPLOYEE_ACCESS_LEVEL,
    EntityType.STORY: EMPLOYEE_ACCESS_LEVEL,
    EntityType.SLA_RULE: 1,
}


def _label(entity_type: EntityType) -> str:
    return entity_type.value.replace("_", " ")


def _insufficient(actor: Actor, required: int, action: str) -> AccessDecision:
    return AccessDecision.deny(
        DenialCode.INSUFFICIENT_LEVEL,
        f"Insufficient access level: {action} requires access level "
        f"{required} or higher (current: {actor.access_level})",
    )


def _no_target(target: AccessTarget, operation: Operation) -> AccessDecision:
    return AccessDecision.deny(
        DenialCode.NO_TARGET,
        f"{operation.value} on a {_label(target.entity_type)} needs a project, epic or story",
    )


# =============================================================================
# Create
# =============================================================================


def _authorize_create(actor: Actor, target: AccessTarget) -> AccessDecision:
    entity_type = target.entity_type
    if entity_type in (EntityType.PROJECT, EntityType.EPIC):
        return _authorize_create_managed(actor, entity_type, target.proposed_manager)
    if entity_type == EntityType.STORY:
        return _authorize_create_story(actor, target.proposed_assignee)
    if actor.access_level < SENIOR_ACCESS_LEVEL:
        return _insufficient(actor, SENIOR_ACCESS_LEVEL, f"creating a {_label(entity_type)}")
    return ALLOW


def _authorize_create_managed(
    actor: Actor,
    entity_type: EntityType,
    manager: Actor | None,
) -> AccessDecision:
    label = _label(entity_type)
    if actor.access_level < MANAGER_ACCESS_LEVEL:
        return _insufficient(actor, MANAGER_ACCESS_LEVEL, f"creating a {label}")

    # No explicit manager means the creator manages it
    if manager is None or actor.is_same_as(manager):
        return ALLOW

    if actor.access_level == MANAGER_ACCESS_LEVEL:
        return AccessDecision.deny(
            DenialCode.NOT_SELF,
            f"Access level 3 users can only create a {label} managed by themselves",
        )
    if actor.access_level == SENIOR_ACCESS_LEVEL and not manager.is_direct_report_of(actor):
        return AccessDecision.deny(
            DenialCode.NOT_DIRECT_REPORT,
            f"Access level 4 users can only create a {label} for themselves "
            "or their direct reports",
        )
    return ALLOW


def _authorize_create_story(actor: Actor, assignee: Actor | None) -> AccessDecision:
    if actor.access_level < EMPLOYEE_ACCESS_LEVEL:
        return _insufficient(actor, EMPLOYEE_ACCESS_LEVEL, "creating a story")

    if assignee is None or actor.is_same_as(assignee):
        return ALLOW

    if actor.access_level == EMPLOYEE_ACCESS_LEVEL:
        return AccessDecision.deny(
            DenialCode.NOT_SELF,
            "Access level 2 users can only assign stories to themselves",
        )
    if actor.access_level == MANAGER_ACCESS_LEVEL and not assignee.is_direct_report_of(actor):
        return AccessDecision.deny(
            DenialCode.NOT_DIRECT_REPORT,
            "Access level 3 users can only assign stories to themselves "
            "or their direct reports",
        )
    return ALLOW


# =============================================================================
# Update
# =============================================================================


def _authorize_update(actor: Actor, target: AccessTarget) -> AccessDecision:
    entity_type = target.entity_type
    required = UPDATE_LEVELS[entity_type]
    if actor.access_level < required:
        return _insufficient(actor, required, f"updating a {_label(entity_type)}")
    if entity_type not in GOVERNED_ENTITY_TYPES:
        return ALLOW

    entity = target.entity
    if entity is None:
        return _no_target(target, Operation.UPDATE)
    label = _label(entity_type).capitalize()

    if entity.is_approved and target.requested_approval is False:
        return AccessDecision.deny(
            DenialCode.UNAPPROVE,
            f"{label} is already approved; approval cannot be revoked",
        )

    creator = entity.effective_creator
    creator_is_senior = creator is not None and creator.is_senior
    touched_work = target.changed_fields & WORK_FIELDS[entity_type]
    if touched_work and not entity.is_approved and not creator_is_senior:
        return AccessDecision.deny(
            DenialCode.PENDING_APPROVAL,
            f"{label} cannot be worked on until approved by the creator's "
            "reporting manager",
        )

    if (
        entity_type == EntityType.STORY
        and target.changed_fields
        and actor.access_level < SENIOR_ACCESS_LEVEL
        and not actor.is_same_as(entity.manager)
    ):
        return AccessDecision.deny(
            DenialCode.NOT_ASSIGNING_MANAGER,
            "Only the assigning manager or senior users can modify this story",
        )
    return ALLOW


# =============================================================================
# Approve / complete / delete / view
# =============================================================================


def _authorize_approve(actor: Actor, target: AccessTarget) -> AccessDecision:
    if target.entity_type not in GOVERNED_ENTITY_TYPES or target.entity is None:
        return _no_target(target, Operation.APPROVE)
    return check_approval_authority(actor, target.entity)


def _authorize_complete(actor: Actor, target: AccessTarget) -> AccessDecision:
    if actor.access_level < COMPLETE_LEVEL:
        return _insufficient(actor, COMPLETE_LEVEL, f"completing a {_label(target.entity_type)}")
    return _authorize_view(actor, target)


def _authorize_delete(actor: Actor, target: AccessTarget) -> AccessDecision:
    entity_type = target.entity_type
    if actor.access_level < DELETE_LEVEL:
        return _insufficient(actor, DELETE_LEVEL, f"deleting a {_label(entity_type)}")

    if entity_type == EntityType.CLIENT and target.has_dependents:
        return AccessDecision.deny(
            DenialCode.HAS_DEPENDENTS,
            "Cannot delete a client that still has projects",
        )
    return ALLOW


def _authorize_view(actor: Actor, target: AccessTarget) -> AccessDecision:
    required = VIEW_LEVELS[target.entity_type]
    if actor.access_level >= required:
        return ALLOW
    return _insufficient(actor, required, f"viewing a {_label(target.entity_type)}")


_RULES: dict[Operation, Callable[[Actor, AccessTarget], AccessDecision]] = {
    Operation.CREATE: _authorize_create,
    Operation.UPDATE: _authorize_update,
    Operation.APPROVE: _authorize_approve,
    Operation.COMPLETE: _authorize_complete,
    Operation.DELETE: _authorize_delete,
    Operation.VIEW: _authorize_view,
}


@traced_engine("access_policy", "1.0", fingerprint_fields=("operation",))
def authorize(
    actor: Actor | None,
    operation: Operation,
    target: AccessTarget,
) -> AccessDecision:
    """Decide whether ``actor`` may perform ``operation`` on ``target``.

    Args:
        actor: The calling identity (None when unauthenticated).
        operation: Requested operation.
        target: Entity type plus whatever the rule for ``operation`` inspects.

    Returns:
        ``AccessDecision``; denials carry a ``DenialCode`` and reason string.
    """
    if actor is None:
        return AccessDecision.deny(DenialCode.UNAUTHENTICATED, "authentication required")
    return _RULES[operation](actor, target)


__all__ = [
    "COMPLETE_LEVEL",
    "DELETE_LEVEL",
    "UPDATE_LEVELS",
    "VIEW_LEVELS",
    "authorize",
]
