"""
elara_engines.approval -- Pure approval-authority and apply-approval rules.

Responsibility:
    Decide whether an actor may approve a Project, Epic or Story, and
    compute the state an approval produces.  The same rule shape applies to
    all three entity types.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import elara_kernel.domain types.

Invariants enforced:
    - Approval authority: a senior creator may approve their own work; any
      other work needs the creator's direct reporting manager.
    - Idempotence: applying approval to an approved entity returns the same
      object, unchanged.
    - ``end_date`` is stamped once, only when absent.
    - Purity: ``today`` is passed in by the caller; no clock access.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

from elara_engines.tracer import traced_engine
from elara_kernel.domain.access import ALLOW, AccessDecision, DenialCode
from elara_kernel.domain.actors import Actor
from elara_kernel.domain.entities import GovernedEntity

NOT_APPROVER_REASON = "only the creator's reporting manager can approve"


def resolve_effective_creator(entity: GovernedEntity) -> Actor | None:
    """Creator, or the manager when a legacy row has no creator."""
    return entity.effective_creator


@traced_engine("approval", "1.0")
def check_approval_authority(actor: Actor, entity: GovernedEntity) -> AccessDecision:
    """Apply the approval-authority rule.

    Args:
        actor: Identity attempting the approval.
        entity: The Project, Epic or Story being approved.

    Returns:
        ALLOW for senior self-approval or reporting-manager approval,
        otherwise a NOT_APPROVER denial.
    """
    creator = resolve_effective_creator(entity)
    if creator is None:
        return AccessDecision.deny(DenialCode.NOT_APPROVER, NOT_APPROVER_REASON)

    if creator.is_senior and actor.is_same_as(creator):
        return ALLOW

    if creator.reports_to_id is not None and creator.reports_to_id == actor.actor_id:
        return ALLOW

    return AccessDecision.deny(DenialCode.NOT_APPROVER, NOT_APPROVER_REASON)


def can_approve(actor: Actor, entity: GovernedEntity) -> bool:
    return check_approval_authority(actor, entity).allowed


def apply_approval(entity: GovernedEntity, today: date) -> GovernedEntity:
    """Return ``entity`` approved, with ``end_date`` stamped if absent.

    Returns the same object when the entity is already approved, so callers
    can detect a no-op with ``is``.
    """
    if entity.is_approved:
        return entity
    return replace(
        entity,
        is_approved=True,
        end_date=entity.end_date if entity.end_date is not None else today,
    )


def auto_approves_at_creation(creator: Actor) -> bool:
    """Senior creators' new work starts approved."""
    return creator.is_senior
