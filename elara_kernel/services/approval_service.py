"""
elara_kernel.services.approval_service -- Apply approvals to governed rows.

Responsibility:
    Bridges the pure approval engine and the ORM: checks approval authority
    for an actor, applies the approval state change (``is_approved`` plus
    ``end_date``), and records why.  System-driven approvals (creation by a
    senior creator, cascade completion) use ``stamp`` and skip the
    authority check.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, selectors/
    and the pure engines.

Invariants enforced:
    - Idempotence: approving an approved row changes nothing and returns
      False.
    - ``end_date`` is set only when absent.
    - The state change goes through ``elara_engines.approval.apply_approval``;
      no ORM hook sets ``end_date``.

Failure modes:
    - AuthorizationDeniedError when the actor lacks approval authority.
"""

from __future__ import annotations

from elara_engines.approval import apply_approval, check_approval_authority
from elara_kernel.db.unit_of_work import UnitOfWork
from elara_kernel.domain.actors import Actor
from elara_kernel.domain.clock import Clock
from elara_kernel.domain.entities import GovernedEntity
from elara_kernel.exceptions import AuthorizationDeniedError
from elara_kernel.logging_config import get_logger
from elara_kernel.models.project import EpicModel, ProjectModel, StoryModel
from elara_kernel.selectors.hierarchy_selector import HierarchySelector
from elara_kernel.services.base import BaseService

logger = get_logger("services.approval")

GovernedModel = ProjectModel | EpicModel | StoryModel


class ApprovalService(BaseService):
    """Approval authority check plus the apply-approval write."""

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        selector: HierarchySelector | None = None,
    ):
        super().__init__(uow, clock)
        self._selector = selector or HierarchySelector(uow.session)

    def approve(self, model: GovernedModel, actor: Actor) -> bool:
        """Approve ``model`` on behalf of ``actor``.

        Returns:
            True if the row changed, False if it was already approved.

        Raises:
            AuthorizationDeniedError: actor is neither a senior creator
                approving their own work nor the creator's reporting manager.
        """
        entity = self._selector.governed(model)
        if entity.is_approved:
            logger.info(
                "approval_already_applied",
                extra={"entity_type": entity.entity_type.value, "entity_id": str(model.id)},
            )
            return False

        decision = check_approval_authority(actor, entity)
        if not decision.allowed:
            logger.info(
                "approval_denied",
                extra={
                    "entity_type": entity.entity_type.value,
                    "entity_id": str(model.id),
                    "reason": decision.reason,
                },
            )
            raise AuthorizationDeniedError(
                decision.reason,
                operation="approve",
                entity_type=entity.entity_type.value,
                denial=decision.denial.value if decision.denial else None,
            )
        return self._write(model, entity, source="approval", actor=actor)

    def stamp(self, model: GovernedModel, source: str) -> bool:
        """System-driven approval (creation or cascade); no authority check."""
        entity = self._selector.governed(model)
        return self._write(model, entity, source=source, actor=None)

    def _write(
        self,
        model: GovernedModel,
        entity: GovernedEntity,
        source: str,
        actor: Actor | None,
    ) -> bool:
        approved = apply_approval(entity, self.clock.today())
        if approved is entity:
            return False

        model.is_approved = approved.is_approved
        model.end_date = approved.end_date
        if actor is not None:
            model.updated_by_id = actor.actor_id
        self.uow.flush(entity.entity_type.value)

        logger.info(
            "entity_approved",
            extra={
                "entity_type": entity.entity_type.value,
                "entity_id": str(model.id),
                "end_date": approved.end_date,
                "source": source,
            },
        )
        return True
