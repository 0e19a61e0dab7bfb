"""
elara_kernel.services.cascade_service -- Upward completion propagation.

Responsibility:
    When a story completes, complete its epic if every sibling story is
    complete; when that (or an explicit epic approval) completes an epic,
    complete the project if every sibling epic is complete.  Queues the
    matching notifications on the unit of work.

Architecture position:
    Kernel > Services.  Uses the pure ``elara_engines.cascade`` evaluation
    and ``ApprovalService.stamp`` for the state change.

Invariants enforced:
    - Strictly bottom-up, at most two hops (story -> epic -> project).
    - Parent row is locked (SELECT ... FOR UPDATE, populate_existing) before
      its children are re-read, so two sibling completions cannot both see
      "one left" or both complete the parent.
    - Non-vacuity: a parent with zero children never completes.
    - Idempotence: an already completed parent is left alone and no second
      notification is queued.

Failure modes:
    - ConsistencyConflictError from flush when the parent's version moved
      underneath us (retried by WorkflowService).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from elara_engines.cascade import ParentCompletion, evaluate_parent_completion
from elara_kernel.db.unit_of_work import UnitOfWork
from elara_kernel.domain.clock import Clock
from elara_kernel.domain.collaborators import NotificationEvent, PendingNotification
from elara_kernel.domain.entities import NO_CASCADE, CascadeResult, EntityType
from elara_kernel.logging_config import get_logger
from elara_kernel.models.project import EpicModel, ProjectModel, StoryModel
from elara_kernel.selectors.hierarchy_selector import HierarchySelector
from elara_kernel.services.approval_service import ApprovalService
from elara_kernel.services.base import BaseService

logger = get_logger("services.cascade")


class CascadeService(BaseService):
    """Story -> epic -> project completion cascade."""

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        selector: HierarchySelector | None = None,
        approvals: ApprovalService | None = None,
    ):
        super().__init__(uow, clock)
        self._selector = selector or HierarchySelector(uow.session)
        self._approvals = approvals or ApprovalService(uow, self.clock, self._selector)

    def _lock(self, model_class, entity_id: UUID):
        return self.session.execute(
            select(model_class)
            .where(model_class.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

    def lock_epic(self, epic_id: UUID) -> EpicModel:
        return self._lock(EpicModel, epic_id)

    def lock_project(self, project_id: UUID) -> ProjectModel:
        return self._lock(ProjectModel, project_id)

    def on_story_completed(self, story: StoryModel) -> CascadeResult:
        """Run the cascade for a story that just became complete."""
        if story.end_date is None:
            raise ValueError(f"story {story.id} is not complete")

        # Push the story's own write before re-reading its siblings
        self.uow.flush(EntityType.STORY.value)

        epic = self.lock_epic(story.epic_id)
        outcome = evaluate_parent_completion(
            epic.end_date, self._selector.story_end_dates(epic.id)
        )
        logger.debug(
            "epic_cascade_evaluated",
            extra={"epic_id": str(epic.id), "story_id": str(story.id), "outcome": outcome.value},
        )
        if outcome != ParentCompletion.COMPLETE:
            return CascadeResult(epic_id=epic.id)

        self._approvals.stamp(epic, source="cascade")
        self._queue(NotificationEvent.EPIC_COMPLETED, EntityType.EPIC, epic, epic.manager_id)
        logger.info(
            "epic_cascade_completed",
            extra={"epic_id": str(epic.id), "triggered_by": str(story.id)},
        )

        project_result = self.on_epic_completed(epic)
        return CascadeResult(
            epic_completed=True,
            project_completed=project_result.project_completed,
            epic_id=epic.id,
            project_id=project_result.project_id,
        )

    def on_epic_completed(self, epic: EpicModel) -> CascadeResult:
        """Complete the epic's project if every epic in it is complete."""
        if epic.end_date is None:
            return NO_CASCADE

        self.uow.flush(EntityType.EPIC.value)

        project = self.lock_project(epic.project_id)
        outcome = evaluate_parent_completion(
            project.end_date, self._selector.epic_end_dates(project.id)
        )
        logger.debug(
            "project_cascade_evaluated",
            extra={"project_id": str(project.id), "epic_id": str(epic.id), "outcome": outcome.value},
        )
        if outcome != ParentCompletion.COMPLETE:
            return CascadeResult(project_id=project.id)

        self._approvals.stamp(project, source="cascade")
        self._queue(
            NotificationEvent.PROJECT_COMPLETED,
            EntityType.PROJECT,
            project,
            project.manager_id,
        )
        logger.info(
            "project_cascade_completed",
            extra={"project_id": str(project.id), "triggered_by": str(epic.id)},
        )
        return CascadeResult(project_completed=True, project_id=project.id)

    def _queue(
        self,
        event: NotificationEvent,
        entity_type: EntityType,
        model,
        recipient_id: UUID | None,
    ) -> None:
        if recipient_id is None:
            return
        self.uow.queue_notification(
            PendingNotification(
                event=event,
                entity_type=entity_type,
                entity_id=model.id,
                recipient_id=recipient_id,
                entity=model.to_dto(),
            )
        )
