"""
elara_kernel.services.work_item_service -- Create, update, approve, complete
and delete projects, epics and stories.

Responsibility:
    Every write on the governed hierarchy, in the order
    load -> authorize -> validate -> mutate -> cascade.  Authorization goes
    through ``elara_engines.access_policy.authorize``; approval state changes
    go through ``ApprovalService``; upward completion goes through
    ``CascadeService``.  Notifications are queued on the unit of work.

Architecture position:
    Kernel > Services.  Flush-only; WorkflowService owns the transaction
    and converts the exceptions raised here into typed results.

Invariants enforced:
    - Explicit authorize() call at the top of every operation.
    - Monotonic approval: an update payload clearing ``is_approved`` on an
      approved entity raises InvalidTransitionError.
    - Work on an unapproved entity is gated (see access policy).
    - Senior creators' new work starts approved (and cascades).
    - ``end_date`` is never written from a payload.

Failure modes:
    - EntityNotFoundError / ActorNotFoundError for unknown ids.
    - AuthorizationDeniedError for policy or approval-authority denials.
    - InvalidTransitionError for un-approval or closing a parent that has
      no children or still has open children.
    - WorkflowValidationError for field-level validation failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select

from elara_engines.access_policy import authorize
from elara_engines.approval import auto_approves_at_creation
from elara_engines.cascade import ParentCompletion, evaluate_parent_completion, incomplete_count
from elara_engines.validation import (
    ValidationIssue,
    ValidationLimits,
    hours_overrun,
    validate_assignee_workload,
    validate_epic_changes,
    validate_epic_draft,
    validate_manager,
    validate_project_changes,
    validate_project_draft,
    validate_story_changes,
    validate_story_draft,
)
from elara_kernel.db.unit_of_work import UnitOfWork
from elara_kernel.domain.access import AccessTarget, Operation
from elara_kernel.domain.actors import Actor
from elara_kernel.domain.clock import Clock
from elara_kernel.domain.collaborators import NotificationEvent, PendingNotification
from elara_kernel.domain.dtos import (
    EpicChanges,
    EpicDraft,
    ProjectChanges,
    ProjectDraft,
    StoryChanges,
    StoryDraft,
)
from elara_kernel.domain.entities import NO_CASCADE, CascadeResult, EntityType
from elara_kernel.exceptions import (
    EntityNotFoundError,
    InvalidTransitionError,
    WorkflowValidationError,
)
from elara_kernel.logging_config import get_logger
from elara_kernel.models.client import ClientModel, SlaRuleModel
from elara_kernel.models.project import EpicModel, ProjectModel, StoryModel
from elara_kernel.selectors.hierarchy_selector import HierarchySelector
from elara_kernel.services.approval_service import ApprovalService
from elara_kernel.services.base import BaseService, enforce
from elara_kernel.services.cascade_service import CascadeService

logger = get_logger("services.work_items")

_MODELS: dict[EntityType, type] = {
    EntityType.PROJECT: ProjectModel,
    EntityType.EPIC: EpicModel,
    EntityType.STORY: StoryModel,
}


@dataclass(frozen=True)
class WorkItemOutcome:
    """What a write did: the resulting view, whether anything changed,
    and how far completion propagated."""

    entity: Any
    changed: bool = True
    cascade: CascadeResult = NO_CASCADE


class WorkItemService(BaseService):
    """Writes on the Project -> Epic -> Story hierarchy."""

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        limits: ValidationLimits | None = None,
    ):
        super().__init__(uow, clock)
        self._limits = limits or ValidationLimits()
        self._selector = HierarchySelector(uow.session)
        self._approvals = ApprovalService(uow, self.clock, self._selector)
        self._cascade = CascadeService(uow, self.clock, self._selector, self._approvals)

    @property
    def selector(self) -> HierarchySelector:
        return self._selector

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, entity_type: EntityType, entity_id: UUID):
        model_class = _MODELS.get(entity_type)
        if model_class is None:
            raise InvalidTransitionError(
                entity_type.value, entity_id, f"a {entity_type.value} has no approval workflow"
            )
        model = self.session.get(model_class, entity_id)
        if model is None:
            raise EntityNotFoundError(entity_type.value, entity_id)
        return model

    def _require_client(self, client_id: UUID) -> ClientModel:
        client = self.session.get(ClientModel, client_id)
        if client is None:
            raise EntityNotFoundError(EntityType.CLIENT.value, client_id)
        return client

    # =========================================================================
    # Helpers
    # =========================================================================

    def _raise_issues(self, entity_type: EntityType, issues: list[ValidationIssue]) -> None:
        if issues:
            logger.info(
                "validation_failed",
                extra={
                    "entity_type": entity_type.value,
                    "fields": [issue.field for issue in issues],
                },
            )
            raise WorkflowValidationError(
                entity_type.value, [issue.as_tuple() for issue in issues]
            )

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

    def _check_story_hours(self, story: StoryModel) -> None:
        if hours_overrun(story.estimated_hours, story.actual_hours, self._limits):
            logger.warning(
                "story_hours_overrun",
                extra={
                    "story_id": str(story.id),
                    "estimated_hours": story.estimated_hours,
                    "actual_hours": story.actual_hours,
                },
            )

    def _complete_story_side_effects(self, story: StoryModel) -> CascadeResult:
        self._queue(NotificationEvent.STORY_COMPLETED, EntityType.STORY, story, story.assignee_id)
        return self._cascade.on_story_completed(story)

    def _complete_epic_side_effects(self, epic: EpicModel) -> CascadeResult:
        self._queue(NotificationEvent.EPIC_COMPLETED, EntityType.EPIC, epic, epic.manager_id)
        result = self._cascade.on_epic_completed(epic)
        return CascadeResult(
            epic_completed=True,
            project_completed=result.project_completed,
            epic_id=epic.id,
            project_id=result.project_id,
        )

    # =========================================================================
    # Create
    # =========================================================================

    def create_project(self, draft: ProjectDraft, actor: Actor) -> WorkItemOutcome:
        self._require_client(draft.client_id)
        manager = self._selector.get_actor(draft.manager_id) if draft.manager_id else actor

        enforce(
            authorize(actor, Operation.CREATE, AccessTarget(EntityType.PROJECT, proposed_manager=manager)),
            Operation.CREATE,
            EntityType.PROJECT,
        )

        issues = validate_project_draft(
            draft,
            self.clock.today(),
            self._limits,
            name_taken=bool(draft.name)
            and self._selector.project_name_taken(draft.client_id, draft.name),
        )
        issues += validate_manager(manager)
        self._raise_issues(EntityType.PROJECT, issues)

        project = ProjectModel(
            client_id=draft.client_id,
            name=draft.name.strip(),
            deliverables=draft.deliverables or "",
            deadline=draft.deadline,
            manager_id=manager.actor_id,
            creator_id=actor.actor_id,
            created_by_id=actor.actor_id,
            created_at=self.clock.now_utc(),
            is_approved=False,
            end_date=None,
        )
        self.session.add(project)
        self.uow.flush(EntityType.PROJECT.value)
        self._queue(NotificationEvent.PROJECT_CREATED, EntityType.PROJECT, project, project.manager_id)

        if auto_approves_at_creation(actor):
            self._approvals.stamp(project, source="creation")
            self._queue(
                NotificationEvent.PROJECT_APPROVED, EntityType.PROJECT, project, project.manager_id
            )

        logger.info(
            "project_created",
            extra={
                "project_id": str(project.id),
                "client_id": str(project.client_id),
                "manager_id": str(project.manager_id),
                "is_approved": project.is_approved,
            },
        )
        return WorkItemOutcome(entity=project.to_dto())

    def create_epic(self, draft: EpicDraft, actor: Actor) -> WorkItemOutcome:
        project = self.load(EntityType.PROJECT, draft.project_id)
        manager = self._selector.get_actor(draft.manager_id) if draft.manager_id else actor

        enforce(
            authorize(actor, Operation.CREATE, AccessTarget(EntityType.EPIC, proposed_manager=manager)),
            Operation.CREATE,
            EntityType.EPIC,
        )
        self._raise_issues(EntityType.EPIC, validate_epic_draft(draft, self._limits))

        epic = EpicModel(
            project_id=project.id,
            name=draft.name.strip(),
            deliverables=draft.deliverables or "",
            start_date=draft.start_date,
            deadline=draft.deadline,
            manager_id=manager.actor_id,
            creator_id=actor.actor_id,
            created_by_id=actor.actor_id,
            created_at=self.clock.now_utc(),
            is_approved=False,
            end_date=None,
        )
        self.session.add(epic)
        self.uow.flush(EntityType.EPIC.value)

        cascade = NO_CASCADE
        if auto_approves_at_creation(actor):
            self._approvals.stamp(epic, source="creation")
            cascade = self._cascade.on_epic_completed(epic)

        logger.info(
            "epic_created",
            extra={
                "epic_id": str(epic.id),
                "project_id": str(project.id),
                "manager_id": str(epic.manager_id),
                "is_approved": epic.is_approved,
            },
        )
        return WorkItemOutcome(entity=epic.to_dto(), cascade=cascade)

    def create_story(self, draft: StoryDraft, actor: Actor) -> WorkItemOutcome:
        epic = self.load(EntityType.EPIC, draft.epic_id)
        assignee = self._selector.get_actor(draft.assignee_id) if draft.assignee_id else None

        enforce(
            authorize(actor, Operation.CREATE, AccessTarget(EntityType.STORY, proposed_assignee=assignee)),
            Operation.CREATE,
            EntityType.STORY,
        )

        issues = validate_story_draft(
            draft,
            self.clock.today(),
            self._selector.project_deadline_for_epic(epic.id),
            self._limits,
        )
        if assignee is not None:
            issues += validate_assignee_workload(
                self._selector.assignee_open_hours(assignee.actor_id),
                draft.estimated_hours,
                self._limits,
            )
        self._raise_issues(EntityType.STORY, issues)

        story = StoryModel(
            epic_id=epic.id,
            title=draft.title.strip(),
            deliverables=draft.deliverables or "",
            due_date=draft.due_date,
            assignee_id=assignee.actor_id if assignee else None,
            estimated_hours=draft.estimated_hours,
            actual_hours=draft.actual_hours,
            priority=draft.priority.value if hasattr(draft.priority, "value") else draft.priority,
            creator_id=actor.actor_id,
            created_by_id=actor.actor_id,
            created_at=self.clock.now_utc(),
            is_approved=False,
            end_date=None,
        )
        self.session.add(story)
        self.uow.flush(EntityType.STORY.value)
        self._check_story_hours(story)
        self._queue(NotificationEvent.STORY_ASSIGNED, EntityType.STORY, story, story.assignee_id)

        cascade = NO_CASCADE
        if auto_approves_at_creation(actor):
            self._approvals.stamp(story, source="creation")
            cascade = self._complete_story_side_effects(story)

        logger.info(
            "story_created",
            extra={
                "story_id": str(story.id),
                "epic_id": str(epic.id),
                "assignee_id": str(story.assignee_id) if story.assignee_id else None,
                "is_approved": story.is_approved,
            },
        )
        return WorkItemOutcome(entity=story.to_dto(), cascade=cascade)

    # =========================================================================
    # Update
    # =========================================================================

    def _authorize_update(
        self,
        entity_type: EntityType,
        model,
        changes: ProjectChanges | EpicChanges | StoryChanges,
        actor: Actor,
    ) -> None:
        target = AccessTarget(
            entity_type,
            entity=self._selector.governed(model),
            changed_fields=changes.changed_fields(),
            requested_approval=changes.is_approved,
        )
        enforce(authorize(actor, Operation.UPDATE, target), Operation.UPDATE, entity_type, model.id)

    def _apply_fields(self, model, changes, actor: Actor) -> frozenset[str]:
        changed = frozenset(
            name for name in changes.changed_fields() if getattr(model, name) != getattr(changes, name)
        )
        for name in changed:
            value = getattr(changes, name)
            if isinstance(value, str) and name in ("name", "title"):
                value = value.strip()
            elif hasattr(value, "value") and name == "priority":
                value = value.value
            setattr(model, name, value)
        if changed:
            model.updated_by_id = actor.actor_id
        return changed

    def update_project(self, project_id: UUID, changes: ProjectChanges, actor: Actor) -> WorkItemOutcome:
        project = self.load(EntityType.PROJECT, project_id)
        self._authorize_update(EntityType.PROJECT, project, changes, actor)

        issues: list[ValidationIssue] = []
        if changes.client_id is not None:
            self._require_client(changes.client_id)
        if changes.manager_id is not None:
            issues += validate_manager(self._selector.get_actor(changes.manager_id))
        target_client = changes.client_id or project.client_id
        target_name = changes.name if changes.name is not None else project.name
        name_taken = (changes.name is not None or changes.client_id is not None) and (
            self._selector.project_name_taken(target_client, target_name, exclude_id=project.id)
        )
        issues += validate_project_changes(
            changes,
            project.client_id,
            project.is_approved,
            self.clock.today(),
            self._limits,
            name_taken=name_taken,
        )
        self._raise_issues(EntityType.PROJECT, issues)

        changed_fields = self._apply_fields(project, changes, actor)
        self.uow.flush(EntityType.PROJECT.value)

        approved = False
        if changes.is_approved:
            approved = self._approvals.approve(project, actor)
            if approved:
                self._queue(
                    NotificationEvent.PROJECT_APPROVED, EntityType.PROJECT, project, project.manager_id
                )

        logger.info(
            "project_updated",
            extra={
                "project_id": str(project.id),
                "changed_fields": sorted(changed_fields),
                "approved": approved,
            },
        )
        return WorkItemOutcome(entity=project.to_dto(), changed=bool(changed_fields) or approved)

    def update_epic(self, epic_id: UUID, changes: EpicChanges, actor: Actor) -> WorkItemOutcome:
        epic = self.load(EntityType.EPIC, epic_id)
        self._authorize_update(EntityType.EPIC, epic, changes, actor)

        issues: list[ValidationIssue] = []
        if changes.manager_id is not None:
            issues += validate_manager(self._selector.get_actor(changes.manager_id))
        issues += validate_epic_changes(changes, epic.start_date, epic.deadline, self._limits)
        self._raise_issues(EntityType.EPIC, issues)

        changed_fields = self._apply_fields(epic, changes, actor)
        self.uow.flush(EntityType.EPIC.value)

        cascade = NO_CASCADE
        approved = False
        if changes.is_approved:
            approved = self._approvals.approve(epic, actor)
            if approved:
                cascade = self._complete_epic_side_effects(epic)

        logger.info(
            "epic_updated",
            extra={
                "epic_id": str(epic.id),
                "changed_fields": sorted(changed_fields),
                "approved": approved,
            },
        )
        return WorkItemOutcome(
            entity=epic.to_dto(), changed=bool(changed_fields) or approved, cascade=cascade
        )

    def update_story(self, story_id: UUID, changes: StoryChanges, actor: Actor) -> WorkItemOutcome:
        story = self.load(EntityType.STORY, story_id)
        self._authorize_update(EntityType.STORY, story, changes, actor)

        issues = validate_story_changes(
            changes,
            self.clock.today(),
            self._selector.project_deadline_for_epic(story.epic_id),
            self._limits,
        )
        reassigned = changes.assignee_id is not None and changes.assignee_id != story.assignee_id
        if reassigned:
            new_assignee = self._selector.get_actor(changes.assignee_id)
            issues += validate_assignee_workload(
                self._selector.assignee_open_hours(new_assignee.actor_id, exclude_story_id=story.id),
                changes.estimated_hours if changes.estimated_hours is not None else story.estimated_hours,
                self._limits,
            )
        self._raise_issues(EntityType.STORY, issues)

        changed_fields = self._apply_fields(story, changes, actor)
        self.uow.flush(EntityType.STORY.value)
        self._check_story_hours(story)
        if reassigned:
            self._queue(NotificationEvent.STORY_ASSIGNED, EntityType.STORY, story, story.assignee_id)

        cascade = NO_CASCADE
        approved = False
        if changes.is_approved:
            approved = self._approvals.approve(story, actor)
            if approved:
                cascade = self._complete_story_side_effects(story)

        logger.info(
            "story_updated",
            extra={
                "story_id": str(story.id),
                "changed_fields": sorted(changed_fields),
                "approved": approved,
            },
        )
        return WorkItemOutcome(
            entity=story.to_dto(), changed=bool(changed_fields) or approved, cascade=cascade
        )

    # =========================================================================
    # Approve / complete
    # =========================================================================

    def approve(self, entity_type: EntityType, entity_id: UUID, actor: Actor) -> WorkItemOutcome:
        """Explicit approval.  Idempotent on already approved entities.

        Authority is checked first, so only an actor who could approve
        the entity learns that it already is.
        """
        model = self.load(entity_type, entity_id)
        enforce(
            authorize(
                actor,
                Operation.APPROVE,
                AccessTarget(entity_type, entity=self._selector.governed(model)),
            ),
            Operation.APPROVE,
            entity_type,
            entity_id,
        )
        if model.is_approved:
            return WorkItemOutcome(entity=model.to_dto(), changed=False)

        self._approvals.approve(model, actor)

        cascade = NO_CASCADE
        if entity_type == EntityType.STORY:
            cascade = self._complete_story_side_effects(model)
        elif entity_type == EntityType.EPIC:
            cascade = self._complete_epic_side_effects(model)
        else:
            self._queue(
                NotificationEvent.PROJECT_APPROVED, EntityType.PROJECT, model, model.manager_id
            )
        return WorkItemOutcome(entity=model.to_dto(), cascade=cascade)

    def complete_story(self, story_id: UUID, actor: Actor) -> WorkItemOutcome:
        story = self.load(EntityType.STORY, story_id)
        if story.is_approved:
            logger.info("story_already_completed", extra={"story_id": str(story.id)})
            return WorkItemOutcome(entity=story.to_dto(), changed=False)

        enforce(
            authorize(
                actor,
                Operation.COMPLETE,
                AccessTarget(EntityType.STORY, entity=self._selector.governed_story(story)),
            ),
            Operation.COMPLETE,
            EntityType.STORY,
            story.id,
        )
        self._approvals.stamp(story, source="completion")
        story.updated_by_id = actor.actor_id
        cascade = self._complete_story_side_effects(story)

        logger.info(
            "story_completed",
            extra={
                "story_id": str(story.id),
                "epic_completed": cascade.epic_completed,
                "project_completed": cascade.project_completed,
            },
        )
        return WorkItemOutcome(entity=story.to_dto(), cascade=cascade)

    def close(self, entity_type: EntityType, entity_id: UUID, actor: Actor) -> WorkItemOutcome:
        """Explicitly complete an epic or project whose children are all done."""
        if entity_type == EntityType.STORY:
            return self.complete_story(entity_id, actor)

        model = self.load(entity_type, entity_id)
        enforce(
            authorize(
                actor,
                Operation.APPROVE,
                AccessTarget(entity_type, entity=self._selector.governed(model)),
            ),
            Operation.COMPLETE,
            entity_type,
            entity_id,
        )
        if model.is_approved:
            return WorkItemOutcome(entity=model.to_dto(), changed=False)

        child_dates = self._selector.child_end_dates(entity_type, model.id)
        child_label = "stories" if entity_type == EntityType.EPIC else "epics"
        outcome = evaluate_parent_completion(model.end_date, child_dates)
        if outcome == ParentCompletion.EMPTY:
            raise InvalidTransitionError(
                entity_type.value, entity_id, f"{entity_type.value} has no {child_label} to complete"
            )
        if outcome == ParentCompletion.INCOMPLETE:
            raise InvalidTransitionError(
                entity_type.value,
                entity_id,
                f"{incomplete_count(child_dates)} {child_label} still incomplete",
            )

        self._approvals.stamp(model, source="close")
        model.updated_by_id = actor.actor_id
        if entity_type == EntityType.EPIC:
            cascade = self._complete_epic_side_effects(model)
        else:
            self._queue(
                NotificationEvent.PROJECT_COMPLETED, EntityType.PROJECT, model, model.manager_id
            )
            cascade = CascadeResult(project_completed=True, project_id=model.id)
        return WorkItemOutcome(entity=model.to_dto(), cascade=cascade)

    # =========================================================================
    # Delete
    # =========================================================================

    def _authorize_delete(self, entity_type: EntityType, model, actor: Actor) -> None:
        enforce(
            authorize(
                actor,
                Operation.DELETE,
                AccessTarget(entity_type, entity=self._selector.governed(model)),
            ),
            Operation.DELETE,
            entity_type,
            model.id,
        )

    def delete_project(self, project_id: UUID, actor: Actor) -> WorkItemOutcome:
        """Delete a project with its epics, stories and SLA rules."""
        project = self.load(EntityType.PROJECT, project_id)
        self._authorize_delete(EntityType.PROJECT, project, actor)
        view = project.to_dto()

        epic_ids = select(EpicModel.id).where(EpicModel.project_id == project.id)
        self.session.execute(
            delete(StoryModel)
            .where(StoryModel.epic_id.in_(epic_ids))
            .execution_options(synchronize_session="fetch")
        )
        self.session.execute(
            delete(EpicModel)
            .where(EpicModel.project_id == project.id)
            .execution_options(synchronize_session="fetch")
        )
        self.session.execute(
            delete(SlaRuleModel)
            .where(SlaRuleModel.project_id == project.id)
            .execution_options(synchronize_session="fetch")
        )
        self.session.delete(project)
        self.uow.flush(EntityType.PROJECT.value)
        logger.info("project_deleted", extra={"project_id": str(project_id)})
        return WorkItemOutcome(entity=view)

    def delete_epic(self, epic_id: UUID, actor: Actor) -> WorkItemOutcome:
        """Delete an epic with its stories."""
        epic = self.load(EntityType.EPIC, epic_id)
        self._authorize_delete(EntityType.EPIC, epic, actor)
        view = epic.to_dto()

        self.session.execute(
            delete(StoryModel)
            .where(StoryModel.epic_id == epic.id)
            .execution_options(synchronize_session="fetch")
        )
        self.session.delete(epic)
        self.uow.flush(EntityType.EPIC.value)
        logger.info("epic_deleted", extra={"epic_id": str(epic_id)})
        return WorkItemOutcome(entity=view)

    def delete_story(self, story_id: UUID, actor: Actor) -> WorkItemOutcome:
        story = self.load(EntityType.STORY, story_id)
        self._authorize_delete(EntityType.STORY, story, actor)
        view = story.to_dto()

        self.session.delete(story)
        self.uow.flush(EntityType.STORY.value)
        logger.info("story_deleted", extra={"story_id": str(story_id)})
        return WorkItemOutcome(entity=view)

    # =========================================================================
    # Read
    # =========================================================================

    def view(self, entity_type: EntityType, entity_id: UUID, actor: Actor) -> WorkItemOutcome:
        model = self.load(entity_type, entity_id)
        enforce(
            authorize(
                actor,
                Operation.VIEW,
                AccessTarget(entity_type, entity=self._selector.governed(model)),
            ),
            Operation.VIEW,
            entity_type,
            entity_id,
        )
        return WorkItemOutcome(entity=model.to_dto())
