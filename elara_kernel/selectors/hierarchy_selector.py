"""
Module: elara_kernel.selectors.hierarchy_selector
Responsibility: Read-only views over the entity hierarchy
    (Client -> Project -> Epic -> Story) and the actor reporting chain.
    Builds the ``GovernedEntity`` views the access policy and approval
    engine reason about.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Child state is always re-queried from the database inside the caller's
      transaction; the identity map never answers "are all children done?".
    - Results are DTOs or scalar values, never ORM instances.

Failure modes:
    - ActorNotFoundError from get_actor() for an unknown id.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from elara_kernel.domain.actors import Actor
from elara_kernel.domain.dtos import EpicView, StoryView
from elara_kernel.domain.entities import EntityType, GovernedEntity
from elara_kernel.exceptions import ActorNotFoundError
from elara_kernel.models.actor import ActorModel
from elara_kernel.models.client import ClientModel
from elara_kernel.models.project import EpicModel, ProjectModel, StoryModel
from elara_kernel.selectors.base import BaseSelector


class HierarchySelector(BaseSelector):
    """Parent/child links and reporting-chain lookups."""

    def __init__(self, session: Session):
        super().__init__(session)
        self._actors: dict[UUID, Actor | None] = {}

    # =========================================================================
    # Actors
    # =========================================================================

    def find_actor(self, actor_id: UUID | None) -> Actor | None:
        if actor_id is None:
            return None
        if actor_id not in self._actors:
            model = self.session.get(ActorModel, actor_id)
            self._actors[actor_id] = model.to_dto() if model is not None else None
        return self._actors[actor_id]

    def get_actor(self, actor_id: UUID) -> Actor:
        actor = self.find_actor(actor_id)
        if actor is None:
            raise ActorNotFoundError(actor_id)
        return actor

    def direct_reports(self, manager_id: UUID) -> list[Actor]:
        rows = self.session.execute(
            select(ActorModel)
            .where(ActorModel.reports_to_id == manager_id)
            .order_by(ActorModel.name)
        ).scalars()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Governed entity views
    # =========================================================================

    def governed_project(self, project: ProjectModel) -> GovernedEntity:
        return GovernedEntity(
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            creator=self.find_actor(project.creator_id),
            manager=self.find_actor(project.manager_id),
            is_approved=project.is_approved,
            end_date=project.end_date,
            parent_id=project.client_id,
        )

    def governed_epic(self, epic: EpicModel) -> GovernedEntity:
        return GovernedEntity(
            entity_type=EntityType.EPIC,
            entity_id=epic.id,
            creator=self.find_actor(epic.creator_id),
            manager=self.find_actor(epic.manager_id),
            is_approved=epic.is_approved,
            end_date=epic.end_date,
            parent_id=epic.project_id,
        )

    def governed_story(self, story: StoryModel) -> GovernedEntity:
        """Story view; ``manager`` is the owning project's manager."""
        manager_id = self.session.execute(
            select(ProjectModel.manager_id)
            .join(EpicModel, EpicModel.project_id == ProjectModel.id)
            .where(EpicModel.id == story.epic_id)
        ).scalar_one_or_none()
        return GovernedEntity(
            entity_type=EntityType.STORY,
            entity_id=story.id,
            creator=self.find_actor(story.creator_id),
            manager=self.find_actor(manager_id),
            assignee=self.find_actor(story.assignee_id),
            is_approved=story.is_approved,
            end_date=story.end_date,
            parent_id=story.epic_id,
        )

    def governed(self, model: ProjectModel | EpicModel | StoryModel) -> GovernedEntity:
        if isinstance(model, ProjectModel):
            return self.governed_project(model)
        if isinstance(model, EpicModel):
            return self.governed_epic(model)
        return self.governed_story(model)

    # =========================================================================
    # Children
    # =========================================================================

    def story_end_dates(self, epic_id: UUID) -> list[date | None]:
        """End dates of every story in an epic, read from the database."""
        return list(
            self.session.execute(
                select(StoryModel.end_date).where(StoryModel.epic_id == epic_id)
            ).scalars()
        )

    def epic_end_dates(self, project_id: UUID) -> list[date | None]:
        return list(
            self.session.execute(
                select(EpicModel.end_date).where(EpicModel.project_id == project_id)
            ).scalars()
        )

    def child_end_dates(self, entity_type: EntityType, parent_id: UUID) -> list[date | None]:
        if entity_type == EntityType.EPIC:
            return self.story_end_dates(parent_id)
        if entity_type == EntityType.PROJECT:
            return self.epic_end_dates(parent_id)
        raise ValueError(f"{entity_type.value} has no governed children")

    def epics_of(self, project_id: UUID) -> list[EpicView]:
        rows = self.session.execute(
            select(EpicModel)
            .where(EpicModel.project_id == project_id)
            .order_by(EpicModel.created_at, EpicModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def stories_of(self, epic_id: UUID) -> list[StoryView]:
        rows = self.session.execute(
            select(StoryModel)
            .where(StoryModel.epic_id == epic_id)
            .order_by(StoryModel.created_at, StoryModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def project_deadline_for_epic(self, epic_id: UUID) -> date | None:
        return self.session.execute(
            select(ProjectModel.deadline)
            .join(EpicModel, EpicModel.project_id == ProjectModel.id)
            .where(EpicModel.id == epic_id)
        ).scalar_one_or_none()

    # =========================================================================
    # Uniqueness and workload
    # =========================================================================

    def project_name_taken(
        self,
        client_id: UUID,
        name: str,
        exclude_id: UUID | None = None,
    ) -> bool:
        stmt = select(func.count(ProjectModel.id)).where(
            ProjectModel.client_id == client_id,
            func.lower(ProjectModel.name) == name.strip().lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(ProjectModel.id != exclude_id)
        return self.session.execute(stmt).scalar_one() > 0

    def assignee_open_hours(
        self,
        assignee_id: UUID,
        exclude_story_id: UUID | None = None,
    ) -> int:
        """Estimated hours of the assignee's incomplete stories."""
        stmt = select(func.coalesce(func.sum(StoryModel.estimated_hours), 0)).where(
            StoryModel.assignee_id == assignee_id,
            StoryModel.end_date.is_(None),
        )
        if exclude_story_id is not None:
            stmt = stmt.where(StoryModel.id != exclude_story_id)
        return int(self.session.execute(stmt).scalar_one())

    def client_name_taken(self, name: str, exclude_id: UUID | None = None) -> bool:
        stmt = select(func.count(ClientModel.id)).where(
            func.lower(ClientModel.name) == name.strip().lower()
        )
        if exclude_id is not None:
            stmt = stmt.where(ClientModel.id != exclude_id)
        return self.session.execute(stmt).scalar_one() > 0

    def client_has_projects(self, client_id: UUID) -> bool:
        return (
            self.session.execute(
                select(func.count(ProjectModel.id)).where(ProjectModel.client_id == client_id)
            ).scalar_one()
            > 0
        )
