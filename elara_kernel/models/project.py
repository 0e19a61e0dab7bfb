"""
Module: elara_kernel.models.project
Responsibility: ORM persistence for projects, epics and stories -- the
    approval-governed hierarchy.  Children hold their parent's id only.
Architecture position: Kernel > Models.  May import from db/base.py and
    models/governed.py.

Invariants enforced:
    - See models/governed.py (approval/end_date coupling, monotonic
      approval, optimistic locking).
    - Stories reference their epic, epics their project, projects their
      client; no back-references are embedded.

Failure modes:
    - IntegrityError on a dangling parent id or a broken approval/end_date pair.
    - InvalidTransitionError from the before_update guard on un-approval.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from elara_kernel.db.base import TrackedBase, UUIDString
from elara_kernel.models.governed import (
    GovernedMixin,
    approval_end_date_check,
    register_approval_guard,
)

if TYPE_CHECKING:
    from elara_kernel.domain.dtos import EpicView, ProjectView, StoryView


class ProjectModel(GovernedMixin, TrackedBase):
    """A client engagement; owns epics by id."""

    __tablename__ = "projects"

    __table_args__ = (
        approval_end_date_check("projects"),
        Index("idx_project_client_name", "client_id", "name"),
        Index("idx_project_manager", "manager_id"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    deliverables: Mapped[str] = mapped_column(Text, nullable=False, default="")

    deadline: Mapped[date | None] = mapped_column(nullable=True)

    manager_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("actors.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ProjectModel {self.name} approved={self.is_approved}>"

    def to_dto(self) -> ProjectView:
        from elara_kernel.domain.dtos import ProjectView

        return ProjectView(
            project_id=self.id,
            client_id=self.client_id,
            name=self.name,
            deliverables=self.deliverables,
            deadline=self.deadline,
            manager_id=self.manager_id,
            creator_id=self.creator_id,
            is_approved=self.is_approved,
            end_date=self.end_date,
            version=self.version,
        )


class EpicModel(GovernedMixin, TrackedBase):
    """A body of work inside one project; owns stories by id."""

    __tablename__ = "epics"

    __table_args__ = (
        approval_end_date_check("epics"),
        Index("idx_epic_project", "project_id"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    deliverables: Mapped[str] = mapped_column(Text, nullable=False, default="")

    start_date: Mapped[date | None] = mapped_column(nullable=True)

    deadline: Mapped[date | None] = mapped_column(nullable=True)

    manager_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("actors.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<EpicModel {self.name} approved={self.is_approved}>"

    def to_dto(self) -> EpicView:
        from elara_kernel.domain.dtos import EpicView

        return EpicView(
            epic_id=self.id,
            project_id=self.project_id,
            name=self.name,
            deliverables=self.deliverables,
            start_date=self.start_date,
            deadline=self.deadline,
            manager_id=self.manager_id,
            creator_id=self.creator_id,
            is_approved=self.is_approved,
            end_date=self.end_date,
            version=self.version,
        )


class StoryModel(GovernedMixin, TrackedBase):
    """A unit of work inside one epic."""

    __tablename__ = "stories"

    __table_args__ = (
        approval_end_date_check("stories"),
        Index("idx_story_epic", "epic_id"),
        Index("idx_story_assignee", "assignee_id"),
    )

    epic_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("epics.id"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    deliverables: Mapped[str] = mapped_column(Text, nullable=False, default="")

    due_date: Mapped[date | None] = mapped_column(nullable=True)

    assignee_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("actors.id"),
        nullable=True,
    )

    estimated_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)

    actual_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)

    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")

    def __repr__(self) -> str:
        return f"<StoryModel {self.title} approved={self.is_approved}>"

    def to_dto(self) -> StoryView:
        from elara_kernel.domain.dtos import StoryPriority, StoryView

        return StoryView(
            story_id=self.id,
            epic_id=self.epic_id,
            title=self.title,
            deliverables=self.deliverables,
            due_date=self.due_date,
            assignee_id=self.assignee_id,
            creator_id=self.creator_id,
            estimated_hours=self.estimated_hours,
            actual_hours=self.actual_hours,
            priority=StoryPriority(self.priority),
            is_approved=self.is_approved,
            end_date=self.end_date,
            version=self.version,
        )


for _model in (ProjectModel, EpicModel, StoryModel):
    register_approval_guard(_model)
