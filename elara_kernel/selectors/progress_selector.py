"""
Module: elara_kernel.selectors.progress_selector
Responsibility: Read-side progress metrics: per-project completion, overdue
    stories, and SLA breaches.  All "today" values are passed in.
Architecture position: Kernel > Selectors.  Uses elara_engines.progress for
    the arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import or_, select

from elara_engines.progress import completion_ratio, is_overdue, sla_breached, sla_escalation_due
from elara_kernel.domain.dtos import ProjectProgress
from elara_kernel.models.client import SlaRuleModel
from elara_kernel.models.project import EpicModel, StoryModel
from elara_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class SlaBreach:
    story_id: UUID
    rule_id: UUID
    escalation_due: bool


class ProgressSelector(BaseSelector):
    """Completion and SLA metrics for projects."""

    def _project_stories(self, project_id: UUID) -> list[StoryModel]:
        return list(
            self.session.execute(
                select(StoryModel)
                .join(EpicModel, EpicModel.id == StoryModel.epic_id)
                .where(EpicModel.project_id == project_id)
                .order_by(StoryModel.created_at, StoryModel.id)
            ).scalars()
        )

    def project_progress(self, project_id: UUID, today: date) -> ProjectProgress:
        epic_dates = list(
            self.session.execute(
                select(EpicModel.end_date).where(EpicModel.project_id == project_id)
            ).scalars()
        )
        stories = self._project_stories(project_id)
        story_dates = [story.end_date for story in stories]
        overdue = tuple(
            story.id for story in stories if is_overdue(story.due_date, story.end_date, today)
        )
        return ProjectProgress(
            project_id=project_id,
            epic_count=len(epic_dates),
            completed_epic_count=sum(1 for d in epic_dates if d is not None),
            story_count=len(story_dates),
            completed_story_count=sum(1 for d in story_dates if d is not None),
            completion_ratio=completion_ratio(story_dates),
            overdue_story_ids=overdue,
        )

    def overdue_stories(self, today: date, assignee_id: UUID | None = None) -> list[UUID]:
        stmt = select(StoryModel.id).where(
            StoryModel.end_date.is_(None),
            StoryModel.due_date < today,
        )
        if assignee_id is not None:
            stmt = stmt.where(StoryModel.assignee_id == assignee_id)
        return list(self.session.execute(stmt.order_by(StoryModel.due_date)).scalars())

    def sla_breaches(self, project_id: UUID, today: date) -> list[SlaBreach]:
        """Stories of the project that exceed an active SLA rule.

        Rules scoped to the project apply alongside global rules.  Story
        creation date is the start point for every rule.
        """
        rules = list(
            self.session.execute(
                select(SlaRuleModel).where(
                    SlaRuleModel.is_active.is_(True),
                    or_(
                        SlaRuleModel.project_id == project_id,
                        SlaRuleModel.project_id.is_(None),
                    ),
                )
            ).scalars()
        )
        breaches: list[SlaBreach] = []
        for story in self._project_stories(project_id):
            started_on = story.created_at.date() if story.created_at else today
            for rule in rules:
                if sla_breached(rule.duration_hours, started_on, story.end_date, today):
                    breaches.append(
                        SlaBreach(
                            story_id=story.id,
                            rule_id=rule.id,
                            escalation_due=sla_escalation_due(
                                rule.duration_hours,
                                rule.escalation_delay_hours,
                                started_on,
                                story.end_date,
                                today,
                            ),
                        )
                    )
        return breaches
