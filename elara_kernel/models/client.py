"""
Module: elara_kernel.models.client
Responsibility: ORM persistence for clients (top of the hierarchy) and the
    SLA rules attached to projects.
Architecture position: Kernel > Models.  May import from db/base.py only.

Failure modes:
    - IntegrityError on duplicate client name (uq_client_name).
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from elara_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from elara_kernel.domain.dtos import ClientView, SlaRuleView


class ClientModel(TrackedBase):
    """A customer that owns projects."""

    __tablename__ = "clients"

    __table_args__ = (UniqueConstraint("name", name="uq_client_name"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    contact_name: Mapped[str | None] = mapped_column(String(150), nullable=True)

    def __repr__(self) -> str:
        return f"<ClientModel {self.name}>"

    def to_dto(self) -> ClientView:
        from elara_kernel.domain.dtos import ClientView

        return ClientView(
            client_id=self.id,
            name=self.name,
            email=self.email,
            contact_name=self.contact_name,
        )


class SlaRuleModel(TrackedBase):
    """
    Service-level rule: how long work may run before it breaches, and how
    long after the breach it escalates.  ``project_id`` None means global.
    """

    __tablename__ = "sla_rules"

    __table_args__ = (Index("idx_sla_rule_project", "project_id"),)

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    project_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=True,
    )

    start_point: Mapped[str] = mapped_column(String(30), nullable=False)

    duration_hours: Mapped[int] = mapped_column(Integer, nullable=False)

    escalation_delay_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    priority: Mapped[str] = mapped_column(String(10), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<SlaRuleModel {self.name} {self.duration_hours}h>"

    def to_dto(self) -> SlaRuleView:
        from elara_kernel.domain.dtos import SlaRuleView, SlaStartPoint, StoryPriority

        return SlaRuleView(
            rule_id=self.id,
            name=self.name,
            project_id=self.project_id,
            start_point=SlaStartPoint(self.start_point),
            duration_hours=self.duration_hours,
            escalation_delay_hours=self.escalation_delay_hours,
            priority=StoryPriority(self.priority),
        )
