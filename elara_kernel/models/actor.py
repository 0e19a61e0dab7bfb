"""
Module: elara_kernel.models.actor
Responsibility: ORM persistence for actors (users) -- access level, role tag,
    reporting link, and an optional role-specific profile payload.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - access_level in [1, 5] (ck_actor_access_level).
    - reports_to_id is a weak reference to another actor; an actor cannot
      report to itself (ck_actor_not_self_report).

Failure modes:
    - IntegrityError on duplicate email or out-of-range access level.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from elara_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from elara_kernel.domain.actors import Actor


class ActorModel(Base):
    """
    A user of the tracker.

    Contract:
        The single actor record replaces role subclasses: ``role`` is a tag
        and ``profile`` carries whatever role-specific attributes exist.
    """

    __tablename__ = "actors"

    __table_args__ = (
        CheckConstraint(
            "access_level >= 1 AND access_level <= 5",
            name="ck_actor_access_level",
        ),
        CheckConstraint(
            "reports_to_id IS NULL OR reports_to_id <> id",
            name="ck_actor_not_self_report",
        ),
        Index("idx_actor_reports_to", "reports_to_id"),
    )

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)

    access_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    role: Mapped[str] = mapped_column(String(20), nullable=False)

    reports_to_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("actors.id", ondelete="SET NULL"),
        nullable=True,
    )

    profile: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<ActorModel {self.name} level={self.access_level}>"

    def to_dto(self) -> Actor:
        from elara_kernel.domain.actors import Actor, ActorRole

        return Actor(
            actor_id=self.id,
            access_level=self.access_level,
            role=ActorRole(self.role),
            reports_to_id=self.reports_to_id,
            name=self.name,
            profile=dict(self.profile or {}),
        )

    @classmethod
    def from_dto(cls, dto: Actor, email: str | None = None) -> ActorModel:
        return cls(
            id=dto.actor_id,
            name=dto.name or str(dto.actor_id),
            email=email,
            access_level=dto.access_level,
            role=dto.role.value,
            reports_to_id=dto.reports_to_id,
            profile=dict(dto.profile) or None,
        )
