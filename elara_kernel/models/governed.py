"""
Module: elara_kernel.models.governed
Responsibility: Columns and ORM guards shared by the approval-governed
    entities (Project, Epic, Story).
Architecture position: Kernel > Models.

Invariants enforced:
    - end_date is non-null iff is_approved is true (ck_<table>_approval_end_date).
    - Approval is monotonic: an UPDATE that flips is_approved from true to
      false is refused by the before_update guard.
    - Optimistic locking via VersionedMixin.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, event, inspect
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from elara_kernel.db.base import UUIDString, VersionedMixin
from elara_kernel.exceptions import InvalidTransitionError


def approval_end_date_check(table_name: str) -> CheckConstraint:
    return CheckConstraint(
        "(is_approved = TRUE AND end_date IS NOT NULL) "
        "OR (is_approved = FALSE AND end_date IS NULL)",
        name=f"ck_{table_name}_approval_end_date",
    )


class GovernedMixin(VersionedMixin):
    """Approval state plus the workflow creator."""

    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    end_date: Mapped[date | None] = mapped_column(nullable=True)

    # Workflow creator.  Nullable for rows imported without one; the audit
    # column created_by_id is always set.
    @declared_attr
    def creator_id(cls) -> Mapped[UUID | None]:
        return mapped_column(UUIDString(), ForeignKey("actors.id"), nullable=True)


def _refuse_unapproval(mapper, connection, target) -> None:
    history = inspect(target).attrs.is_approved.history
    if True in (history.deleted or ()) and not target.is_approved:
        raise InvalidTransitionError(
            mapper.class_.__tablename__,
            target.id,
            "approval cannot be revoked",
        )


def register_approval_guard(model_class: type) -> None:
    """Install the monotonic-approval before_update guard on a model."""
    if not event.contains(model_class, "before_update", _refuse_unapproval):
        event.listen(model_class, "before_update", _refuse_unapproval)
