"""
Actor domain types (``elara_kernel.domain.actors``).

Responsibility
--------------
A single ``Actor`` record replaces the Admin/Manager/Employee/User class
hierarchy: an integer access level plus a ``role`` tag, with role-specific
attributes carried in an optional ``profile`` payload rather than via
inheritance.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Access levels are totally ordered integers in ``[1, 5]``.
* "Senior" means access level >= 4; "admin" means access level >= 5.
* ``reports_to_id`` is a weak reference (id lookup only).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

MIN_ACCESS_LEVEL = 1
MAX_ACCESS_LEVEL = 5

EMPLOYEE_ACCESS_LEVEL = 2
MANAGER_ACCESS_LEVEL = 3
SENIOR_ACCESS_LEVEL = 4
ADMIN_ACCESS_LEVEL = 5


class ActorRole(str, Enum):
    """Role tag carried alongside the access level."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"
    USER = "user"


def role_for_access_level(access_level: int) -> ActorRole:
    """Default role tag for an access level."""
    if access_level >= ADMIN_ACCESS_LEVEL:
        return ActorRole.ADMIN
    if access_level >= MANAGER_ACCESS_LEVEL:
        return ActorRole.MANAGER
    if access_level >= EMPLOYEE_ACCESS_LEVEL:
        return ActorRole.EMPLOYEE
    return ActorRole.USER


@dataclass(frozen=True)
class Actor:
    """An authenticated identity with its access level and reporting link."""

    actor_id: UUID
    access_level: int
    role: ActorRole | None = None
    reports_to_id: UUID | None = None
    name: str = ""
    profile: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not MIN_ACCESS_LEVEL <= self.access_level <= MAX_ACCESS_LEVEL:
            raise ValueError(
                f"access_level must be between {MIN_ACCESS_LEVEL} and "
                f"{MAX_ACCESS_LEVEL}, got {self.access_level}"
            )
        if self.role is None:
            object.__setattr__(self, "role", role_for_access_level(self.access_level))

    @property
    def is_senior(self) -> bool:
        return self.access_level >= SENIOR_ACCESS_LEVEL

    @property
    def is_admin(self) -> bool:
        return self.access_level >= ADMIN_ACCESS_LEVEL

    def is_direct_report_of(self, other: Actor) -> bool:
        """True when this actor reports straight to ``other`` (depth 1)."""
        return self.reports_to_id is not None and self.reports_to_id == other.actor_id

    def is_same_as(self, other: Actor | None) -> bool:
        return other is not None and other.actor_id == self.actor_id
