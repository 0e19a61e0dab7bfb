"""
Access-policy domain types (``elara_kernel.domain.access``).

Responsibility
--------------
Inputs and outputs of the access-level policy: the requested
``Operation``, the ``AccessTarget`` it applies to, and the
``AccessDecision`` the policy returns.  A denial carries a typed
``DenialCode`` and a reason string the boundary layer shows verbatim.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from elara_kernel.domain.actors import Actor
from elara_kernel.domain.entities import EntityType, GovernedEntity


class Operation(str, Enum):
    """Operations the boundary layer can request."""

    CREATE = "create"
    UPDATE = "update"
    APPROVE = "approve"
    COMPLETE = "complete"
    DELETE = "delete"
    VIEW = "view"


class DenialCode(str, Enum):
    """Machine-readable reason for a denial."""

    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_LEVEL = "insufficient_level"
    NOT_SELF = "not_self"
    NOT_DIRECT_REPORT = "not_direct_report"
    PENDING_APPROVAL = "pending_approval"
    NOT_ASSIGNING_MANAGER = "not_assigning_manager"
    NOT_APPROVER = "not_approver"
    UNAPPROVE = "unapprove"
    HAS_DEPENDENTS = "has_dependents"
    NO_TARGET = "no_target"


@dataclass(frozen=True)
class AccessTarget:
    """What an operation is aimed at.

    For CREATE, ``entity`` is None and ``proposed_manager`` /
    ``proposed_assignee`` describe the entity about to exist.  For UPDATE,
    ``changed_fields`` lists the fields the payload touches and
    ``requested_approval`` is the payload's ``is_approved`` value (None when
    absent).  ``has_dependents`` is used for client deletion.
    """

    entity_type: EntityType
    entity: GovernedEntity | None = None
    proposed_manager: Actor | None = None
    proposed_assignee: Actor | None = None
    changed_fields: frozenset[str] = field(default_factory=frozenset)
    requested_approval: bool | None = None
    has_dependents: bool = False


@dataclass(frozen=True)
class AccessDecision:
    """Allow, or deny with a reason."""

    allowed: bool
    reason: str | None = None
    denial: DenialCode | None = None

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, denial: DenialCode, reason: str) -> AccessDecision:
        return cls(allowed=False, reason=reason, denial=denial)

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AccessDecision.allow()
