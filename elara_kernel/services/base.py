"""
BaseService -- abstract base for the flush-only kernel services.

Responsibility:
    Common constructor for every service that mutates workflow state inside
    a caller-owned ``UnitOfWork``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush through the unit of work and
      never commit or roll back.  WorkflowService owns the transaction, so
      a cascade spanning story, epic and project is one atomic write.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session

from elara_kernel.db.unit_of_work import UnitOfWork
from elara_kernel.domain.access import AccessDecision, DenialCode, Operation
from elara_kernel.domain.clock import Clock, SystemClock
from elara_kernel.domain.entities import EntityType
from elara_kernel.exceptions import (
    AuthenticationRequiredError,
    AuthorizationDeniedError,
    InvalidTransitionError,
)
from elara_kernel.logging_config import get_logger

logger = get_logger("services.access")


class BaseService(ABC):
    """
    Contract:
        Receives the ``UnitOfWork`` of the running operation and persists
        changes with ``uow.flush()``.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only methods; those live in selectors/.
    """

    def __init__(self, uow: UnitOfWork, clock: Clock | None = None):
        self.uow = uow
        self.clock = clock or SystemClock()

    @property
    def session(self) -> Session:
        return self.uow.session


def enforce(
    decision: AccessDecision,
    operation: Operation,
    entity_type: EntityType,
    entity_id: UUID | None = None,
) -> None:
    """Turn a policy denial into the matching typed exception.

    Raises:
        InvalidTransitionError: the denial is an un-approval attempt.
        AuthorizationDeniedError: any other denial.
    """
    if decision.allowed:
        return
    logger.info(
        "access_denied",
        extra={
            "policy_operation": operation.value,
            "entity_type": entity_type.value,
            "entity_id": str(entity_id) if entity_id else None,
            "denial": decision.denial.value if decision.denial else None,
            "reason": decision.reason,
        },
    )
    if decision.denial == DenialCode.UNAPPROVE:
        raise InvalidTransitionError(entity_type.value, entity_id, decision.reason)
    if decision.denial == DenialCode.UNAUTHENTICATED:
        raise AuthenticationRequiredError()
    raise AuthorizationDeniedError(
        decision.reason,
        operation=operation.value,
        entity_type=entity_type.value,
        denial=decision.denial.value if decision.denial else None,
    )
