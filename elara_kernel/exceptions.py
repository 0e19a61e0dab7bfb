"""
Typed Exception Hierarchy for the Workflow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The workflow boundary turns every business-rule failure into a typed
result. That only works if failures are caught by TYPE, never by parsing
message strings:

Example - WRONG way to handle errors:
    try:
        service.complete_story(story_id, actor)
    except Exception as e:
        if "reporting manager" in str(e):  # FRAGILE - wording changes
            ...

Example - RIGHT way (what this module enables):
    try:
        approval.approve(model, actor)
    except AuthorizationDeniedError as e:
        return denied(code=e.code, reason=e.reason)

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (entity_type, entity_id, ...)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ElaraKernelError:

    ElaraKernelError (base)
    |
    +-- AuthorizationError
    |   +-- AuthorizationDeniedError
    |   +-- AuthenticationRequiredError
    |
    +-- NotFoundError
    |   +-- EntityNotFoundError
    |   +-- ActorNotFoundError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- WorkflowValidationError
    |
    +-- ConcurrencyError
        +-- ConsistencyConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                     | When Raised
----------------|--------------------------|--------------------------------------
Authorization   | AUTHORIZATION_DENIED     | Access policy or approval rule denied
                | AUTHENTICATION_REQUIRED  | No identity could be resolved
----------------|--------------------------|--------------------------------------
Not found       | ENTITY_NOT_FOUND         | Client/project/epic/story/rule absent
                | ACTOR_NOT_FOUND          | Referenced manager/assignee absent
----------------|--------------------------|--------------------------------------
Workflow        | INVALID_TRANSITION       | Un-approve, close with no children
                | VALIDATION_FAILED        | Field-level business validation
----------------|--------------------------|--------------------------------------
Concurrency     | CONSISTENCY_CONFLICT     | Stale row version / deadlock at flush

===============================================================================
"""

from typing import Any


class ElaraKernelError(Exception):
    """
    Base exception for all workflow kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ELARA_KERNEL_ERROR"


# Authorization exceptions


class AuthorizationError(ElaraKernelError):
    """Base exception for authorization failures."""

    code: str = "AUTHORIZATION_ERROR"


class AuthorizationDeniedError(AuthorizationError):
    """The access policy or approval-authority rule denied the operation."""

    code: str = "AUTHORIZATION_DENIED"

    def __init__(
        self,
        reason: str,
        operation: str | None = None,
        entity_type: str | None = None,
        denial: str | None = None,
    ):
        self.reason = reason
        self.operation = operation
        self.entity_type = entity_type
        self.denial = denial
        super().__init__(reason)


class AuthenticationRequiredError(AuthorizationError):
    """No calling identity could be resolved."""

    code: str = "AUTHENTICATION_REQUIRED"

    def __init__(self):
        self.reason = "authentication required"
        super().__init__(self.reason)


# Lookup exceptions


class NotFoundError(ElaraKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class EntityNotFoundError(NotFoundError):
    """Referenced client, project, epic, story or SLA rule does not exist."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} not found: {entity_id}")


class ActorNotFoundError(NotFoundError):
    """Referenced actor (manager, assignee, creator) does not exist."""

    code: str = "ACTOR_NOT_FOUND"

    def __init__(self, actor_id: Any):
        self.actor_id = str(actor_id)
        super().__init__(f"Actor not found: {actor_id}")


# Workflow exceptions


class WorkflowError(ElaraKernelError):
    """Base exception for approval/completion state machine errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Requested state change is not allowed by the approval state machine."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity_type: str, entity_id: Any, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(f"Invalid transition on {entity_type} {entity_id}: {reason}")


class WorkflowValidationError(WorkflowError):
    """One or more fields failed business validation."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, entity_type: str, issues: list[tuple[str, str]]):
        self.entity_type = entity_type
        self.issues = list(issues)
        self.reason = "; ".join(f"{field}: {message}" for field, message in self.issues)
        super().__init__(f"{entity_type} validation failed: {self.reason}")


# Concurrency exceptions


class ConcurrencyError(ElaraKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ConsistencyConflictError(ConcurrencyError):
    """A concurrent transaction changed a row this transaction depends on."""

    code: str = "CONSISTENCY_CONFLICT"

    def __init__(self, entity_type: str | None = None, detail: str | None = None):
        self.entity_type = entity_type
        self.detail = detail
        super().__init__(
            f"Consistency conflict on {entity_type or 'unknown entity'}: "
            f"{detail or 'row was modified by another transaction'}"
        )
