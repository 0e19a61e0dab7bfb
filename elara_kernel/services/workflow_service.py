"""
elara_kernel.services.workflow_service -- Transaction-owning orchestrator.

Responsibility:
    The public surface for every workflow operation.  Each call resolves
    the acting identity, opens a ``UnitOfWork``, runs the flush-only
    services inside it, commits, and only then dispatches notifications.
    Lost races (``ConsistencyConflictError``) are retried a bounded number
    of times in a fresh session.  Every outcome comes back as a
    ``WorkflowResult``; business exceptions never escape.

Architecture position:
    Kernel > Services.  The only service that commits.  Collaborators
    (``Clock``, ``Notifier``, ``IdentityProvider``, configuration) are
    injected at construction.

Invariants enforced:
    - One operation == one transaction (story, epic and project updates of a
      cascade commit together or not at all).
    - Notifications are dispatched after commit only; a failing notifier
      never changes the result.
    - Bounded retry: at most ``cascade_max_attempts`` attempts, then CONFLICT.

Failure modes:
    - Approving or completing a client maps to INVALID_TRANSITION; it has
      no approval workflow.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from elara_engines.access_policy import authorize
from elara_engines.validation import ValidationLimits
from elara_kernel.db.engine import build_engine, create_tables
from elara_kernel.db.unit_of_work import UnitOfWork, is_conflict_error
from elara_kernel.domain.access import AccessTarget, Operation
from elara_kernel.domain.actors import Actor
from elara_kernel.domain.clock import Clock, SystemClock
from elara_kernel.domain.collaborators import IdentityProvider, Notifier
from elara_kernel.domain.dtos import (
    ClientDraft,
    EpicChanges,
    EpicDraft,
    ProjectChanges,
    ProjectDraft,
    SlaRuleDraft,
    StoryChanges,
    StoryDraft,
)
from elara_kernel.domain.entities import CascadeResult, EntityType
from elara_kernel.exceptions import (
    AuthorizationError,
    ConsistencyConflictError,
    InvalidTransitionError,
    NotFoundError,
    WorkflowValidationError,
)
from elara_kernel.logging_config import LogContext, configure_logging, get_logger
from elara_kernel.selectors.progress_selector import ProgressSelector
from elara_kernel.services.base import enforce
from elara_kernel.services.client_service import ClientService
from elara_kernel.services.notification_dispatcher import NotificationDispatcher
from elara_kernel.services.work_item_service import WorkItemOutcome, WorkItemService

if TYPE_CHECKING:
    from elara_config.schema import WorkflowConfig

logger = get_logger("services.workflow")

DEFAULT_MAX_ATTEMPTS = 3


class WorkflowStatus(str, Enum):
    OK = "ok"
    UNCHANGED = "unchanged"
    DENIED = "denied"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    INFRASTRUCTURE_ERROR = "infrastructure_error"


_SUCCESS = frozenset({WorkflowStatus.OK, WorkflowStatus.UNCHANGED})


@dataclass(frozen=True)
class WorkflowResult:
    """Outcome of one WorkflowService call."""

    status: WorkflowStatus
    entity: Any = None
    cascade: CascadeResult | None = None
    reason: str | None = None
    error_code: str | None = None
    attempts: int = 1

    @property
    def is_success(self) -> bool:
        return self.status in _SUCCESS


@dataclass
class _Scope:
    """Services bound to one attempt's unit of work."""

    uow: UnitOfWork
    items: WorkItemService
    clients: ClientService
    progress: ProgressSelector


Work = Callable[[_Scope, Actor], WorkItemOutcome]


class WorkflowService:
    """
    Orchestrates workflow operations end to end.

    Args:
        session_factory: Zero-argument callable returning a new ``Session``.
            Each attempt gets its own session.
        clock: Source of "today" for approval end dates and validation.
        notifier: Receives post-commit notifications.
        identity: Resolves the actor when a call passes none.
        max_attempts: Attempts per operation before CONFLICT.
        limits: Field validation limits.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        identity: IdentityProvider | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        limits: ValidationLimits | None = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._dispatcher = NotificationDispatcher(notifier)
        self._identity = identity
        self._max_attempts = max_attempts
        self._limits = limits or ValidationLimits()

    @classmethod
    def from_config(
        cls,
        config: WorkflowConfig,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        identity: IdentityProvider | None = None,
        create_schema: bool = False,
    ) -> WorkflowService:
        """
        Build a service with its own engine from a loaded configuration.

        Applies the configured log level, and creates missing tables when
        ``create_schema`` is set.
        """
        configure_logging(level=config.logging.level)
        engine = build_engine(
            config.database.url,
            echo=config.database.echo,
            **config.database.pool_options(),
        )
        if create_schema:
            create_tables(engine)
        return cls(
            sessionmaker(bind=engine, expire_on_commit=False),
            clock=clock,
            notifier=notifier,
            identity=identity,
            max_attempts=config.concurrency.cascade_max_attempts,
            limits=config.validation,
        )

    @property
    def clock(self) -> Clock:
        return self._clock

    # =========================================================================
    # Execution
    # =========================================================================

    def _resolve_actor(self, actor: Actor | None) -> Actor | None:
        if actor is not None:
            return actor
        if self._identity is None:
            return None
        return self._identity.current_actor()

    def _scope(self, uow: UnitOfWork) -> _Scope:
        return _Scope(
            uow=uow,
            items=WorkItemService(uow, self._clock, self._limits),
            clients=ClientService(uow, self._clock, self._limits),
            progress=ProgressSelector(uow.session),
        )

    def _run(
        self,
        operation: str,
        actor: Actor | None,
        work: Work,
        entity_id: UUID | None = None,
    ) -> WorkflowResult:
        resolved = self._resolve_actor(actor)
        if resolved is None:
            logger.info("workflow_unauthenticated", extra={"workflow_operation": operation})
            return WorkflowResult(
                WorkflowStatus.DENIED,
                reason="authentication required",
                error_code="AUTHENTICATION_REQUIRED",
                attempts=0,
            )

        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=resolved.actor_id,
            operation=operation,
            entity_id=entity_id,
        ):
            return self._attempt_loop(operation, resolved, work)

    def _attempt_loop(self, operation: str, actor: Actor, work: Work) -> WorkflowResult:
        for attempt in range(1, self._max_attempts + 1):
            try:
                uow = UnitOfWork(self._session_factory())
                with uow:
                    outcome = work(self._scope(uow), actor)
            except ConsistencyConflictError as exc:
                logger.warning(
                    "workflow_conflict_retry",
                    extra={"attempt": attempt, "max_attempts": self._max_attempts, "detail": exc.detail},
                )
                continue
            except AuthorizationError as exc:
                return self._failure(WorkflowStatus.DENIED, exc, attempt)
            except NotFoundError as exc:
                return self._failure(WorkflowStatus.NOT_FOUND, exc, attempt)
            except InvalidTransitionError as exc:
                return self._failure(WorkflowStatus.INVALID_TRANSITION, exc, attempt)
            except WorkflowValidationError as exc:
                return self._failure(WorkflowStatus.VALIDATION_FAILED, exc, attempt)
            except SQLAlchemyError as exc:
                if is_conflict_error(exc):
                    logger.warning(
                        "workflow_conflict_retry",
                        extra={"attempt": attempt, "max_attempts": self._max_attempts, "detail": str(exc)},
                    )
                    continue
                logger.error(
                    "workflow_infrastructure_error",
                    exc_info=True,
                    extra={"workflow_operation": operation, "attempt": attempt},
                )
                return WorkflowResult(
                    WorkflowStatus.INFRASTRUCTURE_ERROR,
                    reason=type(exc).__name__,
                    error_code="INFRASTRUCTURE_ERROR",
                    attempts=attempt,
                )

            delivered = self._dispatcher.dispatch(uow.released_notifications())
            status = WorkflowStatus.OK if outcome.changed else WorkflowStatus.UNCHANGED
            logger.info(
                "workflow_operation_completed",
                extra={
                    "workflow_operation": operation,
                    "status": status.value,
                    "attempt": attempt,
                    "notifications_delivered": delivered,
                },
            )
            return WorkflowResult(
                status,
                entity=outcome.entity,
                cascade=outcome.cascade,
                attempts=attempt,
            )

        logger.error(
            "workflow_conflict_exhausted",
            extra={"workflow_operation": operation, "max_attempts": self._max_attempts},
        )
        return WorkflowResult(
            WorkflowStatus.CONFLICT,
            reason="concurrent update conflict; safe to retry",
            error_code=ConsistencyConflictError.code,
            attempts=self._max_attempts,
        )

    @staticmethod
    def _failure(status: WorkflowStatus, exc: Exception, attempt: int) -> WorkflowResult:
        reason = getattr(exc, "reason", None) or str(exc)
        logger.info(
            "workflow_operation_rejected",
            extra={"status": status.value, "error_code": getattr(exc, "code", None), "reason": reason},
        )
        return WorkflowResult(
            status,
            reason=reason,
            error_code=getattr(exc, "code", None),
            attempts=attempt,
        )

    # =========================================================================
    # Projects, epics, stories
    # =========================================================================

    def create_project(self, draft: ProjectDraft, actor: Actor | None = None) -> WorkflowResult:
        return self._run("create_project", actor, lambda s, a: s.items.create_project(draft, a))

    def create_epic(self, draft: EpicDraft, actor: Actor | None = None) -> WorkflowResult:
        return self._run("create_epic", actor, lambda s, a: s.items.create_epic(draft, a))

    def create_story(self, draft: StoryDraft, actor: Actor | None = None) -> WorkflowResult:
        return self._run("create_story", actor, lambda s, a: s.items.create_story(draft, a))

    def update_project(
        self, project_id: UUID, changes: ProjectChanges, actor: Actor | None = None
    ) -> WorkflowResult:
        return self._run(
            "update_project",
            actor,
            lambda s, a: s.items.update_project(project_id, changes, a),
            project_id,
        )

    def update_epic(
        self, epic_id: UUID, changes: EpicChanges, actor: Actor | None = None
    ) -> WorkflowResult:
        return self._run(
            "update_epic", actor, lambda s, a: s.items.update_epic(epic_id, changes, a), epic_id
        )

    def update_story(
        self, story_id: UUID, changes: StoryChanges, actor: Actor | None = None
    ) -> WorkflowResult:
        return self._run(
            "update_story", actor, lambda s, a: s.items.update_story(story_id, changes, a), story_id
        )

    def approve(
        self, entity_type: EntityType, entity_id: UUID, actor: Actor | None = None
    ) -> WorkflowResult:
        return self._run(
            f"approve_{entity_type.value}",
            actor,
            lambda s, a: s.items.approve(entity_type, entity_id, a),
            entity_id,
        )

    def complete_story(self, story_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "complete_story", actor, lambda s, a: s.items.complete_story(story_id, a), story_id
        )

    def complete(
        self, entity_type: EntityType, entity_id: UUID, actor: Actor | None = None
    ) -> WorkflowResult:
        """Complete a story, or close an epic/project whose children are all done."""
        return self._run(
            f"complete_{entity_type.value}",
            actor,
            lambda s, a: s.items.close(entity_type, entity_id, a),
            entity_id,
        )

    def delete_project(self, project_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "delete_project", actor, lambda s, a: s.items.delete_project(project_id, a), project_id
        )

    def delete_epic(self, epic_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run("delete_epic", actor, lambda s, a: s.items.delete_epic(epic_id, a), epic_id)

    def delete_story(self, story_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "delete_story", actor, lambda s, a: s.items.delete_story(story_id, a), story_id
        )

    def get_project(self, project_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "get_project",
            actor,
            lambda s, a: s.items.view(EntityType.PROJECT, project_id, a),
            project_id,
        )

    def get_epic(self, epic_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "get_epic", actor, lambda s, a: s.items.view(EntityType.EPIC, epic_id, a), epic_id
        )

    def get_story(self, story_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "get_story", actor, lambda s, a: s.items.view(EntityType.STORY, story_id, a), story_id
        )

    def get_project_progress(self, project_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        def work(scope: _Scope, acting: Actor) -> WorkItemOutcome:
            scope.items.view(EntityType.PROJECT, project_id, acting)
            progress = scope.progress.project_progress(project_id, self._clock.today())
            return WorkItemOutcome(entity=progress)

        return self._run("get_project_progress", actor, work, project_id)

    def get_sla_breaches(self, project_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        def work(scope: _Scope, acting: Actor) -> WorkItemOutcome:
            scope.items.view(EntityType.PROJECT, project_id, acting)
            breaches = scope.progress.sla_breaches(project_id, self._clock.today())
            return WorkItemOutcome(entity=tuple(breaches))

        return self._run("get_sla_breaches", actor, work, project_id)

    def list_overdue_stories(
        self, actor: Actor | None = None, assignee_id: UUID | None = None
    ) -> WorkflowResult:
        def work(scope: _Scope, acting: Actor) -> WorkItemOutcome:
            enforce(
                authorize(acting, Operation.VIEW, AccessTarget(EntityType.STORY)),
                Operation.VIEW,
                EntityType.STORY,
            )
            overdue = scope.progress.overdue_stories(self._clock.today(), assignee_id)
            return WorkItemOutcome(entity=tuple(overdue))

        return self._run("list_overdue_stories", actor, work)

    # =========================================================================
    # Clients and SLA rules
    # =========================================================================

    def create_client(self, draft: ClientDraft, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "create_client",
            actor,
            lambda s, a: WorkItemOutcome(entity=s.clients.create_client(draft, a)),
        )

    def update_client(
        self, client_id: UUID, draft: ClientDraft, actor: Actor | None = None
    ) -> WorkflowResult:
        return self._run(
            "update_client",
            actor,
            lambda s, a: WorkItemOutcome(entity=s.clients.update_client(client_id, draft, a)),
            client_id,
        )

    def delete_client(self, client_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "delete_client",
            actor,
            lambda s, a: WorkItemOutcome(entity=s.clients.delete_client(client_id, a)),
            client_id,
        )

    def get_client(self, client_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "get_client",
            actor,
            lambda s, a: WorkItemOutcome(entity=s.clients.get_client(client_id, a)),
            client_id,
        )

    def save_sla_rule(self, draft: SlaRuleDraft, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "save_sla_rule",
            actor,
            lambda s, a: WorkItemOutcome(entity=s.clients.save_sla_rule(draft, a)),
            draft.rule_id,
        )

    def delete_sla_rule(self, rule_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        return self._run(
            "delete_sla_rule",
            actor,
            lambda s, a: WorkItemOutcome(entity=s.clients.delete_sla_rule(rule_id, a)),
            rule_id,
        )
