"""
elara_kernel.services.client_service -- Clients and SLA rules.

Responsibility:
    Create, update, delete and read clients; upsert and delete SLA rules.
    All writes need a senior actor (access level 4 or higher); reads are
    open to any authenticated actor.

Architecture position:
    Kernel > Services.  Flush-only, like every service in this package.

Failure modes:
    - AuthorizationDeniedError below level 4, or when deleting a client that
      still owns projects.
    - EntityNotFoundError for unknown client, rule or project ids.
    - WorkflowValidationError for invalid names, emails or SLA values.
"""

from __future__ import annotations

from uuid import UUID

from elara_engines.access_policy import authorize
from elara_engines.validation import (
    ValidationIssue,
    ValidationLimits,
    validate_client_draft,
    validate_sla_rule_draft,
)
from elara_kernel.db.unit_of_work import UnitOfWork
from elara_kernel.domain.access import AccessTarget, Operation
from elara_kernel.domain.actors import Actor
from elara_kernel.domain.clock import Clock
from elara_kernel.domain.dtos import ClientDraft, ClientView, SlaRuleDraft, SlaRuleView
from elara_kernel.domain.entities import EntityType
from elara_kernel.exceptions import EntityNotFoundError, WorkflowValidationError
from elara_kernel.logging_config import get_logger
from elara_kernel.models.client import ClientModel, SlaRuleModel
from elara_kernel.models.project import ProjectModel
from elara_kernel.selectors.hierarchy_selector import HierarchySelector
from elara_kernel.services.base import BaseService, enforce

logger = get_logger("services.clients")


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


class ClientService(BaseService):
    """Client and SLA rule maintenance."""

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock | None = None,
        limits: ValidationLimits | None = None,
    ):
        super().__init__(uow, clock)
        self._limits = limits or ValidationLimits()
        self._selector = HierarchySelector(uow.session)

    def _load_client(self, client_id: UUID) -> ClientModel:
        client = self.session.get(ClientModel, client_id)
        if client is None:
            raise EntityNotFoundError(EntityType.CLIENT.value, client_id)
        return client

    def _load_rule(self, rule_id: UUID) -> SlaRuleModel:
        rule = self.session.get(SlaRuleModel, rule_id)
        if rule is None:
            raise EntityNotFoundError(EntityType.SLA_RULE.value, rule_id)
        return rule

    @staticmethod
    def _raise_issues(entity_type: EntityType, issues: list[ValidationIssue]) -> None:
        if issues:
            raise WorkflowValidationError(
                entity_type.value, [issue.as_tuple() for issue in issues]
            )

    # =========================================================================
    # Clients
    # =========================================================================

    def create_client(self, draft: ClientDraft, actor: Actor) -> ClientView:
        enforce(
            authorize(actor, Operation.CREATE, AccessTarget(EntityType.CLIENT)),
            Operation.CREATE,
            EntityType.CLIENT,
        )
        name_taken = bool(draft.name) and self._selector.client_name_taken(draft.name)
        self._raise_issues(
            EntityType.CLIENT, validate_client_draft(draft, self._limits, name_taken=name_taken)
        )

        client = ClientModel(
            name=draft.name.strip(),
            email=draft.email.strip() if draft.email else None,
            contact_name=draft.contact_name,
            created_by_id=actor.actor_id,
        )
        self.session.add(client)
        self.uow.flush(EntityType.CLIENT.value)
        logger.info("client_created", extra={"client_id": str(client.id)})
        return client.to_dto()

    def update_client(self, client_id: UUID, draft: ClientDraft, actor: Actor) -> ClientView:
        """Replace a client's name and contact details."""
        client = self._load_client(client_id)
        enforce(
            authorize(actor, Operation.UPDATE, AccessTarget(EntityType.CLIENT)),
            Operation.UPDATE,
            EntityType.CLIENT,
            client_id,
        )
        name_taken = bool(draft.name) and self._selector.client_name_taken(
            draft.name, exclude_id=client.id
        )
        self._raise_issues(
            EntityType.CLIENT, validate_client_draft(draft, self._limits, name_taken=name_taken)
        )

        client.name = draft.name.strip()
        client.email = draft.email.strip() if draft.email else None
        client.contact_name = draft.contact_name
        client.updated_by_id = actor.actor_id
        self.uow.flush(EntityType.CLIENT.value)
        logger.info("client_updated", extra={"client_id": str(client.id)})
        return client.to_dto()

    def delete_client(self, client_id: UUID, actor: Actor) -> ClientView:
        client = self._load_client(client_id)
        enforce(
            authorize(
                actor,
                Operation.DELETE,
                AccessTarget(
                    EntityType.CLIENT,
                    has_dependents=self._selector.client_has_projects(client.id),
                ),
            ),
            Operation.DELETE,
            EntityType.CLIENT,
            client_id,
        )
        view = client.to_dto()
        self.session.delete(client)
        self.uow.flush(EntityType.CLIENT.value)
        logger.info("client_deleted", extra={"client_id": str(client_id)})
        return view

    def get_client(self, client_id: UUID, actor: Actor) -> ClientView:
        client = self._load_client(client_id)
        enforce(
            authorize(actor, Operation.VIEW, AccessTarget(EntityType.CLIENT)),
            Operation.VIEW,
            EntityType.CLIENT,
            client_id,
        )
        return client.to_dto()

    # =========================================================================
    # SLA rules
    # =========================================================================

    def save_sla_rule(self, draft: SlaRuleDraft, actor: Actor) -> SlaRuleView:
        """Create a rule, or replace it when ``draft.rule_id`` names one."""
        operation = Operation.UPDATE if draft.rule_id else Operation.CREATE
        enforce(
            authorize(actor, operation, AccessTarget(EntityType.SLA_RULE)),
            operation,
            EntityType.SLA_RULE,
            draft.rule_id,
        )
        self._raise_issues(EntityType.SLA_RULE, validate_sla_rule_draft(draft))
        if draft.project_id is not None and self.session.get(ProjectModel, draft.project_id) is None:
            raise EntityNotFoundError(EntityType.PROJECT.value, draft.project_id)

        if draft.rule_id:
            rule = self._load_rule(draft.rule_id)
            rule.updated_by_id = actor.actor_id
        else:
            rule = SlaRuleModel(created_by_id=actor.actor_id, is_active=True)
            self.session.add(rule)

        rule.name = draft.name.strip()
        rule.project_id = draft.project_id
        rule.start_point = _enum_value(draft.start_point)
        rule.duration_hours = draft.duration_hours
        rule.escalation_delay_hours = draft.escalation_delay_hours
        rule.priority = _enum_value(draft.priority)
        self.uow.flush(EntityType.SLA_RULE.value)

        logger.info(
            "sla_rule_saved",
            extra={
                "rule_id": str(rule.id),
                "project_id": str(rule.project_id) if rule.project_id else None,
                "duration_hours": rule.duration_hours,
            },
        )
        return rule.to_dto()

    def delete_sla_rule(self, rule_id: UUID, actor: Actor) -> SlaRuleView:
        rule = self._load_rule(rule_id)
        enforce(
            authorize(actor, Operation.DELETE, AccessTarget(EntityType.SLA_RULE)),
            Operation.DELETE,
            EntityType.SLA_RULE,
            rule_id,
        )
        view = rule.to_dto()
        self.session.delete(rule)
        self.uow.flush(EntityType.SLA_RULE.value)
        logger.info("sla_rule_deleted", extra={"rule_id": str(rule_id)})
        return view
