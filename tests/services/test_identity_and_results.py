"""
Identity resolution and the WorkflowResult contract.

Tests cover:
- Missing identity -> DENIED without touching the database
- IdentityProvider fallback when no actor is passed
- Typed failures map to result statuses and error codes
- Clients have no approval workflow: approve and complete are refused
- Every operation logs under one correlation id
"""

from uuid import uuid4

import pytest

from conftest import PROJECT_DEADLINE, StaticIdentity

from elara_kernel.domain.dtos import ClientDraft, ProjectDraft
from elara_kernel.domain.entities import EntityType
from elara_kernel.services.workflow_service import WorkflowService, WorkflowStatus


class TestIdentity:

    def test_no_actor_is_denied(self, workflow_service, client_id):
        result = workflow_service.create_project(
            ProjectDraft(name="Anonymous", client_id=client_id, deadline=PROJECT_DEADLINE)
        )

        assert result.status == WorkflowStatus.DENIED
        assert result.reason == "authentication required"
        assert result.error_code == "AUTHENTICATION_REQUIRED"
        assert result.attempts == 0

    def test_identity_provider_fallback(
        self, session_factory, deterministic_clock, recording_notifier, org, client_id
    ):
        service = WorkflowService(
            session_factory,
            clock=deterministic_clock,
            notifier=recording_notifier,
            identity=StaticIdentity(org.manager),
        )

        result = service.create_project(
            ProjectDraft(name="Provided", client_id=client_id, deadline=PROJECT_DEADLINE)
        )

        assert result.status == WorkflowStatus.OK
        assert result.entity.creator_id == org.manager.actor_id

    def test_provider_without_session_is_denied(self, session_factory, client_id):
        service = WorkflowService(session_factory, identity=StaticIdentity(None))

        result = service.get_client(client_id)

        assert result.status == WorkflowStatus.DENIED
        assert result.error_code == "AUTHENTICATION_REQUIRED"

    def test_explicit_actor_wins(self, session_factory, deterministic_clock, org, client_id):
        service = WorkflowService(
            session_factory, clock=deterministic_clock, identity=StaticIdentity(org.viewer)
        )

        result = service.create_project(
            ProjectDraft(name="Explicit", client_id=client_id, deadline=PROJECT_DEADLINE),
            org.senior,
        )

        assert result.entity.creator_id == org.senior.actor_id


class TestResultMapping:

    def test_unknown_story(self, workflow_service, org):
        result = workflow_service.complete_story(uuid4(), org.worker)

        assert result.status == WorkflowStatus.NOT_FOUND
        assert result.error_code == "ENTITY_NOT_FOUND"
        assert not result.is_success

    def test_unknown_manager(self, workflow_service, org, client_id):
        result = workflow_service.create_project(
            ProjectDraft(
                name="Ghost managed",
                client_id=client_id,
                deadline=PROJECT_DEADLINE,
                manager_id=uuid4(),
            ),
            org.senior,
        )

        assert result.status == WorkflowStatus.NOT_FOUND
        assert result.error_code == "ACTOR_NOT_FOUND"

    def test_level_three_cannot_name_another_manager(self, workflow_service, org, client_id):
        result = workflow_service.create_project(
            ProjectDraft(
                name="Delegated",
                client_id=client_id,
                deadline=PROJECT_DEADLINE,
                manager_id=org.worker.actor_id,
            ),
            org.manager,
        )

        assert result.status == WorkflowStatus.DENIED
        assert "managed by themselves" in result.reason

    def test_approving_a_client_is_an_invalid_transition(self, workflow_service, org, client_id):
        result = workflow_service.approve(EntityType.CLIENT, client_id, org.admin)

        assert result.status == WorkflowStatus.INVALID_TRANSITION
        assert result.error_code == "INVALID_TRANSITION"
        assert "no approval workflow" in result.reason

    def test_completing_a_client_is_an_invalid_transition(self, workflow_service, org, client_id):
        result = workflow_service.complete(EntityType.CLIENT, client_id, org.admin)

        assert result.status == WorkflowStatus.INVALID_TRANSITION
        assert result.error_code == "INVALID_TRANSITION"

    def test_max_attempts_must_be_positive(self, session_factory):
        with pytest.raises(ValueError):
            WorkflowService(session_factory, max_attempts=0)


class TestOperationLogging:

    def test_completion_record_carries_context(
        self, workflow_service, org, make_project, captured_logs
    ):
        project = make_project(org.senior)

        records = captured_logs()
        completed = [r for r in records if r["message"] == "workflow_operation_completed"]
        assert completed[-1]["operation"] == "create_project"
        assert completed[-1]["actor_id"] == str(org.senior.actor_id)
        assert completed[-1]["status"] == "ok"

        created = next(r for r in records if r["message"] == "project_created")
        assert created["project_id"] == str(project.project_id)
        assert created["correlation_id"] == completed[-1]["correlation_id"]

    def test_rejection_is_logged(self, workflow_service, org, client_id, captured_logs):
        workflow_service.create_client(ClientDraft(name="Initech"), org.manager)

        rejected = [r for r in captured_logs() if r["message"] == "workflow_operation_rejected"]
        assert rejected[-1]["status"] == "denied"
        assert rejected[-1]["error_code"] == "AUTHORIZATION_DENIED"
