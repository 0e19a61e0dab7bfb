"""Client and SLA rule maintenance through WorkflowService."""

from dataclasses import replace
from uuid import uuid4

import pytest

from elara_kernel.domain.dtos import ClientDraft, SlaRuleDraft, SlaStartPoint, StoryPriority
from elara_kernel.services.workflow_service import WorkflowStatus


@pytest.fixture
def standard_rule():
    return SlaRuleDraft(
        name="Standard response",
        start_point=SlaStartPoint.TASK_CREATION,
        duration_hours=48,
        escalation_delay_hours=24,
        priority=StoryPriority.HIGH,
    )


class TestClients:

    def test_senior_creates_client(self, workflow_service, org):
        result = workflow_service.create_client(
            ClientDraft(name="  Globex  ", email="ops@globex.example", contact_name="Hank"),
            org.senior,
        )

        assert result.status == WorkflowStatus.OK
        assert result.entity.name == "Globex"
        assert result.entity.email == "ops@globex.example"

    def test_manager_cannot_create_client(self, workflow_service, org):
        result = workflow_service.create_client(ClientDraft(name="Initech"), org.manager)

        assert result.status == WorkflowStatus.DENIED

    def test_duplicate_name_is_case_insensitive(self, workflow_service, org, client_id):
        result = workflow_service.create_client(ClientDraft(name="ACME CORP"), org.admin)

        assert result.status == WorkflowStatus.VALIDATION_FAILED
        assert "already exists" in result.reason

    def test_update_client(self, workflow_service, org, client_id):
        result = workflow_service.update_client(
            client_id, ClientDraft(name="Acme Corporation", email="hello@acme.example"), org.senior
        )

        assert result.status == WorkflowStatus.OK
        assert workflow_service.get_client(client_id, org.viewer).entity.name == "Acme Corporation"

    def test_client_with_projects_cannot_be_deleted(
        self, workflow_service, org, client_id, make_project
    ):
        make_project(org.manager)

        result = workflow_service.delete_client(client_id, org.admin)

        assert result.status == WorkflowStatus.DENIED
        assert result.reason == "Cannot delete a client that still has projects"

    def test_delete_unused_client(self, workflow_service, org, client_id):
        result = workflow_service.delete_client(client_id, org.admin)

        assert result.status == WorkflowStatus.OK
        assert workflow_service.get_client(client_id, org.admin).status == WorkflowStatus.NOT_FOUND


class TestSlaRules:

    def test_create_and_replace(self, workflow_service, org, standard_rule):
        created = workflow_service.save_sla_rule(standard_rule, org.senior)
        assert created.status == WorkflowStatus.OK
        assert created.entity.priority == StoryPriority.HIGH

        updated = workflow_service.save_sla_rule(
            replace(standard_rule, rule_id=created.entity.rule_id, duration_hours=72), org.senior
        )

        assert updated.entity.rule_id == created.entity.rule_id
        assert updated.entity.duration_hours == 72

    def test_plain_strings_accepted(self, workflow_service, org):
        result = workflow_service.save_sla_rule(
            SlaRuleDraft(name="Low touch", start_point="state_entry", duration_hours=120, priority="low"),
            org.senior,
        )

        assert result.status == WorkflowStatus.OK
        assert result.entity.start_point == SlaStartPoint.STATE_ENTRY

    def test_invalid_rule(self, workflow_service, org):
        result = workflow_service.save_sla_rule(
            SlaRuleDraft(name="Broken", start_point=None, duration_hours=-5), org.senior
        )

        assert result.status == WorkflowStatus.VALIDATION_FAILED
        assert "start_point" in result.reason
        assert "duration_hours" in result.reason

    def test_unknown_project(self, workflow_service, org, standard_rule):
        result = workflow_service.save_sla_rule(replace(standard_rule, project_id=uuid4()), org.senior)

        assert result.status == WorkflowStatus.NOT_FOUND

    def test_manager_cannot_manage_rules(self, workflow_service, org, standard_rule):
        assert workflow_service.save_sla_rule(standard_rule, org.manager).status == WorkflowStatus.DENIED

    def test_delete_rule(self, workflow_service, org, standard_rule):
        rule = workflow_service.save_sla_rule(standard_rule, org.senior).entity

        assert workflow_service.delete_sla_rule(rule.rule_id, org.senior).status == WorkflowStatus.OK
        assert (
            workflow_service.delete_sla_rule(rule.rule_id, org.senior).status
            == WorkflowStatus.NOT_FOUND
        )
