"""
Tests for the pure approval engine: approval authority and apply-approval.
"""

from dataclasses import replace
from datetime import date
from uuid import uuid4

from elara_engines.approval import (
    NOT_APPROVER_REASON,
    apply_approval,
    auto_approves_at_creation,
    can_approve,
    check_approval_authority,
    resolve_effective_creator,
)
from elara_kernel.domain.access import DenialCode
from elara_kernel.domain.actors import Actor
from elara_kernel.domain.entities import ApprovalState, EntityType, GovernedEntity

TODAY = date(2024, 3, 15)


def make_actor(level: int, reports_to: Actor | None = None) -> Actor:
    return Actor(
        actor_id=uuid4(),
        access_level=level,
        reports_to_id=reports_to.actor_id if reports_to else None,
    )


def make_entity(creator: Actor | None, manager: Actor | None = None) -> GovernedEntity:
    return GovernedEntity(
        entity_type=EntityType.EPIC,
        entity_id=uuid4(),
        creator=creator,
        manager=manager,
    )


class TestApprovalAuthority:

    def test_senior_self_approval(self):
        senior = make_actor(4)
        assert can_approve(senior, make_entity(senior))

    def test_non_senior_cannot_self_approve(self):
        manager = make_actor(3, reports_to=make_actor(4))
        decision = check_approval_authority(manager, make_entity(manager))

        assert not decision.allowed
        assert decision.denial == DenialCode.NOT_APPROVER
        assert decision.reason == NOT_APPROVER_REASON

    def test_reporting_manager_approves(self):
        boss = make_actor(3)
        worker = make_actor(2, reports_to=boss)
        assert can_approve(boss, make_entity(worker))

    def test_grand_manager_cannot_approve(self):
        top = make_actor(5)
        boss = make_actor(3, reports_to=top)
        worker = make_actor(2, reports_to=boss)

        assert not can_approve(top, make_entity(worker))

    def test_senior_reports_to_approver(self):
        admin = make_actor(5)
        senior = make_actor(4, reports_to=admin)
        assert can_approve(admin, make_entity(senior))

    def test_legacy_row_falls_back_to_manager(self):
        boss = make_actor(4)
        manager = make_actor(3, reports_to=boss)
        entity = make_entity(creator=None, manager=manager)

        assert resolve_effective_creator(entity) == manager
        assert can_approve(boss, entity)

    def test_no_creator_and_no_manager_is_denied(self):
        decision = check_approval_authority(make_actor(5), make_entity(creator=None))
        assert decision.denial == DenialCode.NOT_APPROVER


class TestApplyApproval:

    def test_sets_approved_and_end_date(self):
        entity = make_entity(make_actor(2))

        approved = apply_approval(entity, TODAY)

        assert approved.is_approved
        assert approved.end_date == TODAY
        assert approved.state == ApprovalState.COMPLETED
        assert entity.state == ApprovalState.PENDING

    def test_idempotent_on_approved(self):
        entity = replace(make_entity(make_actor(2)), is_approved=True, end_date=date(2024, 1, 2))

        assert apply_approval(entity, TODAY) is entity

    def test_twice_equals_once(self):
        entity = make_entity(make_actor(2))

        once = apply_approval(entity, TODAY)
        twice = apply_approval(once, date(2024, 4, 1))

        assert twice == once
        assert twice.end_date == TODAY


class TestAutoApprovalAtCreation:

    def test_senior_levels(self):
        assert auto_approves_at_creation(make_actor(4))
        assert auto_approves_at_creation(make_actor(5))

    def test_lower_levels(self):
        for level in (1, 2, 3):
            assert not auto_approves_at_creation(make_actor(level))
