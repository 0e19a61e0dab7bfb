"""
Hypothesis-based properties of the access and approval rules.

Properties checked over generated reporting chains:
- Creation: level 3 only for itself, level 4 for itself or direct reports
- Story assignment: level 2 self only, level 3 self or direct reports
- Approval authority: senior self-approval or the creator's reporting manager
- Approval is idempotent and never revoked
- A parent completes only with at least one child, all complete
"""

from datetime import date, timedelta
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from elara_engines.access_policy import authorize
from elara_engines.approval import apply_approval, check_approval_authority
from elara_engines.cascade import ParentCompletion, evaluate_parent_completion, incomplete_count
from elara_kernel.domain.access import AccessTarget, DenialCode, Operation
from elara_kernel.domain.actors import Actor
from elara_kernel.domain.entities import EntityType, GovernedEntity

pytestmark = pytest.mark.slow

# The suite's autouse fixtures only reset log context between examples
quick = settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
thorough = settings(quick, max_examples=200)

levels = st.integers(min_value=1, max_value=5)
end_dates = st.one_of(st.none(), st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31)))


@composite
def reporting_chain(draw, size: int = 6) -> list[Actor]:
    """Actors where each one may report to any actor generated before it."""
    actors: list[Actor] = []
    for _ in range(size):
        manager = draw(st.one_of(st.none(), st.sampled_from(tuple(actors)))) if actors else None
        actors.append(
            Actor(
                actor_id=uuid4(),
                access_level=draw(levels),
                reports_to_id=manager.actor_id if manager else None,
            )
        )
    return actors


@composite
def actor_pair(draw) -> tuple[Actor, Actor]:
    chain = draw(reporting_chain())
    return draw(st.sampled_from(chain)), draw(st.sampled_from(chain))


def governed(entity_type, creator, manager=None, is_approved=False, end_date=None):
    return GovernedEntity(
        entity_type=entity_type,
        entity_id=uuid4(),
        creator=creator,
        manager=manager or creator,
        is_approved=is_approved,
        end_date=end_date,
        parent_id=uuid4(),
    )


class TestCreationProperties:

    @thorough
    @given(pair=actor_pair(), entity_type=st.sampled_from([EntityType.PROJECT, EntityType.EPIC]))
    def test_managed_creation(self, pair, entity_type):
        actor, manager = pair
        decision = authorize(actor, Operation.CREATE, AccessTarget(entity_type, proposed_manager=manager))

        if actor.access_level < 3:
            expected = False
        elif actor.is_same_as(manager):
            expected = True
        elif actor.access_level == 3:
            expected = False
        elif actor.access_level == 4:
            expected = manager.is_direct_report_of(actor)
        else:
            expected = True
        assert decision.allowed is expected

    @thorough
    @given(pair=actor_pair())
    def test_story_assignment(self, pair):
        actor, assignee = pair
        decision = authorize(
            actor, Operation.CREATE, AccessTarget(EntityType.STORY, proposed_assignee=assignee)
        )

        if actor.access_level < 2:
            expected = False
        elif actor.is_same_as(assignee) or actor.access_level >= 4:
            expected = True
        elif actor.access_level == 2:
            expected = False
        else:
            expected = assignee.is_direct_report_of(actor)
        assert decision.allowed is expected

    @quick
    @given(operation=st.sampled_from(list(Operation)), entity_type=st.sampled_from(list(EntityType)))
    def test_unauthenticated_always_denied(self, operation, entity_type):
        decision = authorize(None, operation, AccessTarget(entity_type))

        assert not decision.allowed
        assert decision.denial == DenialCode.UNAUTHENTICATED


class TestApprovalProperties:

    @thorough
    @given(
        pair=actor_pair(),
        entity_type=st.sampled_from([EntityType.PROJECT, EntityType.EPIC, EntityType.STORY]),
    )
    def test_approval_authority(self, pair, entity_type):
        actor, creator = pair
        decision = check_approval_authority(actor, governed(entity_type, creator))

        expected = (creator.is_senior and actor.is_same_as(creator)) or (
            creator.reports_to_id == actor.actor_id
        )
        assert decision.allowed is expected

    @quick
    @given(pair=actor_pair())
    def test_non_senior_never_self_approves(self, pair):
        actor, _ = pair
        assume(not actor.is_senior)
        assert not check_approval_authority(actor, governed(EntityType.STORY, actor)).allowed

    @quick
    @given(end_date=end_dates, today=st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31)))
    def test_apply_approval_idempotent(self, end_date, today):
        entity = governed(EntityType.STORY, None, end_date=end_date)

        once = apply_approval(entity, today)
        twice = apply_approval(once, today + timedelta(days=5))

        assert once.is_approved
        assert once.end_date == (end_date or today)
        assert twice is once

    @thorough
    @given(
        pair=actor_pair(),
        entity_type=st.sampled_from([EntityType.PROJECT, EntityType.EPIC, EntityType.STORY]),
        fields=st.frozensets(st.sampled_from(["name", "deliverables", "is_approved"])),
    )
    def test_approval_never_revoked(self, pair, entity_type, fields):
        actor, creator = pair
        entity = governed(entity_type, creator, is_approved=True, end_date=date(2024, 1, 1))
        target = AccessTarget(
            entity_type, entity=entity, changed_fields=fields, requested_approval=False
        )

        assert not authorize(actor, Operation.UPDATE, target).allowed


class TestCascadeProperties:

    @quick
    @given(children=st.lists(end_dates, max_size=12))
    def test_completion_requires_children(self, children):
        outcome = evaluate_parent_completion(None, children)

        if not children:
            assert outcome == ParentCompletion.EMPTY
        elif all(child is not None for child in children):
            assert outcome == ParentCompletion.COMPLETE
        else:
            assert outcome == ParentCompletion.INCOMPLETE
            assert incomplete_count(children) > 0

    @quick
    @given(parent=st.dates(), children=st.lists(end_dates, max_size=12))
    def test_completed_parent_is_never_rewritten(self, parent, children):
        assert evaluate_parent_completion(parent, children) == ParentCompletion.ALREADY_COMPLETE

    @quick
    @given(children=st.lists(end_dates, max_size=12))
    def test_incomplete_count_matches(self, children):
        assert incomplete_count(children) == children.count(None)
