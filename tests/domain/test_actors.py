"""Tests for the Actor value object and reporting relations."""

from uuid import uuid4

import pytest

from elara_kernel.domain.actors import Actor, ActorRole, role_for_access_level


class TestActor:

    @pytest.mark.parametrize("level", [0, 6, -1])
    def test_access_level_range(self, level):
        with pytest.raises(ValueError, match="access_level"):
            Actor(actor_id=uuid4(), access_level=level)

    @pytest.mark.parametrize(
        "level, role",
        [
            (1, ActorRole.USER),
            (2, ActorRole.EMPLOYEE),
            (3, ActorRole.MANAGER),
            (4, ActorRole.MANAGER),
            (5, ActorRole.ADMIN),
        ],
    )
    def test_default_role(self, level, role):
        assert role_for_access_level(level) == role
        assert Actor(actor_id=uuid4(), access_level=level).role == role

    def test_explicit_role_kept(self):
        actor = Actor(actor_id=uuid4(), access_level=4, role=ActorRole.ADMIN)
        assert actor.role == ActorRole.ADMIN

    def test_seniority(self):
        assert not Actor(actor_id=uuid4(), access_level=3).is_senior
        assert Actor(actor_id=uuid4(), access_level=4).is_senior
        assert not Actor(actor_id=uuid4(), access_level=4).is_admin
        assert Actor(actor_id=uuid4(), access_level=5).is_admin

    def test_direct_report_is_depth_one(self):
        top = Actor(actor_id=uuid4(), access_level=5)
        middle = Actor(actor_id=uuid4(), access_level=4, reports_to_id=top.actor_id)
        bottom = Actor(actor_id=uuid4(), access_level=3, reports_to_id=middle.actor_id)

        assert middle.is_direct_report_of(top)
        assert bottom.is_direct_report_of(middle)
        assert not bottom.is_direct_report_of(top)
        assert not top.is_direct_report_of(top)

    def test_profile_ignored_for_equality(self):
        actor_id = uuid4()
        first = Actor(actor_id=actor_id, access_level=2, profile={"department": "Ops"})
        second = Actor(actor_id=actor_id, access_level=2)
        assert first == second

    def test_is_same_as(self):
        actor = Actor(actor_id=uuid4(), access_level=2)
        assert actor.is_same_as(actor)
        assert not actor.is_same_as(None)
        assert not actor.is_same_as(Actor(actor_id=uuid4(), access_level=2))
