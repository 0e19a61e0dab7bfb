"""
Tests for HierarchySelector read paths.

Tests cover:
- Reporting-chain lookups
- Children of a project or epic as read DTOs
- Policy views: a story's manager is its project's manager
- Uniqueness and open-workload queries
"""

from uuid import uuid4

import pytest

from conftest import PROJECT_DEADLINE, TODAY

from elara_kernel.domain.entities import EntityType
from elara_kernel.exceptions import ActorNotFoundError
from elara_kernel.models.project import StoryModel
from elara_kernel.selectors.hierarchy_selector import HierarchySelector


@pytest.fixture
def selector(session):
    return HierarchySelector(session)


class TestActors:

    def test_direct_reports_by_name(self, selector, org):
        reports = selector.direct_reports(org.manager.actor_id)

        assert [actor.name for actor in reports] == ["viewer", "worker"]
        assert all(actor.reports_to_id == org.manager.actor_id for actor in reports)

    def test_unknown_actor(self, selector, org):
        assert selector.find_actor(None) is None
        assert selector.find_actor(uuid4()) is None
        with pytest.raises(ActorNotFoundError):
            selector.get_actor(uuid4())

    def test_actor_round_trip(self, selector, org):
        assert selector.get_actor(org.worker.actor_id) == org.worker


class TestChildren:

    def test_epics_and_stories_of(self, selector, org, make_project, make_epic, make_story):
        project = make_project(org.manager)
        epics = [make_epic(project.project_id, org.manager) for _ in range(2)]
        stories = [make_story(epics[0].epic_id, org.worker, assignee=org.worker) for _ in range(3)]

        assert {e.epic_id for e in selector.epics_of(project.project_id)} == {
            e.epic_id for e in epics
        }
        assert {s.story_id for s in selector.stories_of(epics[0].epic_id)} == {
            s.story_id for s in stories
        }
        assert selector.stories_of(epics[1].epic_id) == []

    def test_child_end_dates(self, selector, workflow_service, org, pending_epic, make_story):
        project, epic = pending_epic
        done = make_story(epic.epic_id, org.worker, assignee=org.worker)
        make_story(epic.epic_id, org.worker, assignee=org.worker)
        workflow_service.complete_story(done.story_id, org.worker)

        dates = selector.child_end_dates(EntityType.EPIC, epic.epic_id)

        assert sorted(dates, key=lambda d: d is None) == [TODAY, None]
        assert selector.child_end_dates(EntityType.PROJECT, project.project_id) == [None]

    def test_child_end_dates_of_story(self, selector):
        with pytest.raises(ValueError):
            selector.child_end_dates(EntityType.STORY, uuid4())

    def test_project_deadline_for_epic(self, selector, pending_epic):
        _, epic = pending_epic

        assert selector.project_deadline_for_epic(epic.epic_id) == PROJECT_DEADLINE
        assert selector.project_deadline_for_epic(uuid4()) is None


class TestPolicyViews:

    def test_story_manager_is_project_manager(
        self, session, selector, org, make_project, make_epic, make_story
    ):
        project = make_project(org.senior, manager=org.manager)
        epic = make_epic(project.project_id, org.senior)
        story = make_story(epic.epic_id, org.worker, assignee=org.worker)

        view = selector.governed(session.get(StoryModel, story.story_id))

        assert view.entity_type == EntityType.STORY
        assert view.manager == org.manager
        assert view.creator == org.worker
        assert view.assignee == org.worker
        assert view.parent_id == epic.epic_id


class TestUniquenessAndWorkload:

    def test_project_name_case_insensitive(self, selector, org, make_project, client_id):
        project = make_project(org.manager, name="Website Relaunch")

        assert selector.project_name_taken(client_id, "  website relaunch ")
        assert not selector.project_name_taken(client_id, "website relaunch", project.project_id)
        assert not selector.project_name_taken(uuid4(), "website relaunch")

    def test_open_hours_ignore_completed(
        self, selector, workflow_service, org, pending_epic, make_story
    ):
        _, epic = pending_epic
        first = make_story(epic.epic_id, org.worker, assignee=org.worker, estimated_hours=10)
        make_story(epic.epic_id, org.worker, assignee=org.worker, estimated_hours=15)
        make_story(epic.epic_id, org.worker, assignee=org.worker)

        assert selector.assignee_open_hours(org.worker.actor_id) == 25
        assert selector.assignee_open_hours(org.worker.actor_id, first.story_id) == 15

        workflow_service.complete_story(first.story_id, org.worker)

        assert selector.assignee_open_hours(org.worker.actor_id) == 15

    def test_client_lookups(self, selector, client_id, make_project, org):
        assert selector.client_name_taken("ACME CORP")
        assert not selector.client_name_taken("Acme Corp", client_id)
        assert not selector.client_has_projects(client_id)

        make_project(org.manager)

        assert selector.client_has_projects(client_id)
