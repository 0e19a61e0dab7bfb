"""
Lost races are retried in a fresh transaction, a bounded number of times.

Tests cover:
- A rival commit between load and flush raises a version conflict; the
  operation retries and succeeds without duplicate notifications
- Conflicts on every attempt end in CONFLICT with nothing written
- Two workers completing the last sibling stories at once complete the
  epic exactly once (PostgreSQL only)
"""

import os
import threading

import pytest
from sqlalchemy import event

from elara_kernel.domain.collaborators import NotificationEvent
from elara_kernel.exceptions import ConsistencyConflictError
from elara_kernel.models.project import EpicModel, StoryModel
from elara_kernel.services.cascade_service import CascadeService
from elara_kernel.services.workflow_service import WorkflowService, WorkflowStatus

pytestmark = pytest.mark.concurrency


class RacingSessionFactory:
    """Session factory whose first ``races`` sessions lose a race on their first flush."""

    def __init__(self, base_factory, story_id, races: int = 1):
        self._base = base_factory
        self._story_id = story_id
        self._races = races
        self.sessions_created = 0

    def __call__(self):
        session = self._base()
        self.sessions_created += 1
        if self._races > 0:
            self._races -= 1
            event.listen(session, "before_flush", self._rival_commit, once=True)
        return session

    def _rival_commit(self, session, flush_context, instances):
        rival = self._base()
        try:
            story = rival.get(StoryModel, self._story_id)
            story.actual_hours = (story.actual_hours or 0) + 1
            rival.commit()
        finally:
            rival.close()


@pytest.fixture
def open_story(org, pending_epic, make_story):
    _, epic = pending_epic
    return make_story(epic.epic_id, org.worker, assignee=org.worker)


def _service(factory, clock, notifier, max_attempts=3) -> WorkflowService:
    return WorkflowService(factory, clock=clock, notifier=notifier, max_attempts=max_attempts)


class TestRetry:

    def test_version_conflict_is_retried(
        self, session_factory, deterministic_clock, recording_notifier, org, open_story,
        session, captured_logs,
    ):
        factory = RacingSessionFactory(session_factory, open_story.story_id)
        service = _service(factory, deterministic_clock, recording_notifier)
        before = len(recording_notifier.sent)

        result = service.complete_story(open_story.story_id, org.worker)

        assert result.status == WorkflowStatus.OK
        assert result.attempts == 2
        assert factory.sessions_created == 2
        assert result.cascade.epic_completed

        story = session.get(StoryModel, open_story.story_id)
        assert story.is_approved
        assert story.actual_hours == 1

        delivered = [event for event, _, _ in recording_notifier.sent[before:]]
        assert delivered.count(NotificationEvent.STORY_COMPLETED) == 1
        assert delivered.count(NotificationEvent.EPIC_COMPLETED) == 1

        retries = [r for r in captured_logs() if r["message"] == "workflow_conflict_retry"]
        assert len(retries) == 1
        assert retries[0]["attempt"] == 1

    def test_conflict_on_every_attempt(
        self, session_factory, deterministic_clock, recording_notifier, org, open_story,
        session, monkeypatch,
    ):
        calls = []

        def always_conflict(self, epic_id):
            calls.append(epic_id)
            raise ConsistencyConflictError("epic", "rival completion")

        monkeypatch.setattr(CascadeService, "lock_epic", always_conflict)
        service = _service(session_factory, deterministic_clock, recording_notifier, max_attempts=4)
        before = list(recording_notifier.sent)

        result = service.complete_story(open_story.story_id, org.worker)

        assert result.status == WorkflowStatus.CONFLICT
        assert result.error_code == "CONSISTENCY_CONFLICT"
        assert result.attempts == 4
        assert len(calls) == 4
        assert session.get(StoryModel, open_story.story_id).end_date is None
        assert recording_notifier.sent == before

    def test_single_attempt_limit(
        self, session_factory, deterministic_clock, recording_notifier, org, open_story
    ):
        factory = RacingSessionFactory(session_factory, open_story.story_id)
        service = _service(factory, deterministic_clock, recording_notifier, max_attempts=1)

        result = service.complete_story(open_story.story_id, org.worker)

        assert result.status == WorkflowStatus.CONFLICT
        assert result.attempts == 1


@pytest.mark.skipif(
    not os.environ.get("DATABASE_URL", "").startswith("postgresql"),
    reason="row locks need PostgreSQL",
)
class TestSiblingRace:

    def test_last_two_stories_complete_epic_once(
        self, workflow_service, org, pending_epic, make_story, recording_notifier, session
    ):
        _, epic = pending_epic
        stories = [make_story(epic.epic_id, org.worker, assignee=org.worker) for _ in range(2)]
        barrier = threading.Barrier(len(stories))
        results = {}

        def complete(story_id):
            barrier.wait()
            results[story_id] = workflow_service.complete_story(story_id, org.worker)

        threads = [threading.Thread(target=complete, args=(s.story_id,)) for s in stories]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert all(r.status == WorkflowStatus.OK for r in results.values())
        assert sum(r.cascade.epic_completed for r in results.values()) == 1
        assert session.get(EpicModel, epic.epic_id).is_approved
        assert recording_notifier.events().count(NotificationEvent.EPIC_COMPLETED) == 1
