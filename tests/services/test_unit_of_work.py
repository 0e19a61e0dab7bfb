"""
UnitOfWork: commit/rollback scope, notification release, conflict translation.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from elara_kernel.db.unit_of_work import UnitOfWork, is_conflict_error
from elara_kernel.domain.collaborators import NotificationEvent, PendingNotification
from elara_kernel.domain.entities import EntityType
from elara_kernel.exceptions import ConsistencyConflictError
from elara_kernel.models.client import ClientModel
from elara_kernel.models.project import ProjectModel


def _notification() -> PendingNotification:
    return PendingNotification(
        event=NotificationEvent.PROJECT_CREATED,
        entity_type=EntityType.PROJECT,
        entity_id=uuid4(),
        recipient_id=uuid4(),
    )


class TestScope:

    def test_commit_releases_notifications(self, session_factory, org):
        uow = UnitOfWork(session_factory())
        with uow:
            uow.session.add(ClientModel(name="Umbrella", created_by_id=org.admin.actor_id))
            uow.queue_notification(_notification())
            assert len(uow.pending_notifications) == 1
            assert uow.released_notifications() == ()

        assert uow.committed
        assert len(uow.released_notifications()) == 1
        assert uow.pending_notifications == ()

    def test_exception_rolls_back_and_discards(self, session_factory, session, org):
        uow = UnitOfWork(session_factory())
        with pytest.raises(RuntimeError):
            with uow:
                uow.session.add(ClientModel(name="Vanishing", created_by_id=org.admin.actor_id))
                uow.flush()
                uow.queue_notification(_notification())
                raise RuntimeError("boom")

        assert not uow.committed
        assert uow.released_notifications() == ()
        assert session.scalar(select(ClientModel).where(ClientModel.name == "Vanishing")) is None


class TestConflicts:

    def test_stale_version_becomes_consistency_conflict(self, session_factory, org, make_project):
        project = make_project(org.manager)
        first = UnitOfWork(session_factory())
        second = UnitOfWork(session_factory())
        mine = first.session.get(ProjectModel, project.project_id)
        theirs = second.session.get(ProjectModel, project.project_id)

        theirs.deliverables = "Their edit"
        second.commit()
        second.session.close()

        mine.deliverables = "My edit"
        with pytest.raises(ConsistencyConflictError) as exc_info:
            first.flush(EntityType.PROJECT.value)
        first.rollback()
        first.session.close()

        assert exc_info.value.entity_type == "project"
        assert exc_info.value.code == "CONSISTENCY_CONFLICT"

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("deadlock detected", True),
            ("could not serialize access due to concurrent update", True),
            ("database is locked", True),
            ("no such table: projects", False),
        ],
    )
    def test_operational_error_classification(self, message, expected):
        exc = OperationalError("UPDATE projects", {}, Exception(message))
        assert is_conflict_error(exc) is expected

    def test_stale_data_is_conflict(self):
        assert is_conflict_error(StaleDataError("version mismatch"))
        assert not is_conflict_error(ValueError("nope"))
