"""
Module: elara_kernel.db.unit_of_work
Responsibility: Explicit transaction scope passed through the workflow call
    chain.  One UnitOfWork == one atomic transaction spanning
    load -> authorize -> mutate -> cascade -> persist.
Architecture position: Kernel > DB.  Used by services; holds the Session
    and the post-commit notification queue.

Invariants enforced:
    - All-or-nothing: commit() commits every pending change together; any
      exception inside the ``with`` block rolls everything back, including
      cascaded epic/project completion.
    - Post-commit side effects: notifications queued during the transaction
      are released only after a successful commit and discarded on rollback,
      so a retried transaction never notifies twice.
    - Conflict translation: StaleDataError (version mismatch) and
      deadlock/serialization OperationalErrors become ConsistencyConflictError.

Failure modes:
    - ConsistencyConflictError from flush() or commit() on a lost race.
    - Any other SQLAlchemyError propagates unchanged.
"""

from __future__ import annotations

from types import TracebackType

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from elara_kernel.domain.collaborators import PendingNotification
from elara_kernel.exceptions import ConsistencyConflictError
from elara_kernel.logging_config import get_logger

logger = get_logger("db.unit_of_work")

_CONFLICT_MARKERS = (
    "deadlock",
    "could not serialize",
    "database is locked",
    "lock timeout",
)


def is_conflict_error(exc: BaseException) -> bool:
    """True for errors that mean "another transaction got there first"."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, (OperationalError, DBAPIError)):
        message = str(exc).lower()
        return any(marker in message for marker in _CONFLICT_MARKERS)
    return False


class UnitOfWork:
    """
    Transaction scope around one Session.

    Usage:
        with UnitOfWork(session_factory()) as uow:
            uow.session.add(project)
            uow.flush()
            uow.queue_notification(...)
        # committed here; uow.released_notifications() is now populated
    """

    def __init__(self, session: Session):
        self.session = session
        self._pending: list[PendingNotification] = []
        self._released: list[PendingNotification] = []
        self.committed = False

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.session.close()

    def flush(self, entity_type: str | None = None) -> None:
        try:
            self.session.flush()
        except (StaleDataError, OperationalError) as exc:
            if is_conflict_error(exc):
                raise ConsistencyConflictError(entity_type, str(exc)) from exc
            raise

    def commit(self) -> None:
        try:
            self.session.commit()
        except (StaleDataError, OperationalError) as exc:
            self.session.rollback()
            self._pending.clear()
            if is_conflict_error(exc):
                raise ConsistencyConflictError(None, str(exc)) from exc
            raise
        except Exception:
            self.session.rollback()
            self._pending.clear()
            raise
        self.committed = True
        self._released = list(self._pending)
        self._pending.clear()

    def rollback(self) -> None:
        self.session.rollback()
        if self._pending:
            logger.debug(
                "notifications_discarded",
                extra={"count": len(self._pending)},
            )
        self._pending.clear()

    def queue_notification(self, notification: PendingNotification) -> None:
        self._pending.append(notification)

    @property
    def pending_notifications(self) -> tuple[PendingNotification, ...]:
        return tuple(self._pending)

    def released_notifications(self) -> tuple[PendingNotification, ...]:
        """Notifications that survived commit, in queue order."""
        return tuple(self._released)
