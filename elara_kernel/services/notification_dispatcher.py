"""
elara_kernel.services.notification_dispatcher -- Post-commit notification delivery.

Responsibility:
    Hands notifications released by a committed UnitOfWork to the injected
    ``Notifier``.  Delivery is fire-and-forget: a failing notifier is logged
    at WARNING and never changes the outcome of the operation that queued it.

Architecture position:
    Kernel > Services.  Called by WorkflowService after commit only.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from elara_kernel.domain.collaborators import NotificationEvent, Notifier, PendingNotification
from elara_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


class LoggingNotifier:
    """Default notifier: records each notification as a log line."""

    def notify(self, event: NotificationEvent, entity: Any, recipient_id: UUID) -> None:
        logger.info(
            "notification_sent",
            extra={
                "notification_event": event.value,
                "recipient_id": str(recipient_id),
                "entity": type(entity).__name__,
            },
        )


class NotificationDispatcher:
    """Delivers released notifications one by one, isolating failures."""

    def __init__(self, notifier: Notifier | None = None):
        self._notifier = notifier or LoggingNotifier()

    def dispatch(self, notifications: Iterable[PendingNotification]) -> int:
        """Deliver every notification; return how many succeeded."""
        delivered = 0
        for notification in notifications:
            try:
                self._notifier.notify(
                    notification.event,
                    notification.entity,
                    notification.recipient_id,
                )
            except Exception:
                # Delivery is best-effort; the transaction already committed
                logger.warning(
                    "notification_delivery_failed",
                    exc_info=True,
                    extra={
                        "notification_event": notification.event.value,
                        "entity_type": notification.entity_type.value,
                        "entity_id": str(notification.entity_id),
                        "recipient_id": str(notification.recipient_id),
                    },
                )
                continue
            delivered += 1
        return delivered
