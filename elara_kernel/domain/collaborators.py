"""
Collaborator interfaces (``elara_kernel.domain.collaborators``).

Responsibility
--------------
Narrow protocols for the services the workflow core calls out to but does
not own: notification delivery and identity resolution.  Both are
injected into ``WorkflowService``.

Architecture position
---------------------
**Kernel domain layer** -- Protocol definitions and value objects only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from elara_kernel.domain.actors import Actor
from elara_kernel.domain.entities import EntityType


class NotificationEvent(str, Enum):
    PROJECT_CREATED = "project_created"
    PROJECT_APPROVED = "project_approved"
    PROJECT_COMPLETED = "project_completed"
    EPIC_COMPLETED = "epic_completed"
    STORY_ASSIGNED = "story_assigned"
    STORY_COMPLETED = "story_completed"


@dataclass(frozen=True)
class PendingNotification:
    """A notification queued during a transaction, sent after commit."""

    event: NotificationEvent
    entity_type: EntityType
    entity_id: UUID
    recipient_id: UUID
    entity: Any = None


class Notifier(Protocol):
    """Fire-and-forget delivery (email, websocket, ...)."""

    def notify(
        self,
        event: NotificationEvent,
        entity: Any,
        recipient_id: UUID,
    ) -> None: ...


class IdentityProvider(Protocol):
    """Resolves the calling identity; None when unauthenticated."""

    def current_actor(self) -> Actor | None: ...
