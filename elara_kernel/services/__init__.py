"""
Kernel services.

``WorkflowService`` is the public, transaction-owning entrypoint.  The other
services are flush-only and run inside the unit of work it opens.
"""

from elara_kernel.services.approval_service import ApprovalService
from elara_kernel.services.base import BaseService, enforce
from elara_kernel.services.cascade_service import CascadeService
from elara_kernel.services.client_service import ClientService
from elara_kernel.services.notification_dispatcher import LoggingNotifier, NotificationDispatcher
from elara_kernel.services.work_item_service import WorkItemOutcome, WorkItemService
from elara_kernel.services.workflow_service import WorkflowResult, WorkflowService, WorkflowStatus

__all__ = [
    "ApprovalService",
    "BaseService",
    "CascadeService",
    "ClientService",
    "LoggingNotifier",
    "NotificationDispatcher",
    "WorkItemOutcome",
    "WorkItemService",
    "WorkflowResult",
    "WorkflowService",
    "WorkflowStatus",
    "enforce",
]
