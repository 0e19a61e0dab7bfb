"""ORM models for the workflow kernel."""

from elara_kernel.models.actor import ActorModel
from elara_kernel.models.client import ClientModel, SlaRuleModel
from elara_kernel.models.project import EpicModel, ProjectModel, StoryModel

__all__ = [
    "ActorModel",
    "ClientModel",
    "EpicModel",
    "ProjectModel",
    "SlaRuleModel",
    "StoryModel",
]
