"""Read-only selectors (query side)."""

from elara_kernel.selectors.base import BaseSelector
from elara_kernel.selectors.hierarchy_selector import HierarchySelector
from elara_kernel.selectors.progress_selector import ProgressSelector, SlaBreach

__all__ = [
    "BaseSelector",
    "HierarchySelector",
    "ProgressSelector",
    "SlaBreach",
]
