"""
Elara Kernel - project workflow core

A client/project/epic/story tracker with:
- Hierarchical access-level authorization
- Approval gates on downstream work
- Cascading completion (story -> epic -> project)
- Atomic, retry-safe transactions
"""

__version__ = "0.1.0"
