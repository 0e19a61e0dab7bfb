"""Database layer: declarative base, engine construction and unit of work."""

from elara_kernel.db.base import Base, TrackedBase, UUIDString, VersionedMixin
from elara_kernel.db.engine import build_engine, create_tables, drop_tables
from elara_kernel.db.unit_of_work import UnitOfWork, is_conflict_error

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "UnitOfWork",
    "VersionedMixin",
    "build_engine",
    "create_tables",
    "drop_tables",
    "is_conflict_error",
]
