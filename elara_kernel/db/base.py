"""
Module: elara_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, the type annotation map, the
    TrackedBase mixin for audit columns, and the VersionedMixin used for
    optimistic locking on governed entities.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  ALL model files import from here.  This module MUST NOT import
    from models/, services/, selectors/, or domain/.

Invariants enforced:
    - UUID primary keys: every model inherits a uuid4-generated primary key.
    - Dates: ``date`` maps to Date; ``end_date`` and deadlines are calendar
      dates, not timestamps.
    - Audit columns: TrackedBase provides created_at, updated_at,
      created_by_id, and updated_by_id.

Failure modes:
    - StaleDataError at flush when a versioned row was changed by another
      transaction since it was loaded (translated by UnitOfWork).
"""

from datetime import date, datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - datetime maps to DateTime(timezone=True).
        - date maps to Date.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        date: Date,
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamp and actor tracking.

    Guarantees:
        - created_at is set to server NOW() on INSERT.
        - updated_at auto-updates on every UPDATE.
        - created_by_id is required (NOT NULL).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    updated_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


class VersionedMixin:
    """
    Optimistic-locking version counter.

    Every UPDATE issued by the ORM includes ``WHERE version = :loaded`` and
    bumps the counter.  A concurrent writer that got there first makes the
    UPDATE match zero rows, which SQLAlchemy raises as StaleDataError.
    """

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    @declared_attr.directive
    def __mapper_args__(cls) -> dict:
        return {"version_id_col": cls.version}


UUID = PyUUID
