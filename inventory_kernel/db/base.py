"""
Module: inventory_kernel.db.base
Responsibility: Declarative bases and column types shared by the inventory
    models (schema rows, items, audit entries, operations).
Architecture position: Kernel > DB.  Lowest-level import target in the
    kernel; MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - UUID primary keys, stored as 36-character strings on every backend.
    - datetime attributes map to DateTime(timezone=True).
    - Item data, snapshots and change lists are JSON, JSONB on PostgreSQL.
    - Timestamps come from the services' injected Clock, never from the
      database, so tests can pin them.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class UUIDString(TypeDecorator):
    """UUID bound as its canonical string and read back as a UUID."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Every inventory table: a uuid4 primary key named ``id``."""

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Tenant-owned rows that remember who created them and when they changed.

    ``created_at`` and ``updated_at`` have no database default; the writing
    service sets both from its clock.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
