"""SQLAlchemy mapping metadata for the audit log."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)

from ismctl.domain.model import OpKind, OpStatus
from ismctl.domain.ports import AuditEntry

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

audit_entry_table = Table(
    "audit_entry",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("run_id", UUIDColumnType, nullable=False),
    Column("target", String, nullable=False),
    Column("network", String, nullable=False),
    Column("kind", Enum(OpKind, native_enum=False, length=32), nullable=False),
    Column("path", String, nullable=False),
    Column("status", Enum(OpStatus, native_enum=False, length=16), nullable=False),
    Column("dry_run", Boolean, nullable=False, default=False),
    Column("reference", String, nullable=True),
    Column("error", Text, nullable=True),
    Column("recorded_at", UTCDateTime(), nullable=False),
    Index("ix_audit_entry_run_target", "run_id", "target"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the audit log."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(AuditEntry, audit_entry_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
