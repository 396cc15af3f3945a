"""SQLAlchemy adapter package for ismctl."""

from __future__ import annotations

from .mappings import audit_entry_table, create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyAuditRepository
from .unit_of_work import (
    SqlAlchemyAuditLog,
    SqlAlchemyAuditUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAuditLog",
    "SqlAlchemyAuditRepository",
    "SqlAlchemyAuditUnitOfWork",
    "StartupError",
    "audit_entry_table",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "startup",
    "start_mappers",
]
