"""Ports for recording applied operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from types import TracebackType

    from ismctl.domain.model import OpKind, OpStatus, TargetId


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(kw_only=True)
class AuditEntry:
    """One attempted operation, as written to the audit log."""

    run_id: UUID
    target: TargetId
    network: str
    kind: OpKind
    path: str
    status: OpStatus
    dry_run: bool = False
    reference: str | None = None
    error: str | None = None
    recorded_at: datetime = field(default_factory=_utcnow)
    id: UUID = field(default_factory=uuid4)


@runtime_checkable
class AuditLog(Protocol):
    """Append-only sink for applied-operation records."""

    def record(self, entry: AuditEntry) -> None: ...


@runtime_checkable
class AuditRepository(Protocol):
    def add(self, entry: AuditEntry) -> None: ...

    def list_for_run(self, run_id: UUID) -> list[AuditEntry]: ...


@runtime_checkable
class AuditUnitOfWork(Protocol):
    @property
    def audit_entries(self) -> AuditRepository: ...

    def __enter__(self) -> AuditUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


__all__ = ["AuditEntry", "AuditLog", "AuditRepository", "AuditUnitOfWork"]
