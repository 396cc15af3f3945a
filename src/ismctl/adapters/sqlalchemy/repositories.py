"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from ismctl.adapters.sqlalchemy.mappings import audit_entry_table
from ismctl.domain.ports import AuditEntry

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session


class SqlAlchemyAuditRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entry: AuditEntry) -> None:
        self.session.add(entry)

    def list_for_run(self, run_id: UUID) -> list[AuditEntry]:
        stmt = (
            select(AuditEntry)
            .where(audit_entry_table.c.run_id == run_id)
            .order_by(audit_entry_table.c.recorded_at, audit_entry_table.c.target)
        )
        return list(self.session.execute(stmt).scalars())
