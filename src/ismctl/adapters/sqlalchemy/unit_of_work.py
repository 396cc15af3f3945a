"""SQLAlchemy-backed unit of work and audit log."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ismctl.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from ismctl.adapters.sqlalchemy.repositories import SqlAlchemyAuditRepository
from ismctl.config.audit import get_audit_store_config

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from ismctl.domain.ports import AuditEntry, AuditUnitOfWork

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call ismctl.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, metadata, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_audit_store_config().uri, future=True
    )
    start_mappers()
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyAuditUnitOfWork:
    """Unit of work managing one SQLAlchemy session for audit entries."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None
        self._audit_entries: SqlAlchemyAuditRepository | None = None

    def __enter__(self) -> SqlAlchemyAuditUnitOfWork:
        self.session = self.session_factory()
        self._audit_entries = SqlAlchemyAuditRepository(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        self._audit_entries = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def audit_entries(self) -> SqlAlchemyAuditRepository:
        if self._audit_entries is None:
            raise StartupError("Unit of work session not initialised")
        return self._audit_entries

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyAuditLog:
    """Audit log committing each entry in its own unit of work."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], AuditUnitOfWork] | None = None,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory or SqlAlchemyAuditUnitOfWork
        self._lock = threading.Lock()

    def record(self, entry: AuditEntry) -> None:
        with self._lock, self._unit_of_work_factory() as uow:
            uow.audit_entries.add(entry)
            uow.commit()
        log.debug("Recorded %s %s for %s", entry.status, entry.kind, entry.target)


if TYPE_CHECKING:
    from ismctl.domain.ports import AuditLog

    _uow_check: AuditUnitOfWork = SqlAlchemyAuditUnitOfWork()
    _log_check: AuditLog = SqlAlchemyAuditLog()
