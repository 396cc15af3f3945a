from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
from sqlalchemy import create_engine

from ismctl.adapters.sqlalchemy import (
    SqlAlchemyAuditLog,
    SqlAlchemyAuditUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)
from ismctl.domain.model import OpKind, OpStatus
from ismctl.domain.ports import AuditEntry

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def _entry(run_id: UUID, *, target: str, recorded_at: datetime, **kwargs: object) -> AuditEntry:
    return AuditEntry(
        run_id=run_id,
        target=target,
        network=target,
        kind=OpKind.SET_THRESHOLD,
        path="/ethereum",
        status=OpStatus.APPLIED,
        recorded_at=recorded_at,
        **kwargs,  # pyright: ignore[reportArgumentType]
    )


def test_unit_of_work_requires_startup() -> None:
    assert not is_started()

    with pytest.raises(StartupError):
        SqlAlchemyAuditUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    startup(engine=create_engine("sqlite+pysqlite:///:memory:", future=True))

    with pytest.raises(StartupError, match="already initialised"):
        startup(engine=create_engine("sqlite+pysqlite:///:memory:", future=True))

    startup(engine=create_engine("sqlite+pysqlite:///:memory:", future=True), force=True)
    assert is_started()


def test_audit_log_persists_entries_per_run(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    audit_log = SqlAlchemyAuditLog()
    run_id = uuid4()
    other_run = uuid4()
    start = datetime(2026, 1, 1, 12, tzinfo=UTC)

    audit_log.record(
        _entry(run_id, target="base", recorded_at=start + timedelta(seconds=1), reference="tx-2")
    )
    audit_log.record(
        _entry(
            run_id,
            target="arbitrum",
            recorded_at=start,
            dry_run=True,
            error="reverted",
        )
    )
    audit_log.record(_entry(other_run, target="base", recorded_at=start))

    with SqlAlchemyAuditUnitOfWork() as uow:
        entries = uow.audit_entries.list_for_run(run_id)

    assert [entry.target for entry in entries] == ["arbitrum", "base"]
    first, second = entries
    assert first.dry_run
    assert first.error == "reverted"
    assert first.kind is OpKind.SET_THRESHOLD
    assert second.status is OpStatus.APPLIED
    assert second.reference == "tx-2"
    assert second.recorded_at == start + timedelta(seconds=1)
    assert second.recorded_at.tzinfo is not None


def test_failed_unit_of_work_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    run_id = uuid4()

    with pytest.raises(RuntimeError, match="boom"), SqlAlchemyAuditUnitOfWork() as uow:
        uow.audit_entries.add(_entry(run_id, target="base", recorded_at=datetime.now(UTC)))
        raise RuntimeError("boom")

    with SqlAlchemyAuditUnitOfWork() as uow:
        assert uow.audit_entries.list_for_run(run_id) == []


def test_audit_log_accepts_custom_unit_of_work_factory(started_audit_store: Engine) -> None:
    created: list[SqlAlchemyAuditUnitOfWork] = []

    def factory() -> SqlAlchemyAuditUnitOfWork:
        uow = SqlAlchemyAuditUnitOfWork()
        created.append(uow)
        return uow

    SqlAlchemyAuditLog(factory).record(
        _entry(uuid4(), target="base", recorded_at=datetime.now(UTC))
    )

    assert len(created) == 1
