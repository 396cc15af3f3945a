"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from ismctl.adapters.config_file import load_run_config
from ismctl.adapters.memory import InMemoryNetwork
from ismctl.adapters.rpc import build_http_adapters
from ismctl.adapters.sqlalchemy import SqlAlchemyAuditLog, is_started, startup
from ismctl.domain.reconciliation import Governor, ViolationChecker

if TYPE_CHECKING:
    from pathlib import Path

    from ismctl.domain.model import Address, TargetId
    from ismctl.domain.ports import AuditLog, Network, NetworkSimulator, StateReader
    from ismctl.domain.reconciliation import ApplyResult, RunConfig, TargetResult

log = getLogger(__name__)


def load_config(path: Path | str) -> RunConfig:
    """Load the desired-state config file; raises ``ConfigValidationError``."""

    return load_run_config(path)


def check_targets(
    config: RunConfig,
    *,
    reader: StateReader | None = None,
    target: TargetId | None = None,
) -> ViolationChecker:
    """Run the check battery and return the checker holding the findings."""

    config.validate()
    effective_reader = reader or build_http_adapters()[0]
    checker = ViolationChecker(config, effective_reader)
    if target is not None:
        checker.check_target(target)
    else:
        checker.check_all()
    for violation in checker.violations:
        log.warning("%s", violation.describe())
    return checker


def plan_targets(
    config: RunConfig,
    *,
    reader: StateReader | None = None,
    target: TargetId | None = None,
) -> dict[TargetId, TargetResult]:
    """Build remediation plans without submitting anything."""

    config.validate()
    if reader is None:
        reader, network = build_http_adapters()
    else:
        network = InMemoryNetwork()
    governor = Governor(config, reader=reader, executor=network, deployer=network)
    targets = (target,) if target is not None else config.active_targets()
    return {
        name: governor.plan_target(name) for name in targets if not config.target(name).remove
    }


def govern_targets(
    config: RunConfig,
    *,
    reader: StateReader | None = None,
    network: Network | None = None,
    simulator: NetworkSimulator | None = None,
    audit_log: AuditLog | None = None,
    target: TargetId | None = None,
    dry_run: bool = False,
    as_signer: Address | None = None,
    verify: bool = False,
) -> ApplyResult:
    """Check, plan and apply remediation for ``target`` or every active target."""

    config.validate()
    if reader is None or network is None:
        http_reader, http_network = build_http_adapters()
        reader = reader or http_reader
        network = network or http_network
    effective_simulator = simulator or InMemoryNetwork().fork
    effective_audit = audit_log or _default_audit_log()

    checker = check_targets(config, reader=reader, target=target)
    governor = Governor(
        config,
        reader=reader,
        executor=network,
        deployer=network,
        checker=checker,
        simulator=effective_simulator,
        audit_log=effective_audit,
    )
    return governor.govern(target, dry_run=dry_run, as_signer=as_signer, verify=verify)


def _default_audit_log() -> AuditLog:
    if not is_started():
        startup()
    return SqlAlchemyAuditLog()
