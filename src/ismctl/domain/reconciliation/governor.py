"""Turn divergence into applied operations.

Responsibilities of this stage:
- obtain a plan per target (from collected violations or straight from the differ)
- order it so ownership transfers run after everything they could block
- apply it sequentially per target and in parallel across targets
- skip operations that causally depend on a failed one

Operations already committed cannot be rolled back; a partially applied
target ends in ``FAILED`` with the applied prefix recorded.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from ismctl.domain.model import (
    ROOT_PATH,
    OpKind,
    OpStatus,
    TargetStatus,
    format_path,
)
from ismctl.domain.ports import ApplyFailure, AuditEntry, ReadFailure

from .derive import derive_plan
from .differ import diff_module
from .plan import EnrollPayload, RedeployPayload, UpdateOperation
from .sequencing import depends_on, sequence_operations

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ismctl.domain.model import Address, DeployedModule, DomainId, TargetId
    from ismctl.domain.ports import (
        AuditLog,
        Deployer,
        NetworkSimulator,
        Receipt,
        StateReader,
        TransactionExecutor,
    )

    from .checker import ViolationChecker
    from .plan import ReconciliationPlan
    from .settings import RunConfig, TargetConfig
    from .violations import Violation

log = getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a target is moved to a state its lifecycle does not allow."""


_TRANSITIONS: dict[TargetStatus, frozenset[TargetStatus]] = {
    TargetStatus.UNCHECKED: frozenset(
        {TargetStatus.READ_FAILED, TargetStatus.CLEAN, TargetStatus.VIOLATIONS}
    ),
    TargetStatus.VIOLATIONS: frozenset({TargetStatus.PLAN_BUILT}),
    TargetStatus.PLAN_BUILT: frozenset({TargetStatus.APPLYING}),
    TargetStatus.APPLYING: frozenset({TargetStatus.APPLIED, TargetStatus.FAILED}),
    TargetStatus.READ_FAILED: frozenset(),
    TargetStatus.CLEAN: frozenset(),
    TargetStatus.APPLIED: frozenset(),
    TargetStatus.FAILED: frozenset(),
}


@dataclass(slots=True, kw_only=True)
class OperationOutcome:
    """Result of attempting (or skipping) one operation."""

    operation: UpdateOperation
    status: OpStatus
    network: DomainId
    receipt: Receipt | None = None
    new_address: Address | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status in {OpStatus.APPLIED, OpStatus.SIMULATED}


@dataclass(slots=True)
class TargetResult:
    """Lifecycle and outcome of one target in a governance run."""

    target: TargetId
    status: TargetStatus = TargetStatus.UNCHECKED
    history: list[TargetStatus] = field(default_factory=list["TargetStatus"])
    violations: tuple[Violation, ...] = ()
    unremediated: tuple[Violation, ...] = ()
    plan: ReconciliationPlan | None = None
    outcomes: list[OperationOutcome] = field(default_factory=list["OperationOutcome"])
    address_before: Address | None = None
    address_after: Address | None = None
    converged: bool | None = None
    error: str | None = None

    def advance(self, status: TargetStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"{self.target}: cannot move from {self.status} to {status}"
            )
        self.history.append(self.status)
        self.status = status

    @property
    def applied(self) -> list[OperationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def failed(self) -> list[OperationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is OpStatus.FAILED]

    @property
    def blocked(self) -> list[OperationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is OpStatus.BLOCKED]

    @property
    def address_preserved(self) -> bool:
        return self.address_before == self.address_after


@dataclass(slots=True)
class ApplyResult:
    """Outcome of one ``govern`` call across targets."""

    run_id: UUID
    dry_run: bool
    targets: dict[TargetId, TargetResult] = field(default_factory=dict["TargetId", "TargetResult"])

    @property
    def violation_count(self) -> int:
        return sum(len(result.violations) for result in self.targets.values())

    @property
    def failure_count(self) -> int:
        """Failed or blocked operations plus unreadable targets."""

        return sum(
            len(result.failed) + len(result.blocked) + (result.status is TargetStatus.READ_FAILED)
            for result in self.targets.values()
        )

    @property
    def is_clean(self) -> bool:
        return all(result.status is TargetStatus.CLEAN for result in self.targets.values())


class Governor:
    """Plan and apply remediation for the targets of a run configuration.

    Passing a ``checker`` makes the governor remediate exactly the violations
    that checker collected; otherwise plans come straight from the differ.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        reader: StateReader,
        executor: TransactionExecutor,
        deployer: Deployer,
        checker: ViolationChecker | None = None,
        simulator: NetworkSimulator | None = None,
        audit_log: AuditLog | None = None,
    ) -> None:
        self.config = config
        self.checker = checker
        self._reader = reader
        self._executor = executor
        self._deployer = deployer
        self._simulator = simulator
        self._audit_log = audit_log

    def govern(
        self,
        target: TargetId | None = None,
        *,
        dry_run: bool = False,
        as_signer: Address | None = None,
        verify: bool = False,
    ) -> ApplyResult:
        """Reconcile ``target`` (or every active target) and return the outcome.

        ``as_signer`` impersonates another identity and implies a dry run.
        ``verify`` re-reads applied targets to confirm convergence.
        """

        self.config.validate()
        simulate = dry_run or as_signer is not None
        if target is None:
            targets = self.config.active_targets()
        elif self.config.target(target).remove:
            log.info("Skipping %s: target is configured to be removed", target)
            targets = ()
        else:
            targets = (target,)
        result = ApplyResult(run_id=uuid4(), dry_run=simulate)
        log.info(
            "Governing %s targets: run=%s, dry_run=%s, as_signer=%s",
            len(targets),
            result.run_id,
            simulate,
            as_signer,
        )
        outcomes = asyncio.run(
            self._govern_all(
                targets,
                run_id=result.run_id,
                dry_run=simulate,
                as_signer=as_signer,
                verify=verify and not simulate,
            )
        )
        result.targets.update((outcome.target, outcome) for outcome in outcomes)
        log.info(
            "Finished governing: violations=%s, failures=%s",
            result.violation_count,
            result.failure_count,
        )
        return result

    def plan_target(self, target: TargetId) -> TargetResult:
        """Build (but do not apply) the plan for ``target``."""

        self.config.validate()
        result, _observed = self._prepare(self.config.target(target))
        return result

    async def _govern_all(
        self,
        targets: Sequence[TargetId],
        *,
        run_id: UUID,
        dry_run: bool,
        as_signer: Address | None,
        verify: bool,
    ) -> list[TargetResult]:
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(
                    asyncio.to_thread(
                        self._govern_target,
                        self.config.target(target),
                        run_id=run_id,
                        dry_run=dry_run,
                        as_signer=as_signer,
                        verify=verify,
                    )
                )
                for target in targets
            ]
        return [task.result() for task in tasks]

    def _govern_target(
        self,
        config: TargetConfig,
        *,
        run_id: UUID,
        dry_run: bool,
        as_signer: Address | None,
        verify: bool,
    ) -> TargetResult:
        result, observed = self._prepare(config)
        plan = result.plan
        if result.status is not TargetStatus.PLAN_BUILT or observed is None or plan is None:
            return result

        executor, deployer = self._executor, self._deployer
        if dry_run and self._simulator is not None:
            fork = self._simulator({config.target: observed}, signer=as_signer or config.owner)
            executor, deployer = fork, fork

        result.advance(TargetStatus.APPLYING)
        self._apply(
            result, plan, config, executor=executor, deployer=deployer, dry_run=dry_run
        )
        for outcome in result.outcomes:
            self._record(outcome, config, run_id=run_id, dry_run=dry_run)

        if result.failed or result.blocked:
            result.advance(TargetStatus.FAILED)
            log.warning(
                "%s: %s applied, %s failed, %s blocked",
                config.target,
                len(result.applied),
                len(result.failed),
                len(result.blocked),
            )
            return result

        result.advance(TargetStatus.APPLIED)
        if verify:
            result.converged = self._verify(config)
        return result

    def _prepare(self, config: TargetConfig) -> tuple[TargetResult, DeployedModule | None]:
        result = TargetResult(target=config.target)
        observed = self._observe(config.target, result)
        if observed is None:
            result.advance(TargetStatus.READ_FAILED)
            return result, None
        result.address_before = observed.address
        result.address_after = observed.address

        if self.checker is not None and self.checker.is_checked(config.target):
            result.violations = self.checker.violations_for(config.target)
            plan, result.unremediated = derive_plan(
                result.violations,
                config=config,
                observed=observed,
                universe=self.config.universe,
            )
            divergent = bool(result.violations)
        else:
            plan = diff_module(
                config.module,
                observed,
                target=config.target,
                anchor=config.anchor,
                universe=self.config.universe,
            )
            divergent = not plan.is_empty

        if not divergent:
            result.advance(TargetStatus.CLEAN)
            return result, observed

        result.advance(TargetStatus.VIOLATIONS)
        result.plan = plan
        result.advance(TargetStatus.PLAN_BUILT)
        log.info("%s: planned %s operations", config.target, len(plan))
        return result, observed

    def _observe(self, target: TargetId, result: TargetResult) -> DeployedModule | None:
        if self.checker is not None:
            failure = self.checker.read_failures.get(target)
            if failure is not None:
                result.error = str(failure)
                return None
            observed = self.checker.observed.get(target)
            if observed is not None:
                return observed
        try:
            return self._reader(target)
        except ReadFailure as exc:
            log.warning("%s", exc)
            result.error = str(exc)
        except Exception as exc:
            log.exception("Unexpected error reading %s", target)
            result.error = str(ReadFailure(target, repr(exc)))
        return None

    def _apply(
        self,
        result: TargetResult,
        plan: ReconciliationPlan,
        config: TargetConfig,
        *,
        executor: TransactionExecutor,
        deployer: Deployer,
        dry_run: bool,
    ) -> None:
        failed: list[UpdateOperation] = []
        for operation in sequence_operations(plan.operations):
            blocker = next((prior for prior in failed if depends_on(operation, prior)), None)
            if blocker is not None:
                result.outcomes.append(
                    OperationOutcome(
                        operation=operation,
                        status=OpStatus.BLOCKED,
                        network=config.submit_network,
                        error=f"blocked by failed {blocker.kind} at {format_path(blocker.path)}",
                    )
                )
                failed.append(operation)
                continue

            outcome = self._apply_operation(
                operation, config, executor=executor, deployer=deployer, dry_run=dry_run
            )
            result.outcomes.append(outcome)
            if not outcome.succeeded:
                failed.append(operation)
            elif outcome.new_address is not None and operation.path == ROOT_PATH:
                result.address_after = outcome.new_address

    def _apply_operation(
        self,
        operation: UpdateOperation,
        config: TargetConfig,
        *,
        executor: TransactionExecutor,
        deployer: Deployer,
        dry_run: bool,
    ) -> OperationOutcome:
        network = config.submit_network
        status = OpStatus.SIMULATED if dry_run else OpStatus.APPLIED
        if dry_run and self._simulator is None:
            log.info("[dry-run] %s: %s", config.target, operation.describe())
            return OperationOutcome(operation=operation, status=status, network=network)

        try:
            realized, new_address = self._realize(operation, config, deployer=deployer)
            receipt = executor.submit(network, realized)
        except ApplyFailure as exc:
            log.warning("%s: %s failed: %s", config.target, operation.describe(), exc)
            return OperationOutcome(
                operation=operation, status=OpStatus.FAILED, network=network, error=str(exc)
            )
        except Exception as exc:
            log.exception("%s: unexpected error applying %s", config.target, operation.describe())
            return OperationOutcome(
                operation=operation, status=OpStatus.FAILED, network=network, error=repr(exc)
            )

        log.info("%s: %s (%s)", config.target, realized.describe(), receipt.reference)
        return OperationOutcome(
            operation=realized,
            status=status,
            network=network,
            receipt=receipt,
            new_address=new_address,
        )

    def _realize(
        self,
        operation: UpdateOperation,
        config: TargetConfig,
        *,
        deployer: Deployer,
    ) -> tuple[UpdateOperation, Address | None]:
        """Deploy whatever the operation needs and return the operation to submit."""

        payload = operation.payload
        constructor_args: dict[str, object] = {"target": config.target, "anchor": config.anchor}

        if isinstance(payload, EnrollPayload) and payload.address is None:
            if payload.module is None:
                raise ApplyFailure(f"Nothing to enroll at {format_path(operation.path)}")
            address = deployer.deploy(config.home_network, payload.module, constructor_args)
            return replace(operation, payload=replace(payload, address=address)), address

        if isinstance(payload, RedeployPayload):
            address = deployer.deploy(config.home_network, payload.module, constructor_args)
            if operation.path == ROOT_PATH:
                # the anchor re-points at the new root
                return replace(operation, payload=replace(payload, new_address=address)), address
            domain = operation.path[-1]
            if not isinstance(domain, str):
                raise ApplyFailure(
                    f"Cannot re-point aggregation member {format_path(operation.path)} in place"
                )
            enroll = UpdateOperation(
                target=operation.target,
                kind=OpKind.ENROLL_DOMAIN,
                path=operation.path,
                payload=EnrollPayload(
                    domain=domain, address=address, replaces=payload.previous_address
                ),
            )
            return enroll, address

        return operation, None

    def _record(
        self,
        outcome: OperationOutcome,
        config: TargetConfig,
        *,
        run_id: UUID,
        dry_run: bool,
    ) -> None:
        if self._audit_log is None:
            return
        entry = AuditEntry(
            run_id=run_id,
            target=config.target,
            network=outcome.network,
            kind=outcome.operation.kind,
            path=format_path(outcome.operation.path),
            status=outcome.status,
            dry_run=dry_run,
            reference=outcome.receipt.reference if outcome.receipt else None,
            error=outcome.error,
        )
        try:
            self._audit_log.record(entry)
        except Exception:
            log.exception(
                "%s: could not record %s in the audit log",
                config.target,
                outcome.operation.describe(),
            )

    def _verify(self, config: TargetConfig) -> bool:
        try:
            observed = self._reader(config.target)
        except ReadFailure as exc:
            log.warning("Could not verify %s: %s", config.target, exc)
            return False
        except Exception:
            log.exception("Unexpected error verifying %s", config.target)
            return False
        remaining = diff_module(
            config.module,
            observed,
            target=config.target,
            anchor=config.anchor,
            universe=self.config.universe,
        )
        if not remaining.is_empty:
            log.warning(
                "%s did not converge: %s operations remain", config.target, len(remaining)
            )
        return remaining.is_empty
