"""Run the invariant check battery over every target of a run.

The checker follows a collect-all policy: a read failure or a crashing check
on one target is recorded and never prevents reporting on the others.
"""

from __future__ import annotations

import asyncio
import threading
from logging import getLogger
from typing import TYPE_CHECKING

from ismctl.domain.model import ViolationKind
from ismctl.domain.ports import ReadFailure

from .checks import DEFAULT_CHECKS, CheckContext
from .violations import Violation, ViolationSink

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ismctl.domain.model import DeployedModule, TargetId
    from ismctl.domain.ports import StateReader

    from .checks import Check
    from .settings import RunConfig

log = getLogger(__name__)


class UnexpectedViolationsError(AssertionError):
    """Raised by ``expect_violations`` when the violation census differs."""


class ViolationChecker:
    """Check targets against their desired config, collecting violations."""

    def __init__(
        self,
        config: RunConfig,
        reader: StateReader,
        *,
        checks: Mapping[str, Check] | None = None,
        sink: ViolationSink | None = None,
    ) -> None:
        self.config = config
        self._reader = reader
        self.checks: dict[str, Check] = dict(checks if checks is not None else DEFAULT_CHECKS)
        self.sink = sink or ViolationSink()
        self.read_failures: dict[TargetId, ReadFailure] = {}
        self.observed: dict[TargetId, DeployedModule] = {}
        self._lock = threading.Lock()

    @property
    def violations(self) -> tuple[Violation, ...]:
        return self.sink.violations

    def violations_for(self, target: TargetId) -> tuple[Violation, ...]:
        return self.sink.for_target(target)

    def is_checked(self, target: TargetId) -> bool:
        with self._lock:
            return target in self.observed or target in self.read_failures

    def check_target(self, target: TargetId) -> None:
        """Run the full check battery against ``target``."""

        config = self.config.target(target)
        if config.remove:
            log.info("Skipping %s: target is configured to be removed", target)
            return

        observed = self._read(target)
        if observed is None:
            return

        context = CheckContext(config=config, observed=observed, universe=self.config.universe)
        for name, check in self.checks.items():
            self._run_check(name, check, context)

    def check_all(self) -> None:
        """Check every active target concurrently."""

        targets = self.config.active_targets()
        log.info("Checking %s targets", len(targets))
        asyncio.run(self._check_all_async(targets))
        log.info(
            "Checked %s targets: violations=%s, read_failures=%s",
            len(targets),
            len(self.sink),
            len(self.read_failures),
        )

    def expect_violations(
        self,
        kinds: Sequence[ViolationKind],
        counts: Sequence[int],
    ) -> None:
        """Assert the run found exactly ``counts`` violations of each of ``kinds``."""

        if len(kinds) != len(counts):
            raise ValueError("kinds and counts must have the same length")
        census = self.sink.counts()
        unexpected = sorted(set(census).difference(kinds))
        problems = [
            f"{kind}: expected {expected}, found {census.get(kind, 0)}"
            for kind, expected in zip(kinds, counts, strict=True)
            if census.get(kind, 0) != expected
        ]
        problems.extend(f"{kind}: unexpected {census[kind]}" for kind in unexpected)
        if problems:
            raise UnexpectedViolationsError("; ".join(problems))

    async def _check_all_async(self, targets: Sequence[TargetId]) -> None:
        async with asyncio.TaskGroup() as group:
            for target in targets:
                group.create_task(asyncio.to_thread(self.check_target, target))

    def _read(self, target: TargetId) -> DeployedModule | None:
        try:
            observed = self._reader(target)
        except ReadFailure as exc:
            log.warning("%s", exc)
            failure = exc
        except Exception as exc:
            log.exception("Unexpected error reading %s", target)
            failure = ReadFailure(target, repr(exc))
        else:
            with self._lock:
                self.observed[target] = observed
            return observed

        with self._lock:
            self.read_failures[target] = failure
        return None

    def _run_check(self, name: str, check: Check, context: CheckContext) -> None:
        try:
            check(context, self.sink)
        except Exception as exc:
            log.exception("Check %s failed for %s", name, context.target)
            self.sink.add(
                Violation(
                    target=context.target,
                    kind=ViolationKind.CHECK_FAILED,
                    path=(),
                    expected="check completes",
                    actual=repr(exc),
                    check=name,
                )
            )
