"""Derive a remediation plan consistent with already-collected violations."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from ismctl.domain.model import OpKind, ViolationKind, format_path, is_prefix

from .differ import diff_module
from .plan import ReconciliationPlan

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from ismctl.domain.model import DeployedModule, DomainId

    from .plan import UpdateOperation
    from .settings import TargetConfig
    from .violations import Violation

log = getLogger(__name__)


_IN_PLACE_FIXES: dict[ViolationKind, frozenset[OpKind]] = {
    ViolationKind.OWNER: frozenset({OpKind.TRANSFER_OWNER}),
    ViolationKind.VALIDATORS: frozenset({OpKind.SET_VALIDATORS}),
    ViolationKind.THRESHOLD: frozenset({OpKind.SET_THRESHOLD}),
    ViolationKind.THRESHOLD_UNSATISFIABLE: frozenset(
        {OpKind.SET_THRESHOLD, OpKind.SET_VALIDATORS}
    ),
}


def covers(operation: UpdateOperation, violation: Violation) -> bool:
    """Whether applying ``operation`` remediates ``violation``.

    Structural operations replace or remove a whole subtree and so cover every
    violation at or below their path. Setters only cover the matching
    violation kinds on their own node.
    """

    if operation.target != violation.target:
        return False
    if operation.kind.is_structural:
        return is_prefix(operation.path, violation.path)
    return operation.path == violation.path and operation.kind in _IN_PLACE_FIXES.get(
        violation.kind, frozenset()
    )


def derive_plan(
    violations: Sequence[Violation],
    *,
    config: TargetConfig,
    observed: DeployedModule,
    universe: Collection[DomainId] | None = None,
) -> tuple[ReconciliationPlan, tuple[Violation, ...]]:
    """Return the plan remediating ``violations`` and the violations it cannot fix.

    Only differ operations covering at least one violation are kept, so a
    custom check battery narrows what the governor touches.
    """

    full = diff_module(
        config.module,
        observed,
        target=config.target,
        anchor=config.anchor,
        universe=universe,
    )
    derived = ReconciliationPlan(target=config.target, skipped=list(full.skipped))
    for operation in full.operations:
        if any(covers(operation, violation) for violation in violations):
            derived.add(operation)

    unremediated = tuple(
        violation
        for violation in violations
        if not any(covers(operation, violation) for operation in derived.operations)
    )
    for violation in unremediated:
        log.warning(
            "Ignoring %s violation at %s for %s: no remediation available",
            violation.kind,
            format_path(violation.path),
            violation.target,
        )
    return derived, unremediated
