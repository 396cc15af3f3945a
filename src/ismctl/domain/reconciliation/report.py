"""Plain-text rendering of violations, plans and governance outcomes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ismctl.domain.model import format_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .governor import ApplyResult, TargetResult
    from .plan import ReconciliationPlan
    from .violations import Violation


def violation_rows(violations: Iterable[Violation]) -> list[dict[str, str]]:
    return [
        {
            "target": violation.target,
            "kind": str(violation.kind),
            "path": format_path(violation.path),
            "expected": _cell(violation.expected),
            "actual": _cell(violation.actual),
            "check": violation.check or "",
        }
        for violation in violations
    ]


def plan_rows(plan: ReconciliationPlan) -> list[dict[str, str]]:
    return [
        {
            "target": operation.target,
            "kind": str(operation.kind),
            "path": format_path(operation.path),
            "operation": operation.describe(),
        }
        for operation in plan.operations
    ]


def outcome_rows(result: TargetResult) -> list[dict[str, str]]:
    return [
        {
            "target": result.target,
            "status": str(outcome.status),
            "network": outcome.network,
            "operation": outcome.operation.describe(),
            "reference": outcome.receipt.reference if outcome.receipt else "",
            "error": outcome.error or "",
        }
        for outcome in result.outcomes
    ]


def format_table(rows: Sequence[dict[str, str]]) -> str:
    """Render dict rows as an aligned text table; empty input renders nothing."""

    if not rows:
        return ""
    columns = list(rows[0])
    widths = {
        column: max(len(column), *(len(row[column]) for row in rows)) for column in columns
    }
    lines = ["  ".join(column.upper().ljust(widths[column]) for column in columns)]
    lines.extend("  ".join(row[column].ljust(widths[column]) for column in columns) for row in rows)
    return "\n".join(line.rstrip() for line in lines)


def summarize(result: ApplyResult) -> str:
    mode = "dry run" if result.dry_run else "applied"
    lines = [f"Run {result.run_id} ({mode})"]
    for name, target in sorted(result.targets.items()):
        line = f"{name}: {target.status}"
        if target.plan is not None:
            line += f", {len(target.plan)} planned, {len(target.applied)} ok"
        if target.unremediated:
            line += f", {len(target.unremediated)} unremediated"
        if target.error:
            line += f" ({target.error})"
        lines.append(line)
    return "\n".join(lines)


def _cell(value: object) -> str:
    if isinstance(value, frozenset | set):
        return ",".join(sorted(str(item) for item in value))
    if isinstance(value, tuple | list):
        return ",".join(str(item) for item in value)
    return "" if value is None else str(value)
