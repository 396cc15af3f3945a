"""Structural validation of desired module trees.

Validation runs before any network interaction; a malformed desired config
aborts the whole run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from .modules import AggregationConfig, MultisigConfig, RoutingConfig, TrustedRelayerConfig
from .primitives import format_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .modules import ModuleConfig
    from .primitives import DomainPath

MAX_MODULE_DEPTH = 8


class ConfigValidationError(ValueError):
    """Raised when a desired module tree cannot be reconciled."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems = tuple(problems)
        super().__init__("; ".join(self.problems))


def validate_module_config(config: ModuleConfig, *, max_depth: int = MAX_MODULE_DEPTH) -> None:
    """Raise ``ConfigValidationError`` listing every problem found in ``config``."""

    problems: list[str] = []
    _validate(config, path=(), ancestors=(), max_depth=max_depth, problems=problems)
    if problems:
        raise ConfigValidationError(problems)


def _validate(
    config: ModuleConfig,
    *,
    path: DomainPath,
    ancestors: tuple[int, ...],
    max_depth: int,
    problems: list[str],
) -> None:
    where = format_path(path)
    if id(config) in ancestors:
        problems.append(f"{where}: module references itself (cycle)")
        return
    if len(path) > max_depth:
        problems.append(f"{where}: module tree deeper than {max_depth} levels")
        return

    lineage = (*ancestors, id(config))
    match config:
        case MultisigConfig():
            if config.threshold < 1:
                problems.append(f"{where}: multisig threshold must be at least 1")
            if config.threshold > len(config.validators):
                problems.append(
                    f"{where}: multisig threshold {config.threshold} exceeds "
                    f"{len(config.validators)} validators"
                )
        case RoutingConfig():
            if not config.owner:
                problems.append(f"{where}: routing module has no owner")
            for domain, child in config.domains.items():
                _validate(
                    child,
                    path=(*path, domain),
                    ancestors=lineage,
                    max_depth=max_depth,
                    problems=problems,
                )
        case AggregationConfig():
            if not config.modules:
                problems.append(f"{where}: aggregation has no members")
            if config.threshold < 1 or config.threshold > len(config.modules):
                problems.append(
                    f"{where}: aggregation threshold {config.threshold} outside "
                    f"1..{len(config.modules)}"
                )
            for index, member in enumerate(config.modules):
                _validate(
                    member,
                    path=(*path, index),
                    ancestors=lineage,
                    max_depth=max_depth,
                    problems=problems,
                )
        case TrustedRelayerConfig():
            if not config.relayer:
                problems.append(f"{where}: trusted relayer address is empty")
        case _:
            assert_never(config)


def reject_duplicates[T](values: Iterable[T], *, what: str, path: DomainPath = ()) -> list[T]:
    """Return ``values`` as a list, raising if any value repeats."""

    seen: set[T] = set()
    duplicates: list[T] = []
    items = list(values)
    for value in items:
        if value in seen:
            duplicates.append(value)
        seen.add(value)
    if duplicates:
        listed = ", ".join(sorted(str(value) for value in duplicates))
        raise ConfigValidationError([f"{format_path(path)}: duplicate {what}: {listed}"])
    return items
