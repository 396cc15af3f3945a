"""Invariant checks run per target by the violation checker.

Each check is a plain callable receiving a ``CheckContext`` and the run-wide
``ViolationSink``. Checks report divergence by appending violations; they do
not raise to signal a failed invariant.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from ismctl.domain.model import (
    AggregationConfig,
    DeployedAggregation,
    DeployedMultisig,
    DeployedRouting,
    DeployedTrustedRelayer,
    MultisigConfig,
    RoutingConfig,
    TrustedRelayerConfig,
    ViolationKind,
    eq_address,
    members_reordered,
    node_at,
    normalize_addresses,
    walk,
)

from .violations import Violation

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ismctl.domain.model import DeployedModule, DomainId, DomainPath, ModuleConfig, TargetId

    from .settings import TargetConfig
    from .violations import ViolationSink


@dataclass(frozen=True, slots=True, kw_only=True)
class CheckContext:
    """Inputs shared by every check of one target."""

    config: TargetConfig
    observed: DeployedModule
    universe: frozenset[DomainId] | None = None

    @property
    def target(self) -> TargetId:
        return self.config.target

    @property
    def desired(self) -> ModuleConfig:
        return self.config.module

    def reachable(self, domain: DomainId) -> bool:
        return self.universe is None or domain in self.universe

    def violation(
        self,
        kind: ViolationKind,
        path: DomainPath,
        *,
        expected: object,
        actual: object,
        check: str,
        detail: str | None = None,
    ) -> Violation:
        return Violation(
            target=self.target,
            kind=kind,
            path=path,
            expected=expected,
            actual=actual,
            check=check,
            detail=detail,
        )


type Check = Callable[[CheckContext, "ViolationSink"], None]


def paired_nodes(
    context: CheckContext,
) -> Iterator[tuple[DomainPath, ModuleConfig, DeployedModule]]:
    """Yield desired/observed node pairs that exist on both sides.

    Routed children outside the universe are not visited. Aggregation members
    are only paired when the member kinds line up and no member moved.
    """

    stack: list[tuple[DomainPath, ModuleConfig, DeployedModule]] = [
        ((), context.desired, context.observed)
    ]
    while stack:
        path, desired, observed = stack.pop()
        yield path, desired, observed
        if desired.kind is not observed.kind:
            continue
        if isinstance(desired, RoutingConfig):
            routing = cast("DeployedRouting", observed)
            for domain in reversed(tuple(desired.domains)):
                child = routing.domains.get(domain)
                if child is not None and context.reachable(domain):
                    stack.append(((*path, domain), desired.domains[domain], child))
        elif isinstance(desired, AggregationConfig):
            aggregation = cast("DeployedAggregation", observed)
            if _members_line_up(desired, aggregation):
                for index in reversed(range(len(desired.modules))):
                    stack.append(
                        ((*path, index), desired.modules[index], aggregation.modules[index])
                    )


def _members_line_up(desired: AggregationConfig, observed: DeployedAggregation) -> bool:
    kinds_match = [m.kind for m in desired.modules] == [m.kind for m in observed.modules]
    return kinds_match and not members_reordered(desired.modules, observed.modules)


def check_module_types(context: CheckContext, sink: ViolationSink) -> None:
    for path, desired, observed in paired_nodes(context):
        if desired.kind is not observed.kind:
            sink.add(
                context.violation(
                    ViolationKind.MODULE_TYPE,
                    path,
                    expected=desired.kind,
                    actual=observed.kind,
                    check="module_types",
                )
            )


def check_ownership(context: CheckContext, sink: ViolationSink) -> None:
    """Every owned node must be owned by its declared owner."""

    for path, desired, observed in paired_nodes(context):
        if not isinstance(desired, RoutingConfig) or not isinstance(observed, DeployedRouting):
            continue
        if not eq_address(desired.owner, observed.owner):
            sink.add(
                context.violation(
                    ViolationKind.OWNER,
                    path,
                    expected=desired.owner,
                    actual=observed.owner,
                    check="ownership",
                )
            )


def check_enrolled_routes(context: CheckContext, sink: ViolationSink) -> None:
    """Enrolled routes must match the declared domains and pinned counterparts."""

    for path, desired, observed in paired_nodes(context):
        if not isinstance(desired, RoutingConfig) or not isinstance(observed, DeployedRouting):
            continue
        if desired.fallback_enabled != observed.fallback_enabled:
            sink.add(
                context.violation(
                    ViolationKind.FALLBACK,
                    path,
                    expected=desired.fallback_enabled,
                    actual=observed.fallback_enabled,
                    check="enrolled_routes",
                )
            )
        for domain, child in desired.domains.items():
            if domain not in observed.domains and context.reachable(domain):
                sink.add(
                    context.violation(
                        ViolationKind.ROUTE_MISSING,
                        (*path, domain),
                        expected=child.kind,
                        actual=None,
                        check="enrolled_routes",
                    )
                )
        for domain, enrolled in observed.domains.items():
            if domain not in desired.domains and context.reachable(domain):
                sink.add(
                    context.violation(
                        ViolationKind.ROUTE_UNEXPECTED,
                        (*path, domain),
                        expected=None,
                        actual=enrolled.address,
                        check="enrolled_routes",
                    )
                )

    for path, expected_address in context.config.pinned_addresses.items():
        node = node_at(context.observed, path)
        actual_address = node.address if node is not None else None
        if not eq_address(expected_address, actual_address):
            sink.add(
                context.violation(
                    ViolationKind.ROUTE_ADDRESS,
                    path,
                    expected=expected_address,
                    actual=actual_address,
                    check="enrolled_routes",
                )
            )


def check_multisig(context: CheckContext, sink: ViolationSink) -> None:
    for path, desired, observed in paired_nodes(context):
        if not isinstance(observed, DeployedMultisig):
            continue
        if len(observed.validators) < observed.threshold:
            sink.add(
                context.violation(
                    ViolationKind.THRESHOLD_UNSATISFIABLE,
                    path,
                    expected=f"<= {len(observed.validators)}",
                    actual=observed.threshold,
                    check="multisig",
                )
            )
        if not isinstance(desired, MultisigConfig):
            continue
        expected_set = normalize_addresses(desired.validators)
        actual_set = normalize_addresses(observed.validators)
        if expected_set != actual_set:
            sink.add(
                context.violation(
                    ViolationKind.VALIDATORS,
                    path,
                    expected=tuple(sorted(expected_set)),
                    actual=tuple(sorted(actual_set)),
                    check="multisig",
                )
            )
        if desired.threshold != observed.threshold:
            sink.add(
                context.violation(
                    ViolationKind.THRESHOLD,
                    path,
                    expected=desired.threshold,
                    actual=observed.threshold,
                    check="multisig",
                )
            )


def check_aggregation(context: CheckContext, sink: ViolationSink) -> None:
    for path, desired, observed in paired_nodes(context):
        if not isinstance(desired, AggregationConfig):
            continue
        if not isinstance(observed, DeployedAggregation):
            continue
        expected_members = tuple(member.kind for member in desired.modules)
        actual_members = tuple(member.kind for member in observed.modules)
        if not _members_line_up(desired, observed):
            sink.add(
                context.violation(
                    ViolationKind.AGGREGATION_MEMBERS,
                    path,
                    expected=expected_members,
                    actual=actual_members,
                    check="aggregation",
                    detail="members reordered" if expected_members == actual_members else None,
                )
            )
        if desired.threshold != observed.threshold:
            sink.add(
                context.violation(
                    ViolationKind.THRESHOLD,
                    path,
                    expected=desired.threshold,
                    actual=observed.threshold,
                    check="aggregation",
                )
            )


def check_trusted_relayer(context: CheckContext, sink: ViolationSink) -> None:
    for path, desired, observed in paired_nodes(context):
        if not isinstance(desired, TrustedRelayerConfig):
            continue
        if not isinstance(observed, DeployedTrustedRelayer):
            continue
        if not eq_address(desired.relayer, observed.relayer):
            sink.add(
                context.violation(
                    ViolationKind.RELAYER,
                    path,
                    expected=desired.relayer,
                    actual=observed.relayer,
                    check="trusted_relayer",
                )
            )


def check_anchor(context: CheckContext, sink: ViolationSink) -> None:
    expected_anchor = context.config.anchor
    if expected_anchor is None:
        return
    for path, node in walk(context.observed):
        if node.anchor is not None and not eq_address(expected_anchor, node.anchor):
            sink.add(
                context.violation(
                    ViolationKind.ANCHOR,
                    path,
                    expected=expected_anchor,
                    actual=node.anchor,
                    check="anchor",
                )
            )


def check_bytecode_hashes(context: CheckContext, sink: ViolationSink) -> None:
    """Nodes pinned to a recorded code hash must not have been redeployed."""

    for path, expected_hash in context.config.recorded_hashes.items():
        node = node_at(context.observed, path)
        actual_hash = node.code_hash if node is not None else None
        if actual_hash is None or actual_hash.lower() != expected_hash.lower():
            sink.add(
                context.violation(
                    ViolationKind.BYTECODE_HASH,
                    path,
                    expected=expected_hash,
                    actual=actual_hash,
                    check="bytecode_hashes",
                )
            )


DEFAULT_CHECKS: dict[str, Check] = {
    "module_types": check_module_types,
    "ownership": check_ownership,
    "enrolled_routes": check_enrolled_routes,
    "multisig": check_multisig,
    "aggregation": check_aggregation,
    "trusted_relayer": check_trusted_relayer,
    "anchor": check_anchor,
    "bytecode_hashes": check_bytecode_hashes,
}
