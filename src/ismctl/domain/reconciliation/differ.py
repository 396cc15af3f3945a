"""Compute the minimal ordered operation list converging an observed tree.

Responsibilities of this stage:
- compare one desired module tree against one observed module tree
- decide per node between in-place updates and replacement
- produce a ``ReconciliationPlan`` without touching any network

The differ is pure and deterministic. It never mutates its inputs and only
logs when it skips domains that left the declared universe.

Per-node rules:
- multisig: validator set compared as a set, threshold as a scalar
- routing: enroll desired-only domains, unenroll observed-only domains,
  recurse into shared ones, transfer ownership last
- aggregation: member count, order and threshold are immutable, any change
  replaces; members that stay in place are diffed like any other node
- trusted relayer: no setter, any change replaces
- any node bound to an anchor is replaced when the anchor changes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, assert_never, cast

from ismctl.domain.model import (
    ROOT_PATH,
    AggregationConfig,
    DeployedAggregation,
    DeployedMultisig,
    DeployedRouting,
    MultisigConfig,
    OpKind,
    RoutingConfig,
    TrustedRelayerConfig,
    eq_address,
    format_path,
    members_reordered,
    normalize_addresses,
)

from .plan import (
    EnrollPayload,
    OwnerPayload,
    ReconciliationPlan,
    RedeployPayload,
    ThresholdPayload,
    UnenrollPayload,
    UpdateOperation,
    ValidatorsPayload,
)

if TYPE_CHECKING:
    from collections.abc import Collection

    from ismctl.domain.model import (
        Address,
        DeployedModule,
        DeployedTrustedRelayer,
        DomainId,
        DomainPath,
        ModuleConfig,
        TargetId,
    )

log = getLogger(__name__)


@dataclass(slots=True)
class _DiffContext:
    target: TargetId
    anchor: Address | None
    universe: frozenset[DomainId] | None
    skipped: list[DomainPath] = field(default_factory=list["DomainPath"])

    def reachable(self, domain: DomainId) -> bool:
        return self.universe is None or domain in self.universe


def diff_module(
    desired: ModuleConfig,
    observed: DeployedModule,
    *,
    target: TargetId,
    anchor: Address | None = None,
    universe: Collection[DomainId] | None = None,
) -> ReconciliationPlan:
    """Return the plan converging ``observed`` to ``desired`` for ``target``.

    ``anchor`` is the external address the tree should be bound to; nodes
    that recorded a different anchor are replaced. ``universe`` restricts the
    routing domains considered reachable; ``None`` means unrestricted.
    """

    context = _DiffContext(
        target=target,
        anchor=anchor,
        universe=frozenset(universe) if universe is not None else None,
    )
    result = ReconciliationPlan(target=target)
    result.extend(_diff(desired, observed, ROOT_PATH, context))
    result.skipped.extend(context.skipped)
    return result


def _diff(
    desired: ModuleConfig,
    observed: DeployedModule,
    path: DomainPath,
    context: _DiffContext,
) -> list[UpdateOperation]:
    reason = _replacement_reason(desired, observed, context)
    if reason is not None:
        return [_redeploy(desired, observed, path, reason, context)]

    match desired:
        case MultisigConfig():
            return _diff_multisig(desired, cast("DeployedMultisig", observed), path, context)
        case RoutingConfig():
            return _diff_routing(desired, cast("DeployedRouting", observed), path, context)
        case AggregationConfig():
            return _diff_aggregation(desired, cast("DeployedAggregation", observed), path, context)
        case TrustedRelayerConfig():
            return []
        case _:
            assert_never(desired)


def _replacement_reason(
    desired: ModuleConfig,
    observed: DeployedModule,
    context: _DiffContext,
) -> str | None:
    if desired.kind is not observed.kind:
        return f"module type changed from {observed.kind} to {desired.kind}"
    if (
        context.anchor is not None
        and observed.anchor is not None
        and not eq_address(context.anchor, observed.anchor)
    ):
        return f"anchor changed from {observed.anchor} to {context.anchor}"

    match desired:
        case RoutingConfig():
            routing = cast("DeployedRouting", observed)
            if desired.fallback_enabled != routing.fallback_enabled:
                return "fallback routing changed"
        case AggregationConfig():
            aggregation = cast("DeployedAggregation", observed)
            if len(desired.modules) != len(aggregation.modules):
                return "aggregation member count changed"
            member_kinds = [member.kind for member in desired.modules]
            if member_kinds != [member.kind for member in aggregation.modules]:
                return "aggregation member order changed"
            if members_reordered(desired.modules, aggregation.modules):
                return "aggregation member order changed"
            if desired.threshold != aggregation.threshold:
                return "aggregation threshold changed"
        case TrustedRelayerConfig():
            relayer = cast("DeployedTrustedRelayer", observed)
            if not eq_address(desired.relayer, relayer.relayer):
                return "trusted relayer changed"
        case MultisigConfig():
            pass
        case _:
            assert_never(desired)
    return None


def _diff_multisig(
    desired: MultisigConfig,
    observed: DeployedMultisig,
    path: DomainPath,
    context: _DiffContext,
) -> list[UpdateOperation]:
    desired_validators = normalize_addresses(desired.validators)
    validators_changed = desired_validators != normalize_addresses(observed.validators)
    threshold_changed = desired.threshold != observed.threshold

    set_validators = UpdateOperation(
        target=context.target,
        kind=OpKind.SET_VALIDATORS,
        path=path,
        payload=ValidatorsPayload(validators=desired_validators),
    )
    set_threshold = UpdateOperation(
        target=context.target,
        kind=OpKind.SET_THRESHOLD,
        path=path,
        payload=ThresholdPayload(threshold=desired.threshold),
    )

    if validators_changed and threshold_changed:
        # the live threshold must never exceed the live validator count
        if len(desired_validators) < observed.threshold:
            return [set_threshold, set_validators]
        return [set_validators, set_threshold]
    if validators_changed:
        return [set_validators]
    if threshold_changed:
        return [set_threshold]
    return []


def _diff_routing(
    desired: RoutingConfig,
    observed: DeployedRouting,
    path: DomainPath,
    context: _DiffContext,
) -> list[UpdateOperation]:
    operations: list[UpdateOperation] = []
    observed_only = [domain for domain in observed.domains if domain not in desired.domains]

    for domain in (*desired.domains, *observed_only):
        child_path = (*path, domain)
        child_operations = _diff_routed_domain(desired, observed, domain, child_path, context)
        if not child_operations:
            continue
        if not context.reachable(domain):
            log.warning(
                "Skipping %s for %s: domain %s is not in the declared universe",
                format_path(child_path),
                context.target,
                domain,
            )
            context.skipped.append(child_path)
            continue
        operations.extend(child_operations)

    if not eq_address(desired.owner, observed.owner):
        operations.append(
            UpdateOperation(
                target=context.target,
                kind=OpKind.TRANSFER_OWNER,
                path=path,
                payload=OwnerPayload(owner=desired.owner, previous_owner=observed.owner),
            )
        )
    return operations


def _diff_routed_domain(
    desired: RoutingConfig,
    observed: DeployedRouting,
    domain: DomainId,
    path: DomainPath,
    context: _DiffContext,
) -> list[UpdateOperation]:
    desired_child = desired.domains.get(domain)
    observed_child = observed.domains.get(domain)

    if observed_child is None:
        if desired_child is None:
            return []
        return [_enroll(domain, desired_child, path, context)]

    if desired_child is None:
        return [
            UpdateOperation(
                target=context.target,
                kind=OpKind.UNENROLL_DOMAIN,
                path=path,
                payload=UnenrollPayload(domain=domain),
            )
        ]

    child_operations = _diff(desired_child, observed_child, path, context)
    if _is_replacement(child_operations, path):
        return [_enroll(domain, desired_child, path, context, replaces=observed_child.address)]
    return child_operations


def _diff_aggregation(
    desired: AggregationConfig,
    observed: DeployedAggregation,
    path: DomainPath,
    context: _DiffContext,
) -> list[UpdateOperation]:
    operations: list[UpdateOperation] = []
    for index, (desired_member, observed_member) in enumerate(
        zip(desired.modules, observed.modules, strict=True)
    ):
        member_path = (*path, index)
        member_operations = _diff(desired_member, observed_member, member_path, context)
        if _is_replacement(member_operations, member_path):
            return [_redeploy(desired, observed, path, f"member {index} replaced", context)]
        operations.extend(member_operations)
    return operations


def _is_replacement(operations: list[UpdateOperation], path: DomainPath) -> bool:
    return any(
        operation.kind is OpKind.REDEPLOY and operation.path == path for operation in operations
    )


def _enroll(
    domain: DomainId,
    module: ModuleConfig,
    path: DomainPath,
    context: _DiffContext,
    *,
    replaces: Address | None = None,
) -> UpdateOperation:
    return UpdateOperation(
        target=context.target,
        kind=OpKind.ENROLL_DOMAIN,
        path=path,
        payload=EnrollPayload(domain=domain, module=module, replaces=replaces),
    )


def _redeploy(
    desired: ModuleConfig,
    observed: DeployedModule,
    path: DomainPath,
    reason: str,
    context: _DiffContext,
) -> UpdateOperation:
    return UpdateOperation(
        target=context.target,
        kind=OpKind.REDEPLOY,
        path=path,
        payload=RedeployPayload(module=desired, reason=reason, previous_address=observed.address),
    )
