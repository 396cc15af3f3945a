"""In-memory network: reader, executor, deploy primitive and dry-run fork.

Module trees are stored per target and replaced wholesale on every change;
deployed nodes are immutable values. Authority is checked against the
nearest routing owner at or above the node an operation touches, and only
when a signer is set.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from itertools import count
from logging import getLogger
from typing import TYPE_CHECKING, assert_never

from ismctl.domain.model import (
    ROOT_PATH,
    AggregationConfig,
    DeployedAggregation,
    DeployedMultisig,
    DeployedRouting,
    DeployedTrustedRelayer,
    MultisigConfig,
    OpKind,
    RoutingConfig,
    TrustedRelayerConfig,
    eq_address,
    format_path,
    node_at,
    normalize_address,
)
from ismctl.domain.ports import ApplyFailure, ReadFailure, Receipt
from ismctl.domain.reconciliation.plan import (
    EnrollPayload,
    OwnerPayload,
    RedeployPayload,
    ThresholdPayload,
    UnenrollPayload,
    ValidatorsPayload,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from ismctl.domain.model import (
        Address,
        DeployedModule,
        DomainId,
        DomainPath,
        ModuleConfig,
        TargetId,
    )
    from ismctl.domain.reconciliation.plan import UpdateOperation

log = getLogger(__name__)

_ADDRESSES = count(1)


class InMemoryNetwork:
    """Network double holding observed state for any number of targets."""

    def __init__(
        self,
        states: Mapping[TargetId, DeployedModule] | None = None,
        *,
        signer: Address | None = None,
    ) -> None:
        self.states: dict[TargetId, DeployedModule] = dict(states or {})
        self.signer = normalize_address(signer) if signer else None
        self.submissions: list[tuple[DomainId, UpdateOperation]] = []
        self.deployments: list[tuple[DomainId, Address]] = []
        self._registry: dict[Address, DeployedModule] = {}
        self._lock = threading.Lock()
        self.fail_on: Callable[[UpdateOperation], bool] | None = None
        self.unreadable: set[TargetId] = set()

    def read(self, target: TargetId) -> DeployedModule:
        if target in self.unreadable:
            raise ReadFailure(target, "network unreachable")
        try:
            return self.states[target]
        except KeyError as exc:
            raise ReadFailure(target, "no module deployed") from exc

    def fork(
        self,
        states: Mapping[TargetId, DeployedModule],
        *,
        signer: Address | None = None,
    ) -> InMemoryNetwork:
        """Return a disposable copy seeded with ``states`` on top of this network."""

        forked = InMemoryNetwork({**self.states, **states}, signer=signer)
        forked._registry = dict(self._registry)  # noqa: SLF001
        return forked

    def deploy(
        self,
        network: DomainId,
        config: ModuleConfig,
        constructor_args: Mapping[str, object] | None = None,
    ) -> Address:
        anchor = (constructor_args or {}).get("anchor")
        with self._lock:
            node = self._build(config, anchor=str(anchor) if anchor else None)
            self.deployments.append((network, node.address))
        log.debug("Deployed %s on %s at %s", config.kind, network, node.address)
        return node.address

    def submit(self, network: DomainId, operation: UpdateOperation) -> Receipt:
        if self.fail_on is not None and self.fail_on(operation):
            raise ApplyFailure(f"{operation.describe()} reverted on {network}")
        with self._lock:
            root = self.states.get(operation.target)
            if root is None:
                raise ApplyFailure(f"{operation.target} has no module on {network}")
            self._authorize(root, operation)
            self.states[operation.target] = self._apply(root, operation)
            self.submissions.append((network, operation))
            reference = f"tx-{len(self.submissions)}"
        return Receipt(network=network, reference=reference, description=operation.describe())

    def _authorize(self, root: DeployedModule, operation: UpdateOperation) -> None:
        if self.signer is None:
            return
        owner = _authority(root, operation.authority_path)
        if owner is not None and not eq_address(owner, self.signer):
            raise ApplyFailure(
                f"{self.signer} is not the owner ({owner}) of "
                f"{format_path(operation.authority_path)}"
            )

    def _apply(self, root: DeployedModule, operation: UpdateOperation) -> DeployedModule:
        payload = operation.payload
        match payload:
            case EnrollPayload():
                if payload.address is None:
                    raise ApplyFailure(f"Enroll at {format_path(operation.path)} has no address")
                child = self._lookup(payload.address)
                domain = payload.domain
                return _update(
                    root,
                    operation.path[:-1],
                    lambda node: _with_route(_routing(node, operation), domain, child),
                )
            case UnenrollPayload():
                domain = payload.domain
                return _update(
                    root,
                    operation.path[:-1],
                    lambda node: _with_route(_routing(node, operation), domain, None),
                )
            case ThresholdPayload():
                return _update(
                    root, operation.path, lambda node: _set_threshold(node, payload.threshold)
                )
            case ValidatorsPayload():
                return _update(
                    root, operation.path, lambda node: _set_validators(node, payload.validators)
                )
            case OwnerPayload():
                return _update(
                    root,
                    operation.path,
                    lambda node: replace(_routing(node, operation), owner=payload.owner),
                )
            case RedeployPayload():
                if operation.path != ROOT_PATH or payload.new_address is None:
                    raise ApplyFailure(f"Cannot rebind {format_path(operation.path)} in place")
                return self._lookup(payload.new_address)
            case _:
                assert_never(payload)

    def _lookup(self, address: Address) -> DeployedModule:
        try:
            return self._registry[normalize_address(address)]
        except KeyError as exc:
            raise ApplyFailure(f"No module deployed at {address}") from exc

    def _build(self, config: ModuleConfig, *, anchor: Address | None) -> DeployedModule:
        address = f"0x{next(_ADDRESSES):040x}"
        node: DeployedModule
        match config:
            case MultisigConfig():
                node = DeployedMultisig(
                    address=address, threshold=config.threshold, validators=config.validators
                )
            case RoutingConfig():
                node = DeployedRouting(
                    address=address,
                    owner=config.owner,
                    domains={
                        domain: self._build(child, anchor=anchor)
                        for domain, child in config.domains.items()
                    },
                    fallback_enabled=config.fallback_enabled,
                    # fallback routing resolves unknown domains through its anchor
                    anchor=anchor if config.fallback_enabled else None,
                )
            case AggregationConfig():
                node = DeployedAggregation(
                    address=address,
                    threshold=config.threshold,
                    modules=tuple(self._build(member, anchor=anchor) for member in config.modules),
                )
            case TrustedRelayerConfig():
                node = DeployedTrustedRelayer(address=address, relayer=config.relayer)
            case _:
                assert_never(config)
        self._registry[address] = node
        return node


def _authority(root: DeployedModule, path: DomainPath) -> Address | None:
    owner: Address | None = None
    for depth in range(len(path) + 1):
        node = node_at(root, path[:depth])
        if isinstance(node, DeployedRouting):
            owner = node.owner
    return owner


def _update(
    root: DeployedModule,
    path: DomainPath,
    change: Callable[[DeployedModule], DeployedModule],
) -> DeployedModule:
    if not path:
        return change(root)
    head, *rest = path
    match root:
        case DeployedRouting() if isinstance(head, str) and head in root.domains:
            child = _update(root.domains[head], tuple(rest), change)
            return replace(root, domains={**root.domains, head: child})
        case DeployedAggregation() if isinstance(head, int) and head < len(root.modules):
            members = list(root.modules)
            members[head] = _update(members[head], tuple(rest), change)
            return replace(root, modules=tuple(members))
        case _:
            raise ApplyFailure(f"No module at {format_path(path)} below {root.address}")


def _routing(node: DeployedModule, operation: UpdateOperation) -> DeployedRouting:
    if not isinstance(node, DeployedRouting):
        raise ApplyFailure(f"{operation.describe()}: parent is a {node.kind} module")
    return node


def _with_route(
    node: DeployedRouting, domain: DomainId, child: DeployedModule | None
) -> DeployedRouting:
    if child is None:
        return replace(
            node, domains={key: value for key, value in node.domains.items() if key != domain}
        )
    return replace(node, domains={**node.domains, domain: child})


def _set_threshold(node: DeployedModule, threshold: int) -> DeployedModule:
    if not isinstance(node, DeployedMultisig):
        raise ApplyFailure(f"Cannot set a threshold on a {node.kind} module")
    if threshold < 1 or threshold > len(node.validators):
        raise ApplyFailure(f"Threshold {threshold} invalid for {len(node.validators)} validators")
    return replace(node, threshold=threshold)


def _set_validators(node: DeployedModule, validators: frozenset[Address]) -> DeployedModule:
    if not isinstance(node, DeployedMultisig):
        raise ApplyFailure(f"Cannot set validators on a {node.kind} module")
    if node.threshold > len(validators):
        raise ApplyFailure(
            f"{len(validators)} validators cannot satisfy threshold {node.threshold}"
        )
    return replace(node, validators=validators)
