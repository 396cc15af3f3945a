"""Observed module trees as read back from a live target.

Every deployed node carries the on-chain ``address`` that identifies it. Two
deployed nodes are the same object iff their addresses match. ``anchor`` is
recorded only for nodes bound to an external anchor (for example a fallback
routing module bound to its mailbox).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, assert_never

from .enums import ModuleKind
from .modules import AggregationConfig, MultisigConfig, RoutingConfig, TrustedRelayerConfig
from .primitives import normalize_address

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from .modules import ModuleConfig
    from .primitives import Address, DomainId, DomainPath


@dataclass(frozen=True, slots=True, kw_only=True)
class DeployedMultisig:
    kind: ClassVar[ModuleKind] = ModuleKind.MULTISIG

    address: Address
    threshold: int
    validators: frozenset[Address]
    anchor: Address | None = None
    code_hash: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DeployedRouting:
    kind: ClassVar[ModuleKind] = ModuleKind.ROUTING

    address: Address
    owner: Address
    domains: Mapping[DomainId, DeployedModule] = field(
        default_factory=dict["DomainId", "DeployedModule"]
    )
    fallback_enabled: bool = False
    anchor: Address | None = None
    code_hash: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "owner", normalize_address(self.owner))


@dataclass(frozen=True, slots=True, kw_only=True)
class DeployedAggregation:
    kind: ClassVar[ModuleKind] = ModuleKind.AGGREGATION

    address: Address
    threshold: int
    modules: tuple[DeployedModule, ...]
    anchor: Address | None = None
    code_hash: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DeployedTrustedRelayer:
    kind: ClassVar[ModuleKind] = ModuleKind.TRUSTED_RELAYER

    address: Address
    relayer: Address
    anchor: Address | None = None
    code_hash: str | None = None


type DeployedModule = (
    DeployedMultisig | DeployedRouting | DeployedAggregation | DeployedTrustedRelayer
)


def to_config(node: DeployedModule) -> ModuleConfig:
    """Strip deployment data and return the comparable desired-side config."""

    match node:
        case DeployedMultisig():
            return MultisigConfig(threshold=node.threshold, validators=node.validators)
        case DeployedRouting():
            return RoutingConfig(
                owner=node.owner,
                domains={key: to_config(child) for key, child in node.domains.items()},
                fallback_enabled=node.fallback_enabled,
            )
        case DeployedAggregation():
            return AggregationConfig(
                threshold=node.threshold,
                modules=tuple(to_config(member) for member in node.modules),
            )
        case DeployedTrustedRelayer():
            return TrustedRelayerConfig(relayer=node.relayer)
        case _:
            assert_never(node)


def members_reordered(
    desired: Sequence[ModuleConfig], observed: Sequence[DeployedModule]
) -> bool:
    """Return whether a desired aggregation member sits at another index on chain.

    Only positions that differ are compared, so repeated identical members do
    not count as a reorder.
    """

    live = [to_config(member) for member in observed]
    pairs = enumerate(zip(desired, live, strict=False))
    mismatched = [index for index, (want, have) in pairs if want != have]
    return any(
        desired[index] == live[other]
        for index in mismatched
        for other in mismatched
        if other != index
    )


def children(node: DeployedModule) -> Iterator[tuple[DomainId | int, DeployedModule]]:
    match node:
        case DeployedRouting():
            yield from node.domains.items()
        case DeployedAggregation():
            yield from enumerate(node.modules)
        case DeployedMultisig() | DeployedTrustedRelayer():
            return
        case _:
            assert_never(node)


def walk(
    node: DeployedModule, path: DomainPath = ()
) -> Iterator[tuple[DomainPath, DeployedModule]]:
    """Yield ``(path, node)`` for the whole tree, parents before children."""

    yield path, node
    for segment, child in children(node):
        yield from walk(child, (*path, segment))


def node_at(node: DeployedModule, path: DomainPath) -> DeployedModule | None:
    current: DeployedModule | None = node
    for segment in path:
        if current is None:
            return None
        current = dict(children(current)).get(segment)
    return current
