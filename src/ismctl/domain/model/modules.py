"""Desired module trees.

A module tree is a tagged union of four node variants. Nodes are immutable
values; two configs compare equal iff they would deploy identical objects,
which is why validator sets are normalized and aggregation members keep
their order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from .enums import ModuleKind
from .primitives import normalize_address, normalize_addresses

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .primitives import Address, DomainId


@dataclass(frozen=True, slots=True, kw_only=True)
class MultisigConfig:
    """M-of-N validator set."""

    kind: ClassVar[ModuleKind] = ModuleKind.MULTISIG

    threshold: int
    validators: frozenset[Address]

    @classmethod
    def of(cls, *, threshold: int, validators: Iterable[Address]) -> MultisigConfig:
        return cls(threshold=threshold, validators=normalize_addresses(validators))


@dataclass(frozen=True, slots=True, kw_only=True)
class RoutingConfig:
    """Owner-gated dispatch from domain keys to submodules."""

    kind: ClassVar[ModuleKind] = ModuleKind.ROUTING

    owner: Address
    domains: Mapping[DomainId, ModuleConfig] = field(
        default_factory=dict["DomainId", "ModuleConfig"]
    )
    fallback_enabled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "owner", normalize_address(self.owner))


@dataclass(frozen=True, slots=True, kw_only=True)
class AggregationConfig:
    """Threshold over an ordered, immutable member list."""

    kind: ClassVar[ModuleKind] = ModuleKind.AGGREGATION

    threshold: int
    modules: tuple[ModuleConfig, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class TrustedRelayerConfig:
    kind: ClassVar[ModuleKind] = ModuleKind.TRUSTED_RELAYER

    relayer: Address

    def __post_init__(self) -> None:
        object.__setattr__(self, "relayer", normalize_address(self.relayer))


type ModuleConfig = MultisigConfig | RoutingConfig | AggregationConfig | TrustedRelayerConfig
