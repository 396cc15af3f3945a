"""Builders for desired and deployed module trees used across tests."""

from __future__ import annotations

from itertools import count
from typing import TYPE_CHECKING, assert_never

from ismctl.domain.model import (
    AggregationConfig,
    DeployedAggregation,
    DeployedMultisig,
    DeployedRouting,
    DeployedTrustedRelayer,
    MultisigConfig,
    RoutingConfig,
    TrustedRelayerConfig,
    normalize_addresses,
)
from ismctl.domain.reconciliation import RunConfig, TargetConfig

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ismctl.domain.model import Address, DeployedModule, ModuleConfig

OWNER = "0x00000000000000000000000000000000000000aa"
NEW_OWNER = "0x00000000000000000000000000000000000000bb"
MAILBOX_1 = "0x000000000000000000000000000000000000a001"
MAILBOX_2 = "0x000000000000000000000000000000000000a002"
RELAYER = "0x00000000000000000000000000000000000000cc"

_ADDRESSES = count(0xD000)


def addr(label: str) -> Address:
    """Stable fake address for a one-letter validator label."""

    return f"0x{label.encode().hex():0>40}"


def next_address() -> Address:
    return f"0x{next(_ADDRESSES):040x}"


def multisig(threshold: int, *labels: str) -> MultisigConfig:
    return MultisigConfig.of(threshold=threshold, validators=[addr(label) for label in labels])


def routing(
    domains: Mapping[str, ModuleConfig] | None = None,
    *,
    owner: Address = OWNER,
    fallback: bool = False,
) -> RoutingConfig:
    return RoutingConfig(owner=owner, domains=dict(domains or {}), fallback_enabled=fallback)


def aggregation(threshold: int, *modules: ModuleConfig) -> AggregationConfig:
    return AggregationConfig(threshold=threshold, modules=tuple(modules))


def relayer(address: Address = RELAYER) -> TrustedRelayerConfig:
    return TrustedRelayerConfig(relayer=address)


def deployed(config: ModuleConfig, *, anchor: Address | None = None) -> DeployedModule:
    """Deploy ``config`` as-is, binding fallback routing nodes to ``anchor``."""

    address = next_address()
    match config:
        case MultisigConfig():
            return DeployedMultisig(
                address=address,
                threshold=config.threshold,
                validators=normalize_addresses(config.validators),
            )
        case RoutingConfig():
            return DeployedRouting(
                address=address,
                owner=config.owner,
                domains={
                    domain: deployed(child, anchor=anchor)
                    for domain, child in config.domains.items()
                },
                fallback_enabled=config.fallback_enabled,
                anchor=anchor if config.fallback_enabled else None,
            )
        case AggregationConfig():
            return DeployedAggregation(
                address=address,
                threshold=config.threshold,
                modules=tuple(deployed(member, anchor=anchor) for member in config.modules),
            )
        case TrustedRelayerConfig():
            return DeployedTrustedRelayer(address=address, relayer=config.relayer)
        case _:
            assert_never(config)


def run_config(
    targets: Iterable[TargetConfig],
    *,
    domains: Iterable[str] | None = None,
) -> RunConfig:
    return RunConfig(
        targets={target.target: target for target in targets},
        domains=frozenset(domains) if domains is not None else None,
    )

