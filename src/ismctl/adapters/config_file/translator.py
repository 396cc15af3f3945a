"""Translate validated config-file models into the run configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from ismctl.domain.model import (
    AggregationConfig,
    ConfigValidationError,
    MultisigConfig,
    RoutingConfig,
    TrustedRelayerConfig,
    normalize_address,
    normalize_addresses,
    parse_path,
    reject_duplicates,
)
from ismctl.domain.reconciliation import RunConfig, TargetConfig

from .schema import AggregationSpec, MultisigSpec, RoutingSpec, TrustedRelayerSpec

if TYPE_CHECKING:
    from ismctl.domain.model import DomainPath, ModuleConfig

    from .schema import ModuleSpec, RunConfigFile, TargetSpec


def translate_module(spec: ModuleSpec, path: DomainPath = ()) -> ModuleConfig:
    match spec:
        case MultisigSpec():
            validators = reject_duplicates(
                (normalize_address(validator) for validator in spec.validators),
                what="validators",
                path=path,
            )
            return MultisigConfig(
                threshold=spec.threshold, validators=normalize_addresses(validators)
            )
        case RoutingSpec():
            return RoutingConfig(
                owner=spec.owner,
                domains={
                    domain: translate_module(child, (*path, domain))
                    for domain, child in spec.domains.items()
                },
                fallback_enabled=spec.fallback,
            )
        case AggregationSpec():
            return AggregationConfig(
                threshold=spec.threshold,
                modules=tuple(
                    translate_module(member, (*path, index))
                    for index, member in enumerate(spec.modules)
                ),
            )
        case TrustedRelayerSpec():
            return TrustedRelayerConfig(relayer=spec.relayer)
        case _:
            assert_never(spec)


def translate_target(name: str, spec: TargetSpec) -> TargetConfig:
    module = translate_module(spec.module)
    return TargetConfig(
        target=name,
        module=module,
        owner=normalize_address(spec.owner) if spec.owner else None,
        anchor=normalize_address(spec.anchor) if spec.anchor else None,
        network=spec.network,
        admin_network=spec.admin_network,
        remove=spec.remove,
        recorded_hashes={
            _path(name, key): value.lower() for key, value in spec.recorded_hashes.items()
        },
        pinned_addresses={
            _path(name, key): normalize_address(value)
            for key, value in spec.pinned_addresses.items()
        },
    )


def translate_run_config(document: RunConfigFile) -> RunConfig:
    domains = None
    if document.domains is not None:
        domains = frozenset(reject_duplicates(document.domains, what="domains"))
    return RunConfig(
        targets={name: translate_target(name, spec) for name, spec in document.targets.items()},
        domains=domains,
    )


def _path(target: str, text: str) -> DomainPath:
    try:
        return parse_path(text)
    except ValueError as exc:
        raise ConfigValidationError([f"{target}: invalid path {text!r}: {exc}"]) from exc
