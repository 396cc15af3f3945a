"""Translate between gateway payloads and domain objects."""

from __future__ import annotations

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
    normalize_address,
    normalize_addresses,
)
from ismctl.domain.reconciliation.plan import (
    EnrollPayload,
    OwnerPayload,
    RedeployPayload,
    ThresholdPayload,
    UnenrollPayload,
    ValidatorsPayload,
)

from .schema import (
    AggregationNode,
    DeploymentRequest,
    MultisigNode,
    RoutingNode,
    TransactionRequest,
    TrustedRelayerNode,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ismctl.domain.model import DeployedModule, ModuleConfig
    from ismctl.domain.reconciliation.plan import OperationPayload, UpdateOperation

    from .schema import DeployedNode


def translate_node(node: DeployedNode) -> DeployedModule:
    anchor = normalize_address(node.anchor) if node.anchor else None
    match node:
        case MultisigNode():
            return DeployedMultisig(
                address=normalize_address(node.address),
                threshold=node.threshold,
                validators=normalize_addresses(node.validators),
                anchor=anchor,
                code_hash=node.code_hash,
            )
        case RoutingNode():
            return DeployedRouting(
                address=normalize_address(node.address),
                owner=normalize_address(node.owner),
                domains={domain: translate_node(child) for domain, child in node.domains.items()},
                fallback_enabled=node.fallback,
                anchor=anchor,
                code_hash=node.code_hash,
            )
        case AggregationNode():
            return DeployedAggregation(
                address=normalize_address(node.address),
                threshold=node.threshold,
                modules=tuple(translate_node(member) for member in node.modules),
                anchor=anchor,
                code_hash=node.code_hash,
            )
        case TrustedRelayerNode():
            return DeployedTrustedRelayer(
                address=normalize_address(node.address),
                relayer=normalize_address(node.relayer),
                anchor=anchor,
                code_hash=node.code_hash,
            )
        case _:
            assert_never(node)


def encode_module(config: ModuleConfig) -> dict[str, object]:
    """Encode a desired module in the same shape the config file uses."""

    match config:
        case MultisigConfig():
            return {
                "type": config.kind.value,
                "threshold": config.threshold,
                "validators": sorted(config.validators),
            }
        case RoutingConfig():
            return {
                "type": config.kind.value,
                "owner": config.owner,
                "fallback": config.fallback_enabled,
                "domains": {
                    domain: encode_module(child) for domain, child in config.domains.items()
                },
            }
        case AggregationConfig():
            return {
                "type": config.kind.value,
                "threshold": config.threshold,
                "modules": [encode_module(member) for member in config.modules],
            }
        case TrustedRelayerConfig():
            return {"type": config.kind.value, "relayer": config.relayer}
        case _:
            assert_never(config)


def encode_payload(payload: OperationPayload) -> dict[str, object]:
    match payload:
        case EnrollPayload():
            return {
                "domain": payload.domain,
                "address": payload.address,
                "replaces": payload.replaces,
            }
        case UnenrollPayload():
            return {"domain": payload.domain}
        case ThresholdPayload():
            return {"threshold": payload.threshold}
        case ValidatorsPayload():
            return {"validators": sorted(payload.validators)}
        case OwnerPayload():
            return {"owner": payload.owner}
        case RedeployPayload():
            return {
                "reason": payload.reason,
                "previousAddress": payload.previous_address,
                "newAddress": payload.new_address,
            }
        case _:
            assert_never(payload)


def build_transaction_request(operation: UpdateOperation) -> TransactionRequest:
    return TransactionRequest(
        target=operation.target,
        kind=operation.kind.value,
        path=list(operation.path),
        payload=encode_payload(operation.payload),
    )


def build_deployment_request(
    config: ModuleConfig,
    constructor_args: Mapping[str, object] | None,
) -> DeploymentRequest:
    return DeploymentRequest(
        module=encode_module(config),
        constructor_args=dict(constructor_args or {}),
    )
