"""Public domain model surface."""

from __future__ import annotations

from ismctl.domain.model.deployed import (
    DeployedAggregation,
    DeployedModule,
    DeployedMultisig,
    DeployedRouting,
    DeployedTrustedRelayer,
    members_reordered,
    node_at,
    to_config,
    walk,
)
from ismctl.domain.model.enums import ModuleKind, OpKind, OpStatus, TargetStatus, ViolationKind
from ismctl.domain.model.modules import (
    AggregationConfig,
    ModuleConfig,
    MultisigConfig,
    RoutingConfig,
    TrustedRelayerConfig,
)
from ismctl.domain.model.primitives import (
    ROOT_PATH,
    Address,
    DomainId,
    DomainPath,
    PathSegment,
    TargetId,
    eq_address,
    format_path,
    is_prefix,
    normalize_address,
    normalize_addresses,
    parse_path,
)
from ismctl.domain.model.validation import (
    MAX_MODULE_DEPTH,
    ConfigValidationError,
    reject_duplicates,
    validate_module_config,
)

__all__ = [  # noqa: RUF022
    # primitives
    "Address",
    "DomainId",
    "DomainPath",
    "PathSegment",
    "ROOT_PATH",
    "TargetId",
    "eq_address",
    "format_path",
    "is_prefix",
    "normalize_address",
    "normalize_addresses",
    "parse_path",
    # enums
    "ModuleKind",
    "OpKind",
    "OpStatus",
    "TargetStatus",
    "ViolationKind",
    # desired trees
    "AggregationConfig",
    "ModuleConfig",
    "MultisigConfig",
    "RoutingConfig",
    "TrustedRelayerConfig",
    # observed trees
    "DeployedAggregation",
    "DeployedModule",
    "DeployedMultisig",
    "DeployedRouting",
    "DeployedTrustedRelayer",
    "members_reordered",
    "node_at",
    "to_config",
    "walk",
    # validation
    "ConfigValidationError",
    "MAX_MODULE_DEPTH",
    "reject_duplicates",
    "validate_module_config",
]
