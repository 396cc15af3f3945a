"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ModuleKind(StrEnum):
    """Variant tag of a module tree node."""

    MULTISIG = "multisig"
    ROUTING = "routing"
    AGGREGATION = "aggregation"
    TRUSTED_RELAYER = "trustedRelayer"


class OpKind(StrEnum):
    ENROLL_DOMAIN = "enroll_domain"
    UNENROLL_DOMAIN = "unenroll_domain"
    SET_THRESHOLD = "set_threshold"
    SET_VALIDATORS = "set_validators"
    TRANSFER_OWNER = "transfer_owner"
    REDEPLOY = "redeploy"

    @property
    def is_structural(self) -> bool:
        return self in _STRUCTURAL_OPS

    @property
    def is_ownership(self) -> bool:
        return self is OpKind.TRANSFER_OWNER


_STRUCTURAL_OPS = frozenset({OpKind.ENROLL_DOMAIN, OpKind.UNENROLL_DOMAIN, OpKind.REDEPLOY})


class ViolationKind(StrEnum):
    OWNER = "owner"
    ROUTE_MISSING = "route_missing"
    ROUTE_UNEXPECTED = "route_unexpected"
    ROUTE_ADDRESS = "route_address"
    MODULE_TYPE = "module_type"
    FALLBACK = "fallback"
    VALIDATORS = "validators"
    THRESHOLD = "threshold"
    THRESHOLD_UNSATISFIABLE = "threshold_unsatisfiable"
    AGGREGATION_MEMBERS = "aggregation_members"
    RELAYER = "relayer"
    ANCHOR = "anchor"
    BYTECODE_HASH = "bytecode_hash"
    CHECK_FAILED = "check_failed"


class TargetStatus(StrEnum):
    """Lifecycle of one target through a governance run."""

    UNCHECKED = "unchecked"
    READ_FAILED = "read_failed"
    CLEAN = "clean"
    VIOLATIONS = "violations"
    PLAN_BUILT = "plan_built"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


class OpStatus(StrEnum):
    APPLIED = "applied"
    SIMULATED = "simulated"
    FAILED = "failed"
    BLOCKED = "blocked"
