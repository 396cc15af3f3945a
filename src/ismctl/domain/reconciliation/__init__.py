"""Reconciliation of desired module trees against deployed ones.

Layered flow:
1) read the deployed tree of each target through a ``StateReader``
2) run the check battery and collect violations (``ViolationChecker``)
3) diff desired and observed trees into a ``ReconciliationPlan``
4) sequence and apply the plan per target (``Governor``)
"""

from __future__ import annotations

from .checker import UnexpectedViolationsError, ViolationChecker
from .checks import DEFAULT_CHECKS, Check, CheckContext
from .derive import derive_plan
from .differ import diff_module
from .governor import (
    ApplyResult,
    Governor,
    InvalidTransitionError,
    OperationOutcome,
    TargetResult,
)
from .plan import (
    EnrollPayload,
    OwnerPayload,
    PlanInvariantError,
    ReconciliationPlan,
    RedeployPayload,
    ThresholdPayload,
    UnenrollPayload,
    UpdateOperation,
    ValidatorsPayload,
)
from .sequencing import depends_on, sequence_operations
from .settings import RunConfig, TargetConfig
from .violations import Violation, ViolationSink

__all__ = [
    "DEFAULT_CHECKS",
    "ApplyResult",
    "Check",
    "CheckContext",
    "EnrollPayload",
    "Governor",
    "InvalidTransitionError",
    "OperationOutcome",
    "OwnerPayload",
    "PlanInvariantError",
    "ReconciliationPlan",
    "RedeployPayload",
    "RunConfig",
    "TargetConfig",
    "TargetResult",
    "ThresholdPayload",
    "UnenrollPayload",
    "UnexpectedViolationsError",
    "UpdateOperation",
    "ValidatorsPayload",
    "Violation",
    "ViolationChecker",
    "ViolationSink",
    "depends_on",
    "derive_plan",
    "diff_module",
    "sequence_operations",
]
