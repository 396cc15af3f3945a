"""Plan types shared by the differ, checker and governor.

The reconciliation plan is the contract between:
- the differ (pure comparison of desired and observed trees)
- the governor (sequencing and application)
- reporting surfaces

Keeping this model explicit prevents implicit coupling between the phases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ismctl.domain.model import ROOT_PATH, OpKind, format_path

if TYPE_CHECKING:
    from ismctl.domain.model import Address, DomainId, DomainPath, ModuleConfig, TargetId


class PlanInvariantError(ValueError):
    """Raised when a plan would contain two operations for the same (path, kind)."""


@dataclass(frozen=True, slots=True, kw_only=True)
class EnrollPayload:
    """Route ``domain`` to ``module``; ``address`` is filled once the module exists."""

    domain: DomainId
    module: ModuleConfig | None = None
    address: Address | None = None
    replaces: Address | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class UnenrollPayload:
    domain: DomainId


@dataclass(frozen=True, slots=True, kw_only=True)
class ThresholdPayload:
    threshold: int


@dataclass(frozen=True, slots=True, kw_only=True)
class ValidatorsPayload:
    validators: frozenset[Address]


@dataclass(frozen=True, slots=True, kw_only=True)
class OwnerPayload:
    owner: Address
    previous_owner: Address | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RedeployPayload:
    """Replace the node with a fresh deployment of ``module``."""

    module: ModuleConfig
    reason: str
    previous_address: Address | None = None
    new_address: Address | None = None


type OperationPayload = (
    EnrollPayload
    | UnenrollPayload
    | ThresholdPayload
    | ValidatorsPayload
    | OwnerPayload
    | RedeployPayload
)


@dataclass(frozen=True, slots=True, kw_only=True)
class UpdateOperation:
    """One corrective operation against one node of one target.

    ``path`` addresses the node the operation changes. Enroll/unenroll
    operations address the routed child, so sibling domains never collide.
    """

    target: TargetId
    kind: OpKind
    path: DomainPath
    payload: OperationPayload

    @property
    def key(self) -> tuple[DomainPath, OpKind]:
        return (self.path, self.kind)

    @property
    def authority_path(self) -> DomainPath:
        """Path of the node whose owner must authorise this operation."""

        if self.kind in {OpKind.ENROLL_DOMAIN, OpKind.UNENROLL_DOMAIN}:
            return self.path[:-1]
        return self.path

    def describe(self) -> str:
        where = format_path(self.path)
        match self.payload:
            case EnrollPayload(domain=domain, address=address, module=module):
                what = address or (module.kind if module is not None else "?")
                return f"Enroll {domain} -> {what} at {where}"
            case UnenrollPayload(domain=domain):
                return f"Unenroll {domain} at {where}"
            case ThresholdPayload(threshold=threshold):
                return f"Set threshold {threshold} at {where}"
            case ValidatorsPayload(validators=validators):
                return f"Set {len(validators)} validators at {where}"
            case OwnerPayload(owner=owner):
                return f"Transfer ownership to {owner} at {where}"
            case RedeployPayload(reason=reason):
                return f"Redeploy {where} ({reason})"


@dataclass(slots=True)
class ReconciliationPlan:
    """Ordered operations converging one target, plus skipped domain paths."""

    target: TargetId
    operations: list[UpdateOperation] = field(default_factory=list["UpdateOperation"])
    skipped: list[DomainPath] = field(default_factory=list["DomainPath"])

    def add(self, operation: UpdateOperation) -> None:
        if any(existing.key == operation.key for existing in self.operations):
            raise PlanInvariantError(
                f"Duplicate {operation.kind} at {format_path(operation.path)} for {self.target}"
            )
        self.operations.append(operation)

    def extend(self, operations: list[UpdateOperation]) -> None:
        for operation in operations:
            self.add(operation)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    @property
    def address_preserved(self) -> bool:
        """Whether applying the plan keeps the root object's address."""

        return not any(
            operation.kind is OpKind.REDEPLOY and operation.path == ROOT_PATH
            for operation in self.operations
        )

    def kinds(self) -> list[OpKind]:
        return [operation.kind for operation in self.operations]

    def __len__(self) -> int:
        return len(self.operations)
