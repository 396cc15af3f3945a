"""Ports for submitting operations and deploying new module objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ismctl.domain.model import Address, DeployedModule, DomainId, ModuleConfig, TargetId
    from ismctl.domain.reconciliation.plan import UpdateOperation


class ApplyFailure(RuntimeError):
    """Raised when the network rejects an operation or a deployment."""


@dataclass(frozen=True, slots=True)
class Receipt:
    """Acknowledgement returned by an executor for one submitted operation."""

    network: DomainId
    reference: str
    description: str = ""


@runtime_checkable
class TransactionExecutor(Protocol):
    """Submit one operation as one transaction.

    ``network`` is always passed explicitly: administrative calls may target a
    network other than the one being reconciled.
    """

    def submit(self, network: DomainId, operation: UpdateOperation) -> Receipt: ...


@runtime_checkable
class Deployer(Protocol):
    """Opaque deploy primitive returning the address of a fresh module object."""

    def deploy(
        self,
        network: DomainId,
        config: ModuleConfig,
        constructor_args: Mapping[str, object] | None = None,
    ) -> Address: ...


@runtime_checkable
class Network(TransactionExecutor, Deployer, Protocol):
    """Executor and deploy primitive backed by the same network view."""


@runtime_checkable
class NetworkSimulator(Protocol):
    """Build a disposable fork of observed state for dry runs.

    Operations applied to the fork never reach a real network. ``signer`` is
    the identity the fork impersonates when checking ownership.
    """

    def __call__(
        self,
        states: Mapping[TargetId, DeployedModule],
        *,
        signer: Address | None = None,
    ) -> Network: ...


__all__ = [
    "ApplyFailure",
    "Deployer",
    "Network",
    "NetworkSimulator",
    "Receipt",
    "TransactionExecutor",
]
