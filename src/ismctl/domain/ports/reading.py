"""Ports for reading live deployed state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ismctl.domain.model import DeployedModule, TargetId


class ReadFailure(RuntimeError):
    """Raised when the deployed state of a target cannot be fetched."""

    def __init__(self, target: TargetId, reason: str) -> None:
        super().__init__(f"Failed to read {target}: {reason}")
        self.target = target
        self.reason = reason


@runtime_checkable
class StateReader(Protocol):
    """Callable port converting a live target into an observed module tree.

    Implementations must read fresh state on every call.
    """

    def __call__(self, target: TargetId) -> DeployedModule: ...


__all__ = ["ReadFailure", "StateReader"]
