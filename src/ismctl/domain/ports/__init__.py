"""Domain port definitions for adapters."""

from __future__ import annotations

from .audit import AuditEntry, AuditLog, AuditRepository, AuditUnitOfWork
from .execution import (
    ApplyFailure,
    Deployer,
    Network,
    NetworkSimulator,
    Receipt,
    TransactionExecutor,
)
from .reading import ReadFailure, StateReader

__all__ = [
    "ApplyFailure",
    "AuditEntry",
    "AuditLog",
    "AuditRepository",
    "AuditUnitOfWork",
    "Deployer",
    "Network",
    "NetworkSimulator",
    "ReadFailure",
    "Receipt",
    "StateReader",
    "TransactionExecutor",
]
